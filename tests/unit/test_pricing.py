"""
Unit tests for price resolution.
"""

from datetime import datetime, timedelta
from decimal import Decimal

from storefront.models import Product, User, SubscriptionCategoryDiscount, CustomerType
from storefront.services.pricing_service import (
    apply_discount, get_base_price, get_discount_percent, is_sale_active,
    is_subscription_active, resolve_price, to_money
)

NOW = datetime(2026, 3, 15, 12, 0)


def _product(**kwargs):
    values = {'id': 1, 'price': Decimal('200.00'), 'gst_rate': Decimal('18'), 'category_id': 7}
    values.update(kwargs)
    return Product(**values)


def _subscriber(**kwargs):
    values = {
        'id': 1,
        'customer_type': CustomerType.SUBSCRIPTION.value,
        'subscription_discount_type': 'percentage',
        'subscription_discount_value': Decimal('10'),
        'subscription_sale_discount_type': 'fixed',
        'subscription_sale_discount_value': Decimal('5'),
    }
    values.update(kwargs)
    return User(**values)


class TestSaleWindow:
    """Tests for sale price activation."""

    def test_sale_price_without_window_is_active(self):
        """Test a sale price with no window."""
        product = _product(sale_price=Decimal('150.00'))
        assert is_sale_active(product, NOW) is True
        assert get_base_price(product, NOW) == Decimal('150.00')

    def test_sale_price_outside_window_is_ignored(self):
        """Test a sale price before its window opens."""
        product = _product(
            sale_price=Decimal('150.00'),
            sale_price_start=NOW + timedelta(days=1),
            sale_price_end=NOW + timedelta(days=5)
        )
        assert is_sale_active(product, NOW) is False
        assert get_base_price(product, NOW) == Decimal('200.00')

    def test_expired_sale_is_ignored(self):
        """Test a sale price after its window closed."""
        product = _product(sale_price=Decimal('150.00'), sale_price_end=NOW - timedelta(seconds=1))
        assert is_sale_active(product, NOW) is False

    def test_sale_price_not_lower_than_price_is_ignored(self):
        """Test that a sale price must be below the price."""
        product = _product(sale_price=Decimal('200.00'))
        assert is_sale_active(product, NOW) is False

    def test_discount_percent_is_rounded(self):
        """Test that the discount percent rounds half up."""
        product = _product(price=Decimal('300.00'), sale_price=Decimal('199.00'))
        # 33.67% saved
        assert get_discount_percent(product, NOW) == 34

    def test_discount_percent_without_sale(self):
        """Test the discount percent without a sale."""
        assert get_discount_percent(_product(), NOW) == 0


class TestApplyDiscount:
    """Tests for percentage and fixed discounts."""

    def test_percentage(self):
        """Test a percentage discount."""
        assert apply_discount(Decimal('200'), 'percentage', Decimal('10')) == Decimal('180.00')

    def test_percentage_is_capped_at_100(self):
        """Test that a percentage discount is capped at 100%."""
        assert apply_discount(Decimal('200'), 'percentage', Decimal('150')) == Decimal('0.00')

    def test_fixed_never_goes_negative(self):
        """Test that a fixed discount never goes below zero."""
        assert apply_discount(Decimal('30'), 'fixed', Decimal('50')) == Decimal('0.00')

    def test_missing_or_zero_value_leaves_amount(self):
        """Test that a missing or zero value leaves the amount."""
        assert apply_discount(Decimal('99.99'), 'percentage', None) == Decimal('99.99')
        assert apply_discount(Decimal('99.99'), 'fixed', Decimal('0')) == Decimal('99.99')

    def test_unknown_type_leaves_amount(self):
        """Test that an unknown discount type leaves the amount."""
        assert apply_discount(Decimal('50'), 'bogus', Decimal('10')) == Decimal('50.00')

    def test_to_money_rounds_half_up(self):
        """Test money rounding."""
        assert to_money('10.005') == Decimal('10.01')
        assert to_money(None) == Decimal('0.00')


class TestResolvePrice:
    """Tests for the price a customer actually pays."""

    def test_guest_pays_base_price(self):
        """Test that a guest pays the base price."""
        quote = resolve_price(_product(), None, NOW)
        assert quote.unit_price == Decimal('200.00')
        assert quote.discount_source is None

    def test_regular_and_business_customers_pay_base_price(self):
        """Test that non-subscribers pay the base price."""
        for customer_type in ('regular', 'retailer', 'distributor', 'self_employed'):
            user = User(id=2, customer_type=customer_type)
            assert resolve_price(_product(), user, NOW).unit_price == Decimal('200.00')

    def test_subscriber_gets_regular_discount(self):
        """Test the subscriber regular discount."""
        quote = resolve_price(_product(), _subscriber(), NOW)
        assert quote.unit_price == Decimal('180.00')
        assert quote.subscription_discount == Decimal('20.00')
        assert quote.discount_source == 'customer'

    def test_subscriber_gets_sale_discount_on_sale_price(self):
        """Test the subscriber sale discount on a sale price."""
        quote = resolve_price(_product(sale_price=Decimal('150.00')), _subscriber(), NOW)
        assert quote.on_sale is True
        assert quote.base_price == Decimal('150.00')
        assert quote.unit_price == Decimal('145.00')

    def test_category_override_replaces_customer_discount(self):
        """Test that a category override replaces the customer discount."""
        override = SubscriptionCategoryDiscount(
            customer_id=1, category_id=7, discount_type='percentage', discount_value=Decimal('25')
        )
        quote = resolve_price(_product(), _subscriber(), NOW, override)
        assert quote.unit_price == Decimal('150.00')
        assert quote.discount_source == 'category'

    def test_override_without_sale_value_keeps_customer_sale_discount(self):
        """Test that an override without a sale value keeps the customer sale discount."""
        override = SubscriptionCategoryDiscount(
            customer_id=1, category_id=7, discount_type='percentage', discount_value=Decimal('25')
        )
        quote = resolve_price(_product(sale_price=Decimal('150.00')), _subscriber(), NOW, override)
        assert quote.unit_price == Decimal('145.00')
        assert quote.discount_source == 'customer'

    def test_expired_subscription_pays_base_price(self):
        """Test that an expired subscription pays the base price."""
        user = _subscriber(subscription_end_date=NOW - timedelta(days=1))
        assert is_subscription_active(user, NOW) is False
        assert resolve_price(_product(), user, NOW).unit_price == Decimal('200.00')

    def test_future_subscription_is_not_active_yet(self):
        """Test that a subscription is inactive before its start date."""
        user = _subscriber(subscription_start_date=NOW + timedelta(days=1))
        assert is_subscription_active(user, NOW) is False

    def test_subscriber_without_discount_value_pays_base_price(self):
        """Test that an active subscriber with no regular discount value pays the base price."""
        for value in (None, Decimal('0')):
            quote = resolve_price(_product(), _subscriber(subscription_discount_value=value), NOW)
            assert quote.unit_price == quote.base_price == Decimal('200.00')
            assert quote.subscription_discount == Decimal('0.00')
            assert quote.discount_source is None

    def test_subscriber_without_sale_discount_value_pays_sale_price(self):
        """Test that a missing or zero sale discount leaves the sale price untouched."""
        for value in (None, Decimal('0')):
            user = _subscriber(subscription_sale_discount_value=value)
            quote = resolve_price(_product(sale_price=Decimal('150.00')), user, NOW)
            assert quote.unit_price == quote.base_price == Decimal('150.00')
            assert quote.discount_source is None

    def test_zero_category_override_removes_the_discount(self):
        """Test that a category override of 0 switches the customer discount off for that category."""
        override = SubscriptionCategoryDiscount(
            customer_id=1, category_id=7, discount_type='percentage', discount_value=Decimal('0')
        )
        quote = resolve_price(_product(), _subscriber(), NOW, override)
        assert quote.unit_price == quote.base_price == Decimal('200.00')
        assert quote.discount_source is None
