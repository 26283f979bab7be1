"""
Unit tests for combo pricing, POS totals and delivery tier selection.
"""

import pytest
from decimal import Decimal

from storefront.exceptions import BusinessLogicError
from storefront.models import Product, SubscriptionDeliveryTier
from storefront.services.combo_service import calculate_combo_pricing
from storefront.services.order_service import generate_order_number
from storefront.services.pos_service import calculate_pos_totals, _merge_items
from storefront.services.subscription_service import pick_delivery_tier


class TestComboPricing:

    def test_discount_percentage(self):
        """Test combo original price and discount percentage."""
        products = [Product(id=1, price=Decimal('300.00')), Product(id=2, price=Decimal('200.00'))]
        pricing = calculate_combo_pricing(products, '400')
        assert pricing['original_price'] == Decimal('500.00')
        assert pricing['combo_price'] == Decimal('400.00')
        assert pricing['discount_percentage'] == Decimal('20.00')

    def test_needs_two_distinct_products(self):
        """Test that a combo needs at least two different products."""
        product = Product(id=1, price=Decimal('300.00'))
        with pytest.raises(BusinessLogicError):
            calculate_combo_pricing([product, product], '250')

    def test_price_cannot_exceed_original(self):
        """Test that the combo price cannot exceed the sum of regular prices."""
        products = [Product(id=1, price=Decimal('100.00')), Product(id=2, price=Decimal('100.00'))]
        with pytest.raises(BusinessLogicError):
            calculate_combo_pricing(products, '201')

    def test_price_must_be_positive(self):
        """Test that the combo price must be greater than zero."""
        products = [Product(id=1, price=Decimal('100.00')), Product(id=2, price=Decimal('100.00'))]
        with pytest.raises(BusinessLogicError):
            calculate_combo_pricing(products, '0')


class TestPosTotals:

    def test_gst_is_backed_out_of_each_line(self):
        """Test that GST is taken out of each inclusive line total."""
        totals = calculate_pos_totals([
            {'product_id': 1, 'unit_price': Decimal('118.00'), 'quantity': 2, 'gst_rate': Decimal('18')},
            {'product_id': 2, 'unit_price': Decimal('52.50'), 'quantity': 2, 'gst_rate': Decimal('5')},
        ])
        assert totals['subtotal'] == Decimal('341.00')
        assert totals['total'] == Decimal('341.00')
        assert totals['taxable_total'] == Decimal('300.00')
        assert totals['gst_total'] == Decimal('41.00')
        assert totals['item_count'] == 4
        assert [b['rate'] for b in totals['gst_breakdown']] == [Decimal('5'), Decimal('18')]

    def test_empty_cart(self):
        """Test totals of an empty POS cart."""
        totals = calculate_pos_totals([])
        assert totals['total'] == Decimal('0.00')
        assert totals['gst_breakdown'] == []

    def test_repeated_products_are_merged(self):
        """Test that repeated products are merged into one line."""
        merged = _merge_items([
            {'product_id': 3, 'quantity': 1},
            {'product_id': '3', 'quantity': '2'},
            {'product_id': 4, 'quantity': 1},
        ])
        assert merged == {3: 3, 4: 1}

    @pytest.mark.parametrize('items', [
        [],
        [{'quantity': 1}],
        [{'product_id': 1, 'quantity': 0}],
        [{'product_id': 'x', 'quantity': 1}],
    ])
    def test_invalid_items(self, items):
        """Test that malformed POS items are rejected."""
        with pytest.raises(BusinessLogicError):
            _merge_items(items)


class TestDeliveryTiers:

    def _tiers(self):
        return [
            SubscriptionDeliveryTier(label='Up to 5kg', up_to_weight_kg=Decimal('5'), local_fee=Decimal('40'),
                                     pan_india_fee=Decimal('90'), sort_order=0, is_active=True),
            SubscriptionDeliveryTier(label='Up to 1kg', up_to_weight_kg=Decimal('1'), local_fee=Decimal('20'),
                                     pan_india_fee=Decimal('50'), sort_order=0, is_active=True),
            SubscriptionDeliveryTier(label='Up to 10kg', up_to_weight_kg=Decimal('10'), local_fee=Decimal('60'),
                                     pan_india_fee=Decimal('150'), sort_order=0, is_active=False),
        ]

    def test_smallest_covering_tier(self):
        """Test that the smallest tier covering the weight is used."""
        assert pick_delivery_tier(self._tiers(), Decimal('0.8')).label == 'Up to 1kg'
        assert pick_delivery_tier(self._tiers(), Decimal('1')).label == 'Up to 1kg'
        assert pick_delivery_tier(self._tiers(), Decimal('3.2')).label == 'Up to 5kg'

    def test_heavier_than_every_tier_uses_largest_active(self):
        """Test that an overweight parcel uses the largest active tier."""
        assert pick_delivery_tier(self._tiers(), Decimal('12')).label == 'Up to 5kg'

    def test_no_active_tiers(self):
        """Test that delivery is free without active tiers."""
        assert pick_delivery_tier([], Decimal('1')) is None


def test_order_number_format():
    prefix, millis, token = generate_order_number().split('-')
    assert prefix == 'ORD'
    assert millis.isdigit()
    assert len(token) == 4 and token == token.upper()
    assert generate_order_number('BK').startswith('BK-')
