"""
Unit tests for coupon classification and discount math.
"""

import pytest
from decimal import Decimal

from storefront.exceptions import CouponError
from storefront.models import Coupon
from storefront.services.coupon_service import (
    CouponScope, classify_coupon, calculate_coupon_discount, normalize_code
)


def _coupon(**kwargs):
    values = {'code': 'SAVE10', 'type': 'percentage', 'amount': Decimal('10')}
    values.update(kwargs)
    return Coupon(**values)


def _line(product_id, quantity, line_total):
    return {'product_id': product_id, 'quantity': quantity, 'line_total': Decimal(line_total)}


LINES = [_line(1, 2, '200.00'), _line(2, 1, '50.00')]


class TestClassification:
    """The coupon class is derived from which fields are set."""

    def test_store_wide(self):
        """Test classifying a coupon with no product and no minimum quantity."""
        assert classify_coupon(_coupon()) == CouponScope.STORE_WIDE

    def test_product(self):
        """Test classifying a coupon bound to a product."""
        assert classify_coupon(_coupon(product_id=1)) == CouponScope.PRODUCT

    def test_min_quantity_makes_it_bulk(self):
        """Test that a minimum quantity makes a coupon bulk."""
        assert classify_coupon(_coupon(min_quantity=3)) == CouponScope.BULK
        assert classify_coupon(_coupon(min_quantity=3, product_id=1)) == CouponScope.BULK

    def test_scope_property(self):
        """Test the scope property on the model."""
        assert _coupon(product_id=5).scope == CouponScope.PRODUCT

    def test_codes_are_normalized(self):
        """Test that coupon codes are trimmed and upper-cased."""
        assert normalize_code('  save10 ') == 'SAVE10'
        assert normalize_code(None) == ''


class TestDiscount:
    """Tests for calculate_coupon_discount."""

    def test_store_wide_percentage(self):
        """Test a percentage discount on the whole cart."""
        assert calculate_coupon_discount(_coupon(), LINES, Decimal('250.00')) == Decimal('25.00')

    def test_fixed_is_capped_at_base(self):
        """Test that a fixed discount never exceeds its base."""
        coupon = _coupon(type='fixed', amount=Decimal('500'))
        assert calculate_coupon_discount(coupon, LINES, Decimal('250.00')) == Decimal('250.00')

    def test_product_coupon_only_discounts_its_lines(self):
        """Test that a product coupon only discounts that product."""
        coupon = _coupon(product_id=2, amount=Decimal('20'))
        assert calculate_coupon_discount(coupon, LINES, Decimal('250.00')) == Decimal('10.00')

    def test_product_coupon_requires_product_in_cart(self):
        """Test that a product coupon needs the product in the cart."""
        with pytest.raises(CouponError) as exc:
            calculate_coupon_discount(_coupon(product_id=99), LINES, Decimal('250.00'))
        assert exc.value.reason == 'product_missing'

    def test_bulk_counts_every_item(self):
        """Test that an unbound bulk coupon counts the whole cart quantity."""
        coupon = _coupon(min_quantity=3)
        assert calculate_coupon_discount(coupon, LINES, Decimal('250.00')) == Decimal('25.00')

    def test_bulk_below_min_quantity(self):
        """Test that a bulk coupon below its minimum quantity is refused."""
        with pytest.raises(CouponError) as exc:
            calculate_coupon_discount(_coupon(min_quantity=4), LINES, Decimal('250.00'))
        assert exc.value.reason == 'min_quantity'

    def test_bulk_bound_to_product_counts_that_product(self):
        """Test that a bound bulk coupon counts only its product."""
        coupon = _coupon(min_quantity=2, product_id=1, type='fixed', amount=Decimal('30'))
        assert calculate_coupon_discount(coupon, LINES, Decimal('250.00')) == Decimal('30.00')

        coupon = _coupon(min_quantity=2, product_id=2)
        with pytest.raises(CouponError):
            calculate_coupon_discount(coupon, LINES, Decimal('250.00'))

    def test_min_cart_total(self):
        """Test the minimum cart total requirement."""
        coupon = _coupon(min_cart_total=Decimal('300'))
        with pytest.raises(CouponError) as exc:
            calculate_coupon_discount(coupon, LINES, Decimal('250.00'))
        assert exc.value.reason == 'min_cart_total'
        assert exc.value.status_code == 400
