"""
Coupon service.

A coupon's class is derived from which fields are set:
    - min_quantity set          -> BULK (optionally bound to one product)
    - product_id set            -> PRODUCT
    - neither                   -> STORE_WIDE
"""
import enum
import logging
from decimal import Decimal
from datetime import datetime
from typing import List, Dict, Any, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from storefront.models import Coupon, Order, OrderStatus, Product, DiscountType
from storefront.exceptions import BusinessLogicError, NotFoundError, CouponError
from storefront.services.pricing_service import to_money, ZERO

logger = logging.getLogger(__name__)


class CouponScope(str, enum.Enum):
    PRODUCT = 'product'
    BULK = 'bulk'
    STORE_WIDE = 'store_wide'


def classify_coupon(coupon: Coupon) -> CouponScope:
    if coupon.min_quantity is not None:
        return CouponScope.BULK
    if coupon.product_id is not None:
        return CouponScope.PRODUCT
    return CouponScope.STORE_WIDE


def normalize_code(code: Optional[str]) -> str:
    return (code or '').strip().upper()


def get_coupon_by_code(session: Session, code: str, for_update: bool = False) -> Optional[Coupon]:
    query = session.query(Coupon).filter(Coupon.code == normalize_code(code))
    if for_update:
        query = query.with_for_update()
    return query.first()


def validate_coupon(
    session: Session,
    code: str,
    at: Optional[datetime] = None,
    user_id: Optional[int] = None,
    guest_email: Optional[str] = None,
    for_update: bool = False
) -> Coupon:
    """
    Check that a coupon can be used right now by this customer.

    Checkout passes `for_update` so the usage count is read under a row
    lock and cannot be claimed twice by concurrent orders.

    Raises:
        NotFoundError: unknown or inactive code
        CouponError: expired, usage limit reached or already used
    """
    at = at or datetime.now()
    coupon = get_coupon_by_code(session, code, for_update=for_update)
    if not coupon or not coupon.is_active:
        raise NotFoundError('Invalid coupon code')

    if coupon.expires_at and coupon.expires_at < at:
        raise CouponError('Coupon has expired', 'expired')

    if coupon.max_uses and (coupon.used_count or 0) >= coupon.max_uses:
        raise CouponError('Coupon usage limit reached', 'usage_limit')

    if user_id or guest_email:
        query = session.query(Order.id).filter(
            Order.coupon_code == coupon.code,
            Order.status != OrderStatus.CANCELLED.value
        )
        if user_id:
            query = query.filter(Order.user_id == user_id)
        else:
            query = query.filter(func.lower(Order.guest_email) == guest_email.strip().lower())
        if query.first():
            raise CouponError('You have already used this coupon', 'already_used')

    return coupon


def _discount_on(coupon: Coupon, base: Decimal) -> Decimal:
    amount = Decimal(str(coupon.amount))
    if coupon.type == DiscountType.PERCENTAGE.value:
        discount = base * min(amount, Decimal('100')) / 100
    else:
        discount = min(amount, base)
    return to_money(max(discount, ZERO))


def calculate_coupon_discount(coupon: Coupon, lines: List[Dict[str, Any]], subtotal) -> Decimal:
    """
    Discount granted by a coupon on a priced cart.

    Each line needs `product_id`, `quantity` and `line_total`.
    """
    subtotal = to_money(subtotal)
    scope = classify_coupon(coupon)

    if coupon.min_cart_total is not None and subtotal < to_money(coupon.min_cart_total):
        raise CouponError(
            f'Minimum cart total of {to_money(coupon.min_cart_total)} required for this coupon',
            'min_cart_total'
        )

    bound_lines = [line for line in lines if coupon.product_id is not None and line['product_id'] == coupon.product_id]
    bound_total = sum((to_money(line['line_total']) for line in bound_lines), ZERO)

    if scope == CouponScope.STORE_WIDE:
        base = subtotal
    elif scope == CouponScope.PRODUCT:
        if not bound_lines:
            raise CouponError('This coupon does not apply to any product in your cart', 'product_missing')
        base = bound_total
    else:
        if coupon.product_id is not None:
            quantity = sum(int(line['quantity']) for line in bound_lines)
            base = bound_total
        else:
            quantity = sum(int(line['quantity']) for line in lines)
            base = subtotal
        if quantity < coupon.min_quantity:
            raise CouponError(
                f'Add at least {coupon.min_quantity} items to use this coupon',
                'min_quantity'
            )

    return _discount_on(coupon, base)


# ---------------------------------------------------------------------------
# Admin CRUD
# ---------------------------------------------------------------------------

def list_coupons(session: Session) -> List[Coupon]:
    return session.query(Coupon).order_by(Coupon.created_at.desc(), Coupon.id.desc()).all()


def _apply_coupon_fields(session: Session, coupon: Coupon, data: Dict[str, Any]) -> None:
    if 'code' in data:
        code = normalize_code(data['code'])
        if not code:
            raise BusinessLogicError('Coupon code is required')
        clash = session.query(Coupon).filter(Coupon.code == code)
        if coupon.id:
            clash = clash.filter(Coupon.id != coupon.id)
        if clash.first():
            raise BusinessLogicError(f'Coupon code "{code}" already exists')
        coupon.code = code

    for field in ('type', 'amount', 'min_cart_total', 'min_quantity', 'max_uses',
                  'product_id', 'description', 'is_active', 'expires_at'):
        if field in data:
            setattr(coupon, field, data[field])

    if coupon.type not in (DiscountType.PERCENTAGE.value, DiscountType.FIXED.value):
        raise BusinessLogicError('Coupon type must be percentage or fixed')
    if coupon.amount is None or Decimal(str(coupon.amount)) <= 0:
        raise BusinessLogicError('Coupon amount must be greater than 0')
    if coupon.type == DiscountType.PERCENTAGE.value and Decimal(str(coupon.amount)) > 100:
        raise BusinessLogicError('Percentage coupons cannot exceed 100')
    if coupon.min_quantity is not None and coupon.min_quantity < 1:
        raise BusinessLogicError('Minimum quantity must be at least 1')
    if coupon.product_id is not None and not session.get(Product, coupon.product_id):
        raise NotFoundError('Product not found')


def create_coupon(session: Session, data: Dict[str, Any]) -> Coupon:
    try:
        coupon = Coupon(used_count=0, is_active=data.get('is_active', True))
        _apply_coupon_fields(session, coupon, data)
        session.add(coupon)
        session.commit()
        logger.info(f"[COUPON] Created {coupon.code} ({classify_coupon(coupon).value})")
        return coupon
    except Exception:
        session.rollback()
        raise


def update_coupon(session: Session, coupon_id: int, data: Dict[str, Any]) -> Coupon:
    coupon = session.get(Coupon, coupon_id)
    if not coupon:
        raise NotFoundError('Coupon not found')
    try:
        _apply_coupon_fields(session, coupon, data)
        session.commit()
        return coupon
    except Exception:
        session.rollback()
        raise


def delete_coupon(session: Session, coupon_id: int) -> None:
    coupon = session.get(Coupon, coupon_id)
    if not coupon:
        raise NotFoundError('Coupon not found')
    session.delete(coupon)
    session.commit()
