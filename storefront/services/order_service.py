"""
Order service with transactional checkout logic.
Reprices the cart server side, applies coupons and delivery fees,
decrements stock and records the order snapshot.
"""
import logging
import time
import uuid
from decimal import Decimal
from datetime import datetime
from typing import List, Dict, Any, Optional
from flask import current_app
from sqlalchemy import or_, func
from sqlalchemy.orm import Session
from storefront.models import (
    Order, OrderItem, Product, User, Coupon,
    OrderStatus, PaymentStatus, OrderSource
)
from storefront.exceptions import BusinessLogicError, NotFoundError, InsufficientStockError, CouponError
from storefront.services.cart_service import get_cart_items, price_lines, clear_cart
from storefront.services.coupon_service import validate_coupon, calculate_coupon_discount
from storefront.services.invoice_service import split_inclusive_amount, allocate_discount
from storefront.services.pricing_service import is_subscription_active, to_money, ZERO
from storefront.services.subscription_service import resolve_delivery_fee

logger = logging.getLogger(__name__)

REQUIRED_ADDRESS_FIELDS = ('full_name', 'line1', 'city', 'state', 'postal_code')

STATUS_FLOW = {
    OrderStatus.PENDING.value: {OrderStatus.PROCESSING.value, OrderStatus.SHIPPED.value,
                                OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value},
    OrderStatus.PROCESSING.value: {OrderStatus.SHIPPED.value, OrderStatus.DELIVERED.value,
                                   OrderStatus.CANCELLED.value},
    OrderStatus.SHIPPED.value: {OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value},
    OrderStatus.DELIVERED.value: set(),
    OrderStatus.CANCELLED.value: set(),
}


def generate_order_number(prefix: str = 'ORD') -> str:
    """`<prefix>-<epoch ms>-<4 upper-case chars>`."""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:4].upper()}"


def lock_products(session: Session, product_ids: List[int]) -> Dict[int, Product]:
    products = session.query(Product).filter(
        Product.id.in_(product_ids)
    ).with_for_update().all()
    return {p.id: p for p in products}


def calculate_shipping(session: Session, user: Optional[User], amount_after_discount: Decimal,
                       weight: Decimal, shipping_address: Optional[Dict[str, Any]],
                       at: Optional[datetime] = None) -> Decimal:
    """
    Delivery fee for an order.

    Subscription customers pay their own fee when one is set, else the
    weight tier fee (local city or PAN India). Everyone else ships free
    at or above the threshold.
    """
    cfg = current_app.config
    if is_subscription_active(user, at):
        if user.subscription_delivery_fee is not None:
            return to_money(user.subscription_delivery_fee)
        city = ((shipping_address or {}).get('city') or '').strip().casefold()
        is_local = city == cfg.get('LOCAL_DELIVERY_CITY', '').strip().casefold()
        return resolve_delivery_fee(session, weight, is_local)

    if amount_after_discount >= Decimal(str(cfg.get('FREE_SHIPPING_THRESHOLD', '500'))):
        return ZERO
    return to_money(cfg.get('STANDARD_SHIPPING_FEE', '99'))


def calculate_included_gst(lines: List[Dict[str, Any]], discount=ZERO) -> Decimal:
    """
    GST contained in GST-inclusive line totals.

    An order discount is spread over the lines first, so the figure is
    the GST inside what the customer actually pays.
    """
    shares = allocate_discount([line['line_total'] for line in lines], discount)
    return sum(
        (split_inclusive_amount(to_money(line['line_total']) - share, line['gst_rate'])[1]
         for line, share in zip(lines, shares)),
        ZERO
    )


def claim_coupon_use(session: Session, coupon: Coupon) -> None:
    """Count one use of a coupon unless its usage limit is already reached."""
    claimed = session.query(Coupon).filter(
        Coupon.id == coupon.id,
        or_(
            Coupon.max_uses.is_(None),
            Coupon.max_uses == 0,
            func.coalesce(Coupon.used_count, 0) < Coupon.max_uses
        )
    ).update(
        {Coupon.used_count: func.coalesce(Coupon.used_count, 0) + 1},
        synchronize_session=False
    )
    if not claimed:
        raise CouponError('Coupon usage limit reached', 'usage_limit')


def _validate_address(address: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not address:
        raise BusinessLogicError('Shipping address is required')
    missing = [f for f in REQUIRED_ADDRESS_FIELDS if not str(address.get(f) or '').strip()]
    if missing:
        raise BusinessLogicError(f'Shipping address is missing: {", ".join(missing)}')
    return {k: v for k, v in address.items() if v not in (None, '')}


def place_order(
    session: Session,
    shipping_address: Dict[str, Any],
    user: Optional[User] = None,
    session_id: Optional[str] = None,
    guest_email: Optional[str] = None,
    billing_address: Optional[Dict[str, Any]] = None,
    payment_method: str = 'cod',
    coupon_code: Optional[str] = None,
    notes: Optional[str] = None,
    at: Optional[datetime] = None
) -> Order:
    """
    Turn the current cart into an order.

    Prices, discounts and fees are always recomputed here; whatever the
    client displayed is ignored.
    """
    at = at or datetime.now()
    user_id = user.id if user else None
    if not user_id:
        guest_email = (guest_email or '').strip().lower()
        if not guest_email:
            raise BusinessLogicError('Email is required for guest checkout')

    shipping_address = _validate_address(shipping_address)
    payment_method = (payment_method or 'cod').lower()
    if payment_method not in ('cod', 'online'):
        raise BusinessLogicError('Payment method must be cod or online')

    cart_items = get_cart_items(session, user_id=user_id, session_id=session_id)
    if not cart_items:
        raise BusinessLogicError('Your cart is empty')

    try:
        # 1. Lock products and check stock
        quantities = {}
        for item in cart_items:
            quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity
        products = lock_products(session, list(quantities.keys()))

        entries = []
        for product_id, quantity in quantities.items():
            product = products.get(product_id)
            if not product or not product.is_active:
                raise BusinessLogicError('A product in your cart is no longer available')
            if not product.allow_backorder and product.stock < quantity:
                raise InsufficientStockError(product.title, quantity, product.stock)
            entries.append({'product': product, 'quantity': quantity})

        # 2. Price
        totals = price_lines(session, entries, user, at)
        subtotal = totals['subtotal']

        # 3. Coupon
        discount = ZERO
        coupon = None
        if coupon_code:
            coupon = validate_coupon(session, coupon_code, at, user_id=user_id, guest_email=guest_email,
                                     for_update=True)
            discount = calculate_coupon_discount(coupon, totals['lines'], subtotal)

        # 4. Delivery, tax and total
        after_discount = subtotal - discount
        shipping_cost = calculate_shipping(session, user, after_discount, totals['weight'], shipping_address, at)
        tax = calculate_included_gst(totals['lines'], discount)
        total = to_money(after_discount + shipping_cost)

        order = Order(
            order_number=generate_order_number(),
            source=OrderSource.ONLINE.value,
            user_id=user_id,
            guest_email=None if user_id else guest_email,
            subtotal=subtotal,
            discount=discount,
            tax=tax,
            shipping_cost=shipping_cost,
            total=total,
            status=OrderStatus.PENDING.value,
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING.value if payment_method == 'cod' else PaymentStatus.PAID.value,
            shipping_address=shipping_address,
            billing_address=billing_address or shipping_address,
            coupon_code=coupon.code if coupon else None,
            notes=(notes or '').strip() or None,
            created_at=at,
        )
        session.add(order)
        session.flush()

        # 5. Items and stock
        for line in totals['lines']:
            session.add(OrderItem(
                order_id=order.id,
                product_id=line['product_id'],
                title=line['title'],
                sku=line['sku'],
                price=line['unit_price'],
                quantity=line['quantity'],
                gst_rate=line['gst_rate'],
                image_url=line['image_url'],
            ))
            line['product'].stock -= line['quantity']

        if coupon:
            claim_coupon_use(session, coupon)

        clear_cart(session, user_id=user_id, session_id=session_id, commit=False)
        session.commit()

    except (BusinessLogicError, NotFoundError, InsufficientStockError):
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        logger.exception(f"[ORDER] Checkout failed: {e}")
        raise

    logger.info(f"[ORDER] Placed {order.order_number} total={order.total} user={user_id or guest_email}")

    from storefront.services.email_service import send_order_confirmation
    send_order_confirmation(order)
    return order


def restock_order(session: Session, order: Order) -> None:
    products = lock_products(session, [item.product_id for item in order.items])
    for item in order.items:
        product = products.get(item.product_id)
        if product:
            product.stock += item.quantity


def update_order_status(session: Session, order_id: int, status: str,
                        tracking_number: Optional[str] = None) -> Order:
    """Move an order along its lifecycle. Cancelling puts the items back in stock."""
    if status not in STATUS_FLOW:
        raise BusinessLogicError(f'Invalid order status: {status}')

    order = session.query(Order).filter(Order.id == order_id).with_for_update().first()
    if not order:
        raise NotFoundError('Order not found')

    try:
        if status != order.status:
            if status not in STATUS_FLOW[order.status]:
                raise BusinessLogicError(f'Cannot change a {order.status} order to {status}')
            if status == OrderStatus.CANCELLED.value:
                restock_order(session, order)
            if status == OrderStatus.DELIVERED.value and order.payment_method == 'cod':
                order.payment_status = PaymentStatus.PAID.value
            order.status = status
        if tracking_number is not None:
            order.tracking_number = tracking_number.strip() or None
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"[ORDER] {order.order_number} -> {order.status}")
    from storefront.services.email_service import send_order_status_update
    send_order_status_update(order)
    return order


def get_order_by_number(session: Session, order_number: str) -> Order:
    order = session.query(Order).filter(Order.order_number == (order_number or '').strip()).first()
    if not order:
        raise NotFoundError('Order not found')
    return order


def track_order(session: Session, order_number: str, email: Optional[str] = None) -> Order:
    """Public order tracking. When an email is supplied it must match the order."""
    order = get_order_by_number(session, order_number)
    if email and (order.customer_email or '').lower() != email.strip().lower():
        raise NotFoundError('Order not found')
    return order


def get_user_order(session: Session, user_id: int, order_id: int) -> Order:
    order = session.query(Order).filter(Order.id == order_id, Order.user_id == user_id).first()
    if not order:
        raise NotFoundError('Order not found')
    return order


def list_user_orders(session: Session, user_id: int) -> List[Order]:
    return session.query(Order).filter(Order.user_id == user_id).order_by(
        Order.created_at.desc(), Order.id.desc()
    ).all()


def list_orders(session: Session, filters: Optional[Dict[str, Any]] = None,
                page: int = 1, per_page: int = 50) -> Dict[str, Any]:
    """Admin order listing with status, source, search and date filters."""
    filters = filters or {}
    query = session.query(Order)

    if filters.get('status'):
        query = query.filter(Order.status == filters['status'])
    if filters.get('source'):
        query = query.filter(Order.source == filters['source'])
    if filters.get('payment_status'):
        query = query.filter(Order.payment_status == filters['payment_status'])
    if filters.get('search'):
        pattern = f"%{filters['search'].strip().lower()}%"
        query = query.outerjoin(User, Order.user_id == User.id).filter(or_(
            func.lower(Order.order_number).like(pattern),
            func.lower(Order.guest_email).like(pattern),
            func.lower(User.email).like(pattern),
            func.lower(Order.pos_customer_name).like(pattern)
        ))
    if filters.get('date_from'):
        query = query.filter(Order.created_at >= filters['date_from'])
    if filters.get('date_to'):
        query = query.filter(Order.created_at <= filters['date_to'])

    total = query.count()
    page = max(int(page or 1), 1)
    orders = query.order_by(Order.created_at.desc(), Order.id.desc()).offset(
        (page - 1) * per_page
    ).limit(per_page).all()
    return {'items': orders, 'total': total, 'page': page, 'per_page': per_page}
