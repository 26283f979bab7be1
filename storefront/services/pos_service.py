"""
Point of sale service.
Counter sales are recorded as orders with source 'pos', delivered on the spot.
"""
import logging
from decimal import Decimal
from datetime import datetime
from typing import List, Dict, Any, Optional
from sqlalchemy import or_, func
from sqlalchemy.orm import Session
from storefront.models import (
    Order, OrderItem, Product, User,
    OrderStatus, PaymentStatus, OrderSource, PosPaymentType, UserRole, CustomerType
)
from storefront.exceptions import BusinessLogicError, NotFoundError, InsufficientStockError
from storefront.services.invoice_service import split_inclusive_amount
from storefront.services.order_service import generate_order_number, lock_products
from storefront.services.pricing_service import get_base_price, to_money, ZERO

logger = logging.getLogger(__name__)

POS_PAYMENT_TYPES = [t.value for t in PosPaymentType]


def calculate_pos_totals(lines: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Totals for a POS cart.

    Each line needs `unit_price`, `quantity` and `gst_rate`; prices include
    GST so the taxable value is backed out of each line.
    """
    subtotal = ZERO
    taxable_total = ZERO
    gst_total = ZERO
    item_count = 0
    breakdown: Dict[Decimal, Dict[str, Decimal]] = {}
    priced = []

    for line in lines:
        quantity = int(line['quantity'])
        rate = Decimal(str(line.get('gst_rate') or 0))
        line_total = to_money(Decimal(str(line['unit_price'])) * quantity)
        taxable, gst = split_inclusive_amount(line_total, rate)

        subtotal += line_total
        taxable_total += taxable
        gst_total += gst
        item_count += quantity
        bucket = breakdown.setdefault(rate, {'taxable_value': ZERO, 'gst_amount': ZERO})
        bucket['taxable_value'] += taxable
        bucket['gst_amount'] += gst
        priced.append({**line, 'line_total': line_total, 'taxable_value': taxable, 'gst_amount': gst})

    return {
        'lines': priced,
        'subtotal': subtotal,
        'taxable_total': taxable_total,
        'gst_total': gst_total,
        'total': subtotal,
        'item_count': item_count,
        'gst_breakdown': [{'rate': rate, **breakdown[rate]} for rate in sorted(breakdown)],
    }


def _merge_items(items: List[Dict[str, Any]]) -> Dict[int, int]:
    """Quantities per product id; repeated products are summed."""
    if not items:
        raise BusinessLogicError('The POS cart is empty')
    quantities: Dict[int, int] = {}
    for item in items:
        try:
            quantity = int(item.get('quantity') or 0)
            product_id = int(item['product_id'])
        except (KeyError, TypeError, ValueError):
            raise BusinessLogicError('Each item needs a product_id and a quantity')
        if quantity <= 0:
            raise BusinessLogicError('Quantity must be greater than 0')
        quantities[product_id] = quantities.get(product_id, 0) + quantity
    return quantities


def _price_items(products: Dict[int, Product], quantities: Dict[int, int],
                 at: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """POS lines at the counter price (sale price while the sale is live)."""
    lines = []
    for product_id, quantity in quantities.items():
        product = products.get(product_id)
        if not product:
            raise NotFoundError(f'Product {product_id} not found')
        if not product.is_active:
            raise BusinessLogicError(f'"{product.title}" is not active')
        if product.stock < quantity:
            raise InsufficientStockError(product.title, quantity, product.stock)
        lines.append({
            'product': product,
            'product_id': product.id,
            'quantity': quantity,
            'unit_price': get_base_price(product, at),
            'gst_rate': to_money(product.gst_rate),
        })
    return lines


def preview_pos_sale(session: Session, items: List[Dict[str, Any]],
                     at: Optional[datetime] = None) -> Dict[str, Any]:
    """Totals for the counter screen, without touching stock."""
    quantities = _merge_items(items)
    products = {
        p.id: p for p in session.query(Product).filter(Product.id.in_(list(quantities.keys()))).all()
    }
    totals = calculate_pos_totals(_price_items(products, quantities, at))
    totals['lines'] = [
        {
            'product_id': line['product_id'],
            'title': line['product'].title,
            'sku': line['product'].sku,
            'quantity': line['quantity'],
            'unit_price': line['unit_price'],
            'gst_rate': line['gst_rate'],
            'line_total': line['line_total'],
            'taxable_value': line['taxable_value'],
            'gst_amount': line['gst_amount'],
        }
        for line in totals['lines']
    ]
    return totals


def create_pos_order(
    session: Session,
    items: List[Dict[str, Any]],
    payment_type: str,
    created_by: Optional[User] = None,
    customer_id: Optional[int] = None,
    customer_name: Optional[str] = None,
    customer_phone: Optional[str] = None,
    notes: Optional[str] = None,
    at: Optional[datetime] = None
) -> Order:
    """
    Record a counter sale.

    `items` is a list of `{'product_id': int, 'quantity': int}`. Credit sales
    stay pending payment and need a customer.
    """
    at = at or datetime.now()
    if not items:
        raise BusinessLogicError('The POS cart is empty')

    payment_type = (payment_type or '').lower()
    if payment_type not in POS_PAYMENT_TYPES:
        raise BusinessLogicError(f'Payment type must be one of: {", ".join(POS_PAYMENT_TYPES)}')

    customer = None
    if customer_id:
        customer = session.get(User, customer_id)
        if not customer:
            raise NotFoundError('Customer not found')
        customer_name = customer_name or customer.full_name
        customer_phone = customer_phone or customer.phone

    is_credit = payment_type == PosPaymentType.CREDIT.value
    if is_credit and not (customer or (customer_name or '').strip()):
        raise BusinessLogicError('Credit sales require a customer')

    quantities = _merge_items(items)

    try:
        products = lock_products(session, list(quantities.keys()))
        totals = calculate_pos_totals(_price_items(products, quantities, at))

        order = Order(
            order_number=generate_order_number(),
            source=OrderSource.POS.value,
            user_id=customer.id if customer else None,
            subtotal=totals['subtotal'],
            discount=ZERO,
            tax=totals['gst_total'],
            shipping_cost=ZERO,
            total=totals['total'],
            status=OrderStatus.DELIVERED.value,
            payment_method='pos',
            payment_status=PaymentStatus.PENDING.value if is_credit else PaymentStatus.PAID.value,
            pos_payment_type=payment_type,
            pos_customer_name=(customer_name or '').strip() or None,
            pos_customer_phone=(customer_phone or '').strip() or None,
            created_by_id=created_by.id if created_by else None,
            notes=(notes or '').strip() or None,
            created_at=at,
        )
        session.add(order)
        session.flush()

        for line in totals['lines']:
            product = line['product']
            session.add(OrderItem(
                order_id=order.id,
                product_id=product.id,
                title=product.title,
                sku=product.sku,
                price=line['unit_price'],
                quantity=line['quantity'],
                gst_rate=line['gst_rate'],
                image_url=product.image_url,
            ))
            product.stock -= line['quantity']

        session.commit()
    except (BusinessLogicError, NotFoundError, InsufficientStockError):
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        logger.exception(f"[POS] Sale failed: {e}")
        raise

    logger.info(f"[POS] Sale {order.order_number} total={order.total} payment={payment_type}")
    return order


def search_pos_products(session: Session, query: str = '', limit: int = 20,
                        at: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Active, in-stock products matching title or SKU."""
    q = session.query(Product).filter(Product.is_active.is_(True), Product.stock > 0)
    query = (query or '').strip()
    if query:
        pattern = f'%{query.lower()}%'
        q = q.filter(or_(func.lower(Product.title).like(pattern), func.lower(Product.sku).like(pattern)))

    results = []
    for product in q.order_by(Product.title).limit(limit).all():
        results.append({
            'id': product.id,
            'title': product.title,
            'sku': product.sku,
            'image_url': product.image_url,
            'price': to_money(product.price),
            'unit_price': get_base_price(product, at),
            'gst_rate': to_money(product.gst_rate),
            'stock': product.stock,
        })
    return results


def search_pos_customers(session: Session, query: str, limit: int = 10) -> List[User]:
    query = (query or '').strip()
    if not query:
        return []
    pattern = f'%{query.lower()}%'
    return session.query(User).filter(
        User.role == UserRole.CUSTOMER.value,
        or_(
            func.lower(User.first_name).like(pattern),
            func.lower(User.last_name).like(pattern),
            func.lower(User.email).like(pattern),
            User.phone.like(pattern)
        )
    ).order_by(User.first_name).limit(limit).all()


def quick_create_customer(session: Session, data: Dict[str, Any]) -> User:
    """Create a walk-in customer from the POS. Only the first name is required."""
    first_name = (data.get('first_name') or '').strip()
    if not first_name:
        raise BusinessLogicError('First name is required')

    email = (data.get('email') or '').strip().lower() or None
    if email and session.query(User).filter(func.lower(User.email) == email).first():
        raise BusinessLogicError(f'A customer with email {email} already exists')

    customer_type = data.get('customer_type') or CustomerType.REGULAR.value
    if customer_type not in [t.value for t in CustomerType]:
        raise BusinessLogicError('Invalid customer type')

    try:
        customer = User(
            email=email,
            first_name=first_name,
            last_name=(data.get('last_name') or '').strip() or None,
            phone=(data.get('phone') or '').strip() or None,
            role=UserRole.CUSTOMER.value,
            customer_type=customer_type,
            is_active=True,
        )
        session.add(customer)
        session.commit()
        logger.info(f"[POS] Quick-created customer {customer.id}")
        return customer
    except Exception:
        session.rollback()
        raise
