"""Cart service - persistent cart rows for customers and anonymous sessions."""
import logging
from datetime import datetime
from typing import List, Dict, Any, Optional
from sqlalchemy.orm import Session
from storefront.models import CartItem, Product, User
from storefront.exceptions import BusinessLogicError, NotFoundError, InsufficientStockError
from storefront.services.pricing_service import load_category_overrides, resolve_price, to_money, ZERO

logger = logging.getLogger(__name__)


def _owner_filter(query, user_id: Optional[int], session_id: Optional[str]):
    if user_id:
        return query.filter(CartItem.user_id == user_id)
    if session_id:
        return query.filter(CartItem.user_id.is_(None), CartItem.session_id == session_id)
    raise BusinessLogicError('Cart owner is required')


def get_cart_items(session: Session, user_id: Optional[int] = None, session_id: Optional[str] = None) -> List[CartItem]:
    query = _owner_filter(session.query(CartItem), user_id, session_id)
    return query.order_by(CartItem.id).all()


def _check_availability(product: Product, quantity: int) -> None:
    if not product.is_active:
        raise BusinessLogicError(f'"{product.title}" is no longer available')
    if not product.allow_backorder and quantity > product.stock:
        raise InsufficientStockError(product.title, quantity, product.stock)


def add_to_cart(session: Session, product_id: int, quantity: int = 1,
                user_id: Optional[int] = None, session_id: Optional[str] = None) -> CartItem:
    """Add a product or increase the quantity of an existing line."""
    quantity = int(quantity)
    if quantity <= 0:
        raise BusinessLogicError('Quantity must be greater than 0')

    product = session.get(Product, product_id)
    if not product:
        raise NotFoundError('Product not found')

    try:
        item = _owner_filter(session.query(CartItem), user_id, session_id).filter(
            CartItem.product_id == product_id
        ).first()
        new_quantity = quantity + (item.quantity if item else 0)
        _check_availability(product, new_quantity)

        if item:
            item.quantity = new_quantity
            item.updated_at = datetime.now()
        else:
            item = CartItem(user_id=user_id, session_id=None if user_id else session_id,
                            product_id=product_id, quantity=quantity)
            session.add(item)
        session.commit()
        return item
    except Exception:
        session.rollback()
        raise


def update_cart_item(session: Session, item_id: int, quantity: int,
                     user_id: Optional[int] = None, session_id: Optional[str] = None) -> Optional[CartItem]:
    """Set a line quantity. Zero or less removes the line and returns None."""
    item = _owner_filter(session.query(CartItem), user_id, session_id).filter(CartItem.id == item_id).first()
    if not item:
        raise NotFoundError('Cart item not found')

    quantity = int(quantity)
    try:
        if quantity <= 0:
            session.delete(item)
            session.commit()
            return None
        _check_availability(item.product, quantity)
        item.quantity = quantity
        item.updated_at = datetime.now()
        session.commit()
        return item
    except Exception:
        session.rollback()
        raise


def remove_cart_item(session: Session, item_id: int,
                     user_id: Optional[int] = None, session_id: Optional[str] = None) -> None:
    update_cart_item(session, item_id, 0, user_id, session_id)


def clear_cart(session: Session, user_id: Optional[int] = None, session_id: Optional[str] = None,
               commit: bool = True) -> int:
    count = _owner_filter(session.query(CartItem), user_id, session_id).delete(synchronize_session=False)
    if commit:
        session.commit()
    return count


def merge_guest_cart(session: Session, session_id: str, user_id: int) -> int:
    """Move an anonymous cart into the customer's cart after login."""
    if not session_id:
        return 0
    guest_items = get_cart_items(session, session_id=session_id)
    if not guest_items:
        return 0

    try:
        existing = {i.product_id: i for i in get_cart_items(session, user_id=user_id)}
        for guest_item in guest_items:
            target = existing.get(guest_item.product_id)
            if target:
                target.quantity += guest_item.quantity
                session.delete(guest_item)
            else:
                guest_item.user_id = user_id
                guest_item.session_id = None
        session.commit()
        logger.info(f"[CART] Merged {len(guest_items)} guest lines into user {user_id}")
        return len(guest_items)
    except Exception:
        session.rollback()
        raise


def price_lines(session: Session, entries: List[Dict[str, Any]], user: Optional[User] = None,
                at: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Price `[{'product': Product, 'quantity': int}]` for a customer.

    Returns lines with resolved unit prices plus subtotal, item count and weight.
    """
    overrides = load_category_overrides(session, user)
    lines = []
    subtotal = ZERO
    item_count = 0
    weight = ZERO

    for entry in entries:
        product = entry['product']
        quantity = int(entry['quantity'])
        quote = resolve_price(product, user, at, overrides.get(product.category_id))
        line_total = to_money(quote.unit_price * quantity)
        lines.append({
            'product_id': product.id,
            'product': product,
            'title': product.title,
            'sku': product.sku,
            'image_url': product.image_url,
            'quantity': quantity,
            'unit_price': quote.unit_price,
            'list_price': quote.list_price,
            'gst_rate': to_money(product.gst_rate),
            'line_total': line_total,
            'pricing': quote,
        })
        subtotal += line_total
        item_count += quantity
        if product.weight is not None:
            weight += to_money(product.weight) * quantity

    return {
        'lines': lines,
        'subtotal': to_money(subtotal),
        'item_count': item_count,
        'weight': weight,
    }


def calculate_cart_totals(session: Session, items: List[CartItem], user: Optional[User] = None,
                          at: Optional[datetime] = None) -> Dict[str, Any]:
    totals = price_lines(
        session,
        [{'product': item.product, 'quantity': item.quantity} for item in items],
        user, at
    )
    for line, item in zip(totals['lines'], items):
        line['id'] = item.id
    return totals


def serialize_cart(totals: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'items': [
            {
                'id': line.get('id'),
                'product_id': line['product_id'],
                'title': line['title'],
                'sku': line['sku'],
                'image_url': line['image_url'],
                'quantity': line['quantity'],
                'unit_price': line['unit_price'],
                'list_price': line['list_price'],
                'line_total': line['line_total'],
            }
            for line in totals['lines']
        ],
        'subtotal': totals['subtotal'],
        'item_count': totals['item_count'],
    }
