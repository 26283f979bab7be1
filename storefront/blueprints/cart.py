"""Cart blueprint - works for logged in customers and anonymous sessions."""
from flask import Blueprint, g, jsonify
from storefront.database import get_session
from storefront.forms import parse_form, get_json_body
from storefront.forms.order_forms import CartItemForm
from storefront.middleware import ensure_cart_session_id
from storefront.services import cart_service
from storefront.services.coupon_service import validate_coupon, calculate_coupon_discount
from storefront.services.pricing_service import to_money
from storefront.exceptions import BusinessLogicError

cart_bp = Blueprint('cart', __name__, url_prefix='/cart')


def _cart_owner(create=False):
    """(user_id, session_id) for the current visitor."""
    if g.user:
        return g.user.id, None
    session_id = ensure_cart_session_id() if create else g.get('cart_session_id')
    return None, session_id


def _cart_response():
    user_id, session_id = _cart_owner()
    if not user_id and not session_id:
        return {'items': [], 'subtotal': to_money(0), 'item_count': 0}
    db_session = get_session()
    items = cart_service.get_cart_items(db_session, user_id=user_id, session_id=session_id)
    totals = cart_service.calculate_cart_totals(db_session, items, g.user)
    return cart_service.serialize_cart(totals)


@cart_bp.route('')
def view_cart():
    return _cart_response()


@cart_bp.route('/items', methods=['POST'])
def add_item():
    data = parse_form(CartItemForm)
    user_id, session_id = _cart_owner(create=True)
    cart_service.add_to_cart(
        get_session(), data['product_id'], data.get('quantity') or 1,
        user_id=user_id, session_id=session_id
    )
    return jsonify(_cart_response()), 201


@cart_bp.route('/items/<int:item_id>', methods=['PUT', 'PATCH'])
def update_item(item_id):
    data = get_json_body()
    if data.get('quantity') is None:
        raise BusinessLogicError('Quantity is required')
    try:
        quantity = int(data['quantity'])
    except (TypeError, ValueError):
        raise BusinessLogicError('Quantity must be a number')
    user_id, session_id = _cart_owner()
    cart_service.update_cart_item(get_session(), item_id, quantity, user_id=user_id, session_id=session_id)
    return _cart_response()


@cart_bp.route('/items/<int:item_id>', methods=['DELETE'])
def remove_item(item_id):
    user_id, session_id = _cart_owner()
    cart_service.remove_cart_item(get_session(), item_id, user_id=user_id, session_id=session_id)
    return _cart_response()


@cart_bp.route('', methods=['DELETE'])
def clear():
    user_id, session_id = _cart_owner()
    if user_id or session_id:
        cart_service.clear_cart(get_session(), user_id=user_id, session_id=session_id)
    return _cart_response()


@cart_bp.route('/coupon', methods=['POST'])
def preview_coupon():
    """Check a coupon against the current cart without placing an order."""
    data = get_json_body()
    code = (data.get('code') or '').strip()
    if not code:
        raise BusinessLogicError('Coupon code is required')

    user_id, session_id = _cart_owner()
    if not user_id and not session_id:
        raise BusinessLogicError('Your cart is empty')

    db_session = get_session()
    items = cart_service.get_cart_items(db_session, user_id=user_id, session_id=session_id)
    if not items:
        raise BusinessLogicError('Your cart is empty')
    totals = cart_service.calculate_cart_totals(db_session, items, g.user)

    coupon = validate_coupon(db_session, code, user_id=user_id, guest_email=data.get('guest_email'))
    discount = calculate_coupon_discount(coupon, totals['lines'], totals['subtotal'])
    return {
        'code': coupon.code,
        'scope': coupon.scope.value,
        'discount': discount,
        'subtotal': totals['subtotal'],
        'subtotal_after_discount': to_money(totals['subtotal'] - discount),
    }
