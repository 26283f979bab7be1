"""Checkout and order tracking blueprint."""
import logging
from flask import Blueprint, g, request, jsonify
from storefront.database import get_session
from storefront.forms import parse_form
from storefront.forms.customer_forms import AddressForm
from storefront.forms.order_forms import CheckoutForm
from storefront.blueprints.metrics import record_order
from storefront.services.account_service import get_address
from storefront.services.order_service import place_order, track_order
from storefront.exceptions import BusinessLogicError

logger = logging.getLogger(__name__)

orders_bp = Blueprint('orders', __name__)


def _address_from_payload(data, key):
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise BusinessLogicError(f'{key} must be an object')
    return parse_form(AddressForm, data=value)


@orders_bp.route('/checkout', methods=['POST'])
def checkout():
    """
    Place an order from the current cart.

    Body: shipping_address (object) or address_id (saved address),
    billing_address (optional), payment_method (cod | online),
    coupon_code, guest_email (required without login), notes.
    """
    data = parse_form(CheckoutForm)
    db_session = get_session()

    shipping_address = _address_from_payload(data, 'shipping_address')
    if shipping_address is None and data.get('address_id'):
        if not g.user:
            raise BusinessLogicError('Log in to use a saved address')
        shipping_address = get_address(db_session, g.user.id, data['address_id']).to_dict()
        for key in ('id', 'user_id', 'is_default', 'created_at'):
            shipping_address.pop(key, None)
    if shipping_address is None:
        raise BusinessLogicError('Shipping address is required')

    order = place_order(
        db_session,
        shipping_address,
        user=g.user,
        session_id=None if g.user else g.get('cart_session_id'),
        guest_email=data.get('guest_email'),
        billing_address=_address_from_payload(data, 'billing_address'),
        payment_method=data.get('payment_method') or 'cod',
        coupon_code=data.get('coupon_code'),
        notes=data.get('notes'),
    )
    record_order(order)
    return jsonify({'status': 'success', 'order': order.to_dict()}), 201


@orders_bp.route('/orders/track')
def track():
    """Public tracking by order number (and optionally the order email)."""
    order_number = request.args.get('order_number', '').strip()
    if not order_number:
        raise BusinessLogicError('Order number is required')
    order = track_order(get_session(), order_number, request.args.get('email'))
    return {
        'order_number': order.order_number,
        'status': order.status,
        'payment_status': order.payment_status,
        'tracking_number': order.tracking_number,
        'total': order.total,
        'created_at': order.created_at,
        'updated_at': order.updated_at,
    }
