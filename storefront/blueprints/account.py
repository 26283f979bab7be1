"""Customer account blueprint: address book and order history."""
from flask import Blueprint, g, jsonify
from storefront.database import get_session
from storefront.forms import parse_form
from storefront.forms.customer_forms import AddressForm
from storefront.middleware import require_login
from storefront.services import account_service
from storefront.services.order_service import list_user_orders, get_user_order
from storefront.services.booking_service import list_bookings, cancel_booking

account_bp = Blueprint('account', __name__, url_prefix='/account')


@account_bp.route('/addresses')
@require_login
def list_addresses():
    addresses = account_service.list_addresses(get_session(), g.user.id)
    return {'addresses': [a.to_dict() for a in addresses]}


@account_bp.route('/addresses', methods=['POST'])
@require_login
def create_address():
    data = parse_form(AddressForm)
    address = account_service.save_address(get_session(), g.user.id, data)
    return jsonify({'status': 'success', 'address': address.to_dict()}), 201


@account_bp.route('/addresses/<int:address_id>', methods=['PUT', 'PATCH'])
@require_login
def update_address(address_id):
    data = parse_form(AddressForm, partial=True)
    address = account_service.save_address(get_session(), g.user.id, data, address_id)
    return {'status': 'success', 'address': address.to_dict()}


@account_bp.route('/addresses/<int:address_id>', methods=['DELETE'])
@require_login
def delete_address(address_id):
    account_service.delete_address(get_session(), g.user.id, address_id)
    return {'status': 'success'}


@account_bp.route('/orders')
@require_login
def orders():
    orders = list_user_orders(get_session(), g.user.id)
    return {'orders': [o.to_dict(include_items=False) for o in orders]}


@account_bp.route('/orders/<int:order_id>')
@require_login
def order_detail(order_id):
    order = get_user_order(get_session(), g.user.id, order_id)
    return {'order': order.to_dict()}


@account_bp.route('/bookings')
@require_login
def bookings():
    bookings = list_bookings(get_session(), user_id=g.user.id)
    return {'bookings': [b.to_dict() for b in bookings]}


@account_bp.route('/bookings/<int:booking_id>/cancel', methods=['POST'])
@require_login
def cancel_my_booking(booking_id):
    booking = cancel_booking(get_session(), booking_id, user_id=g.user.id)
    return {'status': 'success', 'booking': booking.to_dict()}
