"""Service provider portal: sign-up, login, own slots and own bookings."""
from datetime import date
from flask import Blueprint, request, session, g, jsonify
from storefront.database import get_session
from storefront.forms import parse_form, get_json_body
from storefront.forms.booking_forms import ProviderForm, SlotForm
from storefront.forms.customer_forms import LoginForm
from storefront.middleware import require_provider
from storefront.services import booking_service
from storefront.exceptions import BusinessLogicError

provider_bp = Blueprint('provider', __name__, url_prefix='/provider')


@provider_bp.route('/register', methods=['POST'])
def register():
    """Provider sign-up. Accounts stay unapproved until an admin approves them."""
    data = parse_form(ProviderForm)
    data['is_approved'] = False
    data['is_active'] = True
    if not data.get('password'):
        raise BusinessLogicError('Password is required')
    provider = booking_service.save_provider(get_session(), data)
    return jsonify({'status': 'success', 'provider': provider.to_dict()}), 201


@provider_bp.route('/login', methods=['POST'])
def login():
    data = parse_form(LoginForm)
    provider = booking_service.authenticate_provider(get_session(), data['email'], data['password'])
    session.pop('provider_id', None)
    session['provider_id'] = provider.id
    session.permanent = True
    return {'status': 'success', 'provider': provider.to_dict()}


@provider_bp.route('/logout', methods=['POST'])
def logout():
    session.pop('provider_id', None)
    return {'status': 'success'}


@provider_bp.route('/me')
@require_provider
def me():
    return {'provider': g.provider.to_dict()}


@provider_bp.route('/slots')
@require_provider
def slots():
    upcoming_only = request.args.get('upcoming', '1') != '0'
    rows = booking_service.list_provider_slots(
        get_session(), g.provider.id, date_from=date.today() if upcoming_only else None
    )
    return {'slots': [s.to_dict() for s in rows]}


@provider_bp.route('/slots', methods=['POST'])
@require_provider
def create_slot():
    data = parse_form(SlotForm)
    slot = booking_service.save_slot(get_session(), g.provider, data)
    return jsonify({'status': 'success', 'slot': slot.to_dict()}), 201


@provider_bp.route('/slots/<int:slot_id>', methods=['PUT', 'PATCH'])
@require_provider
def update_slot(slot_id):
    data = parse_form(SlotForm, partial=True)
    slot = booking_service.save_slot(get_session(), g.provider, data, slot_id)
    return {'status': 'success', 'slot': slot.to_dict()}


@provider_bp.route('/slots/<int:slot_id>/cancel', methods=['POST'])
@require_provider
def cancel_slot(slot_id):
    slot = booking_service.cancel_slot(get_session(), g.provider.id, slot_id)
    return {'status': 'success', 'slot': slot.to_dict()}


@provider_bp.route('/bookings')
@require_provider
def bookings():
    rows = booking_service.list_bookings(
        get_session(), provider_id=g.provider.id, status=request.args.get('status')
    )
    return {'bookings': [b.to_dict() for b in rows]}


@provider_bp.route('/bookings/<int:booking_id>/status', methods=['POST'])
@require_provider
def update_booking_status(booking_id):
    status = (get_json_body().get('status') or '').strip()
    booking = booking_service.update_booking_status(get_session(), g.provider.id, booking_id, status)
    return {'status': 'success', 'booking': booking.to_dict()}
