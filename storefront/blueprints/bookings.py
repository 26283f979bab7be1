"""
Service bookings blueprint.

Public browsing (locations, services, providers, open slots) and booking,
plus the admin side of the vertical under /bookings/admin.
"""
from flask import Blueprint, request, g, jsonify
from storefront.database import get_session
from storefront.forms import parse_form
from storefront.forms.booking_forms import LocationForm, ServiceOfferingForm, ProviderForm, BookingForm
from storefront.middleware import require_admin
from storefront.models import ServiceProvider
from storefront.blueprints.metrics import bookings_created_total
from storefront.services import booking_service
from storefront.exceptions import NotFoundError

bookings_bp = Blueprint('bookings', __name__, url_prefix='/bookings')

PARENT_ARG = {'country': None, 'state': 'country_id', 'city': 'state_id', 'locality': 'city_id'}


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

@bookings_bp.route('/locations/<level>')
def locations(level):
    """Countries, or the states / cities / localities of a parent."""
    parent_arg = PARENT_ARG.get(level)
    parent_id = request.args.get(parent_arg, type=int) if parent_arg else None
    rows = booking_service.list_locations(get_session(), level, parent_id)
    return {'locations': [r.to_dict() for r in rows]}


@bookings_bp.route('/services')
def services():
    rows = booking_service.list_service_offerings(get_session())
    return {'services': [s.to_dict() for s in rows]}


@bookings_bp.route('/providers')
def providers():
    rows = booking_service.search_providers(
        get_session(),
        service_id=request.args.get('service_id', type=int),
        city_id=request.args.get('city_id', type=int),
        locality_id=request.args.get('locality_id', type=int)
    )
    return {'providers': [p.to_dict() for p in rows]}


@bookings_bp.route('/providers/<int:provider_id>/slots')
def provider_slots(provider_id):
    db_session = get_session()
    provider = db_session.get(ServiceProvider, provider_id)
    if not provider or not provider.is_active or not provider.is_approved:
        raise NotFoundError('Provider not found')
    slots = booking_service.list_available_slots(
        db_session, provider_id, service_id=request.args.get('service_id', type=int)
    )
    return {'provider': provider.to_dict(), 'slots': [s.to_dict() for s in slots]}


@bookings_bp.route('/slots/<int:slot_id>/book', methods=['POST'])
def book(slot_id):
    data = parse_form(BookingForm)
    booking = booking_service.book_slot(get_session(), slot_id, data, user=g.user)
    bookings_created_total.inc()
    return jsonify({'status': 'success', 'booking': booking.to_dict()}), 201


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

@bookings_bp.route('/admin/locations/<level>', methods=['POST'])
@require_admin
def create_location(level):
    data = parse_form(LocationForm)
    location = booking_service.create_location(get_session(), level, data)
    return jsonify({'status': 'success', 'location': location.to_dict()}), 201


@bookings_bp.route('/admin/services')
@require_admin
def admin_services():
    rows = booking_service.list_service_offerings(get_session(), active_only=False)
    return {'services': [s.to_dict() for s in rows]}


@bookings_bp.route('/admin/services', methods=['POST'])
@require_admin
def create_service():
    data = parse_form(ServiceOfferingForm)
    service = booking_service.save_service_offering(get_session(), data)
    return jsonify({'status': 'success', 'service': service.to_dict()}), 201


@bookings_bp.route('/admin/services/<int:service_id>', methods=['PUT', 'PATCH'])
@require_admin
def update_service(service_id):
    data = parse_form(ServiceOfferingForm, partial=True)
    service = booking_service.save_service_offering(get_session(), data, service_id)
    return {'status': 'success', 'service': service.to_dict()}


@bookings_bp.route('/admin/providers')
@require_admin
def admin_providers():
    rows = get_session().query(ServiceProvider).order_by(ServiceProvider.created_at.desc()).all()
    return {'providers': [p.to_dict() for p in rows]}


@bookings_bp.route('/admin/providers', methods=['POST'])
@require_admin
def create_provider():
    data = parse_form(ProviderForm)
    data.setdefault('is_approved', True)
    provider = booking_service.save_provider(get_session(), data)
    return jsonify({'status': 'success', 'provider': provider.to_dict()}), 201


@bookings_bp.route('/admin/providers/<int:provider_id>', methods=['PUT', 'PATCH'])
@require_admin
def update_provider(provider_id):
    data = parse_form(ProviderForm, partial=True)
    provider = booking_service.save_provider(get_session(), data, provider_id)
    return {'status': 'success', 'provider': provider.to_dict()}


@bookings_bp.route('/admin/bookings')
@require_admin
def admin_bookings():
    rows = booking_service.list_bookings(
        get_session(),
        provider_id=request.args.get('provider_id', type=int),
        status=request.args.get('status'),
        search=request.args.get('search')
    )
    return {'bookings': [b.to_dict() for b in rows]}
