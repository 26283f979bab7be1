"""
Service booking vertical.

Locations (Country > State > City > Locality), bookable services, providers
with their own portal, provider time slots and customer bookings.
"""
import logging
from datetime import datetime, date, time
from typing import List, Dict, Any, Optional
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from storefront.models import (
    Country, State, City, Locality,
    ServiceOffering, ServiceProvider, ServiceSlot, ServiceBooking, User,
    SlotStatus, BookingStatus
)
from storefront.exceptions import BusinessLogicError, NotFoundError
from storefront.services.order_service import generate_order_number

logger = logging.getLogger(__name__)

LOCATION_LEVELS = {
    'country': (Country, None, None),
    'state': (State, Country, 'country_id'),
    'city': (City, State, 'state_id'),
    'locality': (Locality, City, 'city_id'),
}


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------

def create_location(session: Session, level: str, data: Dict[str, Any]):
    """Create a location; every level below country needs an existing parent."""
    if level not in LOCATION_LEVELS:
        raise BusinessLogicError(f'Unknown location level: {level}')
    model, parent_model, parent_field = LOCATION_LEVELS[level]

    name = (data.get('name') or '').strip()
    if not name:
        raise BusinessLogicError('Name is required')

    values = {'name': name}
    if parent_model is not None:
        parent_id = data.get(parent_field)
        if not parent_id or not session.get(parent_model, int(parent_id)):
            raise NotFoundError(f'{parent_model.__name__} not found')
        values[parent_field] = int(parent_id)
    if level == 'country' and data.get('code'):
        values['code'] = data['code'].strip().upper()
    if level == 'locality' and data.get('postal_code'):
        values['postal_code'] = data['postal_code'].strip()

    try:
        location = model(**values)
        session.add(location)
        session.commit()
        return location
    except IntegrityError:
        session.rollback()
        raise BusinessLogicError(f'{model.__name__} "{name}" already exists')


def list_locations(session: Session, level: str, parent_id: Optional[int] = None,
                   active_only: bool = True) -> List[Any]:
    """Locations of one level, optionally restricted to a parent."""
    if level not in LOCATION_LEVELS:
        raise BusinessLogicError(f'Unknown location level: {level}')
    model, _, parent_field = LOCATION_LEVELS[level]
    query = session.query(model)
    if parent_field and parent_id:
        query = query.filter(getattr(model, parent_field) == int(parent_id))
    if active_only:
        query = query.filter(model.is_active.is_(True))
    return query.order_by(model.name).all()


# ---------------------------------------------------------------------------
# Services and providers
# ---------------------------------------------------------------------------

def save_service_offering(session: Session, data: Dict[str, Any], service_id: Optional[int] = None) -> ServiceOffering:
    if service_id:
        service = session.get(ServiceOffering, service_id)
        if not service:
            raise NotFoundError('Service not found')
    else:
        service = ServiceOffering()
        session.add(service)
    try:
        for field in ('name', 'description', 'duration_minutes', 'base_price', 'is_active'):
            if field in data:
                setattr(service, field, data[field])
        if not service.name:
            raise BusinessLogicError('Service name is required')
        if service.duration_minutes is not None and int(service.duration_minutes) <= 0:
            raise BusinessLogicError('Duration must be greater than 0')
        session.commit()
        return service
    except IntegrityError:
        session.rollback()
        raise BusinessLogicError(f'Service "{service.name}" already exists')
    except Exception:
        session.rollback()
        raise


def list_service_offerings(session: Session, active_only: bool = True) -> List[ServiceOffering]:
    query = session.query(ServiceOffering)
    if active_only:
        query = query.filter(ServiceOffering.is_active.is_(True))
    return query.order_by(ServiceOffering.name).all()


def _load_services(session: Session, service_ids: List[int]) -> List[ServiceOffering]:
    ids = {int(s) for s in service_ids or []}
    services = session.query(ServiceOffering).filter(ServiceOffering.id.in_(ids)).all() if ids else []
    if len(services) != len(ids):
        raise NotFoundError('One or more services not found')
    return services


def save_provider(session: Session, data: Dict[str, Any], provider_id: Optional[int] = None) -> ServiceProvider:
    """Create or update a provider. New providers need name, email and password."""
    if provider_id:
        provider = session.get(ServiceProvider, provider_id)
        if not provider:
            raise NotFoundError('Provider not found')
    else:
        if not data.get('password'):
            raise BusinessLogicError('Password is required')
        provider = ServiceProvider()

    try:
        for field in ('name', 'phone', 'bio', 'is_active', 'is_approved'):
            if field in data:
                setattr(provider, field, data[field])
        if data.get('email'):
            email = data['email'].strip().lower()
            clash = session.query(ServiceProvider).filter(func.lower(ServiceProvider.email) == email)
            if provider.id:
                clash = clash.filter(ServiceProvider.id != provider.id)
            if clash.first():
                raise BusinessLogicError(f'A provider with email {email} already exists')
            provider.email = email
        if not provider.name or not provider.email:
            raise BusinessLogicError('Name and email are required')
        if data.get('password'):
            provider.set_password(data['password'])

        if 'city_id' in data:
            if data['city_id'] and not session.get(City, int(data['city_id'])):
                raise NotFoundError('City not found')
            provider.city_id = data['city_id'] or None
        if 'locality_id' in data:
            locality = session.get(Locality, int(data['locality_id'])) if data['locality_id'] else None
            if data['locality_id'] and not locality:
                raise NotFoundError('Locality not found')
            if locality and provider.city_id and locality.city_id != provider.city_id:
                raise BusinessLogicError('Locality does not belong to the selected city')
            provider.locality_id = locality.id if locality else None
        if 'service_ids' in data:
            provider.services = _load_services(session, data['service_ids'])

        if provider.id is None:
            session.add(provider)
        session.commit()
        return provider
    except Exception:
        session.rollback()
        raise


def authenticate_provider(session: Session, email: str, password: str) -> ServiceProvider:
    provider = session.query(ServiceProvider).filter(
        func.lower(ServiceProvider.email) == (email or '').strip().lower()
    ).first()
    if not provider or not provider.check_password(password or ''):
        raise BusinessLogicError('Invalid email or password', status_code=401)
    if not provider.is_active or not provider.is_approved:
        raise BusinessLogicError('Your provider account is not active yet', status_code=403)
    return provider


def search_providers(session: Session, service_id: Optional[int] = None, city_id: Optional[int] = None,
                     locality_id: Optional[int] = None) -> List[ServiceProvider]:
    """Active, approved providers offering a service in a city."""
    query = session.query(ServiceProvider).filter(
        ServiceProvider.is_active.is_(True),
        ServiceProvider.is_approved.is_(True)
    )
    if service_id:
        query = query.filter(ServiceProvider.services.any(ServiceOffering.id == int(service_id)))
    if city_id:
        query = query.filter(ServiceProvider.city_id == int(city_id))
    if locality_id:
        query = query.filter(ServiceProvider.locality_id == int(locality_id))
    return query.order_by(ServiceProvider.name).all()


# ---------------------------------------------------------------------------
# Slots
# ---------------------------------------------------------------------------

def _parse_time(value) -> time:
    if isinstance(value, time):
        return value
    try:
        return datetime.strptime(str(value).strip(), '%H:%M').time()
    except ValueError:
        raise BusinessLogicError(f'Invalid time: {value}. Use HH:MM')


def _parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), '%Y-%m-%d').date()
    except ValueError:
        raise BusinessLogicError(f'Invalid date: {value}. Use YYYY-MM-DD')


def _check_overlap(session: Session, slot: ServiceSlot) -> None:
    query = session.query(ServiceSlot).filter(
        ServiceSlot.provider_id == slot.provider_id,
        ServiceSlot.slot_date == slot.slot_date,
        ServiceSlot.status != SlotStatus.CANCELLED.value,
        ServiceSlot.start_time < slot.end_time,
        ServiceSlot.end_time > slot.start_time
    )
    if slot.id:
        query = query.filter(ServiceSlot.id != slot.id)
    if query.first():
        raise BusinessLogicError('This slot overlaps another slot on the same day')


def save_slot(session: Session, provider: ServiceProvider, data: Dict[str, Any],
              slot_id: Optional[int] = None) -> ServiceSlot:
    """Create or update one of the provider's slots."""
    if slot_id:
        slot = session.query(ServiceSlot).filter_by(id=slot_id, provider_id=provider.id).first()
        if not slot:
            raise NotFoundError('Slot not found')
        if slot.status == SlotStatus.CANCELLED.value:
            raise BusinessLogicError('Cancelled slots cannot be edited')
    else:
        slot = ServiceSlot(provider_id=provider.id, capacity=1, booked_count=0, status=SlotStatus.AVAILABLE.value)

    try:
        if 'service_id' in data:
            service_id = int(data['service_id'])
            if service_id not in {s.id for s in provider.services}:
                raise BusinessLogicError('Provider does not offer this service')
            slot.service_id = service_id
        if 'slot_date' in data:
            slot.slot_date = _parse_date(data['slot_date'])
        if 'start_time' in data:
            slot.start_time = _parse_time(data['start_time'])
        if 'end_time' in data:
            slot.end_time = _parse_time(data['end_time'])
        if 'capacity' in data:
            slot.capacity = int(data['capacity'])

        if not slot.service_id or not slot.slot_date or not slot.start_time or not slot.end_time:
            raise BusinessLogicError('Service, date, start and end time are required')
        if slot.end_time <= slot.start_time:
            raise BusinessLogicError('End time must be after start time')
        if slot.capacity is None or slot.capacity < 1:
            raise BusinessLogicError('Capacity must be at least 1')
        if slot.capacity < (slot.booked_count or 0):
            raise BusinessLogicError('Capacity cannot be lower than the bookings already taken')

        slot.status = SlotStatus.FULL.value if slot.booked_count >= slot.capacity else SlotStatus.AVAILABLE.value
        _check_overlap(session, slot)

        if slot.id is None:
            session.add(slot)
        session.commit()
        return slot
    except Exception:
        session.rollback()
        raise


def cancel_slot(session: Session, provider_id: int, slot_id: int) -> ServiceSlot:
    """Cancel a slot together with its confirmed bookings."""
    slot = session.query(ServiceSlot).filter_by(id=slot_id, provider_id=provider_id).with_for_update().first()
    if not slot:
        raise NotFoundError('Slot not found')
    if slot.status == SlotStatus.CANCELLED.value:
        return slot
    try:
        bookings = session.query(ServiceBooking).filter(
            ServiceBooking.slot_id == slot.id,
            ServiceBooking.status == BookingStatus.CONFIRMED.value
        ).all()
        for booking in bookings:
            booking.status = BookingStatus.CANCELLED.value
        slot.booked_count = max((slot.booked_count or 0) - len(bookings), 0)
        slot.status = SlotStatus.CANCELLED.value
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info(f"[BOOKING] Slot {slot.id} cancelled ({len(bookings)} bookings cancelled)")
    return slot


def list_provider_slots(session: Session, provider_id: int, date_from: Optional[date] = None) -> List[ServiceSlot]:
    query = session.query(ServiceSlot).filter(ServiceSlot.provider_id == provider_id)
    if date_from:
        query = query.filter(ServiceSlot.slot_date >= date_from)
    return query.order_by(ServiceSlot.slot_date, ServiceSlot.start_time).all()


def list_available_slots(session: Session, provider_id: int, service_id: Optional[int] = None,
                         at: Optional[datetime] = None) -> List[ServiceSlot]:
    """Upcoming slots that can still be booked."""
    at = at or datetime.now()
    query = session.query(ServiceSlot).filter(
        ServiceSlot.provider_id == provider_id,
        ServiceSlot.status == SlotStatus.AVAILABLE.value,
        ServiceSlot.slot_date >= at.date()
    )
    if service_id:
        query = query.filter(ServiceSlot.service_id == int(service_id))
    slots = query.order_by(ServiceSlot.slot_date, ServiceSlot.start_time).all()
    return [s for s in slots if datetime.combine(s.slot_date, s.start_time) > at and s.remaining > 0]


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------

def book_slot(session: Session, slot_id: int, data: Dict[str, Any], user: Optional[User] = None,
              at: Optional[datetime] = None) -> ServiceBooking:
    """Book one place in a slot."""
    at = at or datetime.now()
    customer_name = (data.get('customer_name') or (user.full_name if user else '') or '').strip()
    customer_phone = (data.get('customer_phone') or (user.phone if user else '') or '').strip()
    if not customer_name or not customer_phone:
        raise BusinessLogicError('Name and phone are required')

    try:
        slot = session.query(ServiceSlot).filter(ServiceSlot.id == slot_id).with_for_update().first()
        if not slot:
            raise NotFoundError('Slot not found')
        if slot.status != SlotStatus.AVAILABLE.value:
            raise BusinessLogicError('This slot is not available')
        if datetime.combine(slot.slot_date, slot.start_time) <= at:
            raise BusinessLogicError('This slot has already started')
        if slot.booked_count >= slot.capacity:
            raise BusinessLogicError('This slot is fully booked')

        booking = ServiceBooking(
            booking_number=generate_order_number('BK'),
            slot_id=slot.id,
            user_id=user.id if user else None,
            customer_name=customer_name,
            customer_phone=customer_phone,
            customer_email=(data.get('customer_email') or (user.email if user else None) or None),
            address=(data.get('address') or '').strip() or None,
            locality_id=data.get('locality_id') or None,
            notes=(data.get('notes') or '').strip() or None,
            status=BookingStatus.CONFIRMED.value,
        )
        session.add(booking)

        slot.booked_count += 1
        if slot.booked_count >= slot.capacity:
            slot.status = SlotStatus.FULL.value
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"[BOOKING] {booking.booking_number} slot={slot.id} ({slot.booked_count}/{slot.capacity})")
    return booking


def _release_place(slot: ServiceSlot) -> None:
    slot.booked_count = max((slot.booked_count or 0) - 1, 0)
    if slot.status == SlotStatus.FULL.value and slot.booked_count < slot.capacity:
        slot.status = SlotStatus.AVAILABLE.value


def cancel_booking(session: Session, booking_id: int, user_id: Optional[int] = None,
                   provider_id: Optional[int] = None) -> ServiceBooking:
    """Cancel a confirmed booking and give its place back to the slot."""
    query = session.query(ServiceBooking).filter(ServiceBooking.id == booking_id)
    if user_id:
        query = query.filter(ServiceBooking.user_id == user_id)
    booking = query.first()
    if not booking or (provider_id and booking.slot.provider_id != provider_id):
        raise NotFoundError('Booking not found')
    if booking.status != BookingStatus.CONFIRMED.value:
        raise BusinessLogicError(f'Cannot cancel a {booking.status} booking')

    try:
        slot = session.query(ServiceSlot).filter(ServiceSlot.id == booking.slot_id).with_for_update().first()
        booking.status = BookingStatus.CANCELLED.value
        _release_place(slot)
        session.commit()
    except Exception:
        session.rollback()
        raise
    return booking


def update_booking_status(session: Session, provider_id: int, booking_id: int, status: str) -> ServiceBooking:
    """Provider side status change: confirmed -> completed or cancelled."""
    if status == BookingStatus.CANCELLED.value:
        return cancel_booking(session, booking_id, provider_id=provider_id)
    if status != BookingStatus.COMPLETED.value:
        raise BusinessLogicError('Status must be completed or cancelled')

    booking = session.get(ServiceBooking, booking_id)
    if not booking or booking.slot.provider_id != provider_id:
        raise NotFoundError('Booking not found')
    if booking.status != BookingStatus.CONFIRMED.value:
        raise BusinessLogicError(f'Cannot complete a {booking.status} booking')
    booking.status = BookingStatus.COMPLETED.value
    session.commit()
    return booking


def list_bookings(session: Session, provider_id: Optional[int] = None, user_id: Optional[int] = None,
                  status: Optional[str] = None, search: Optional[str] = None) -> List[ServiceBooking]:
    query = session.query(ServiceBooking).join(ServiceSlot, ServiceBooking.slot_id == ServiceSlot.id)
    if provider_id:
        query = query.filter(ServiceSlot.provider_id == provider_id)
    if user_id:
        query = query.filter(ServiceBooking.user_id == user_id)
    if status:
        query = query.filter(ServiceBooking.status == status)
    if search:
        pattern = f'%{search.strip().lower()}%'
        query = query.filter(or_(
            func.lower(ServiceBooking.booking_number).like(pattern),
            func.lower(ServiceBooking.customer_name).like(pattern),
            ServiceBooking.customer_phone.like(pattern)
        ))
    return query.order_by(ServiceSlot.slot_date.desc(), ServiceSlot.start_time.desc()).all()
