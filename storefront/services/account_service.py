"""
Account service for customer registration, login and address book.
"""
import logging
from typing import List, Dict, Any, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from storefront.models import User, Address, UserRole, CustomerType
from storefront.exceptions import BusinessLogicError, NotFoundError

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = ('full_name', 'line1', 'line2', 'city', 'state', 'postal_code', 'country', 'phone', 'gst_number')


def get_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.query(User).filter(func.lower(User.email) == (email or '').strip().lower()).first()


def register_customer(session: Session, data: Dict[str, Any]) -> User:
    """Create a regular customer account."""
    email = (data.get('email') or '').strip().lower()
    if get_user_by_email(session, email):
        raise BusinessLogicError('An account with this email already exists')

    try:
        user = User(
            email=email,
            first_name=(data.get('first_name') or '').strip() or None,
            last_name=(data.get('last_name') or '').strip() or None,
            phone=(data.get('phone') or '').strip() or None,
            role=UserRole.CUSTOMER.value,
            customer_type=CustomerType.REGULAR.value,
            is_active=True,
        )
        user.set_password(data['password'])
        session.add(user)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"New customer registered: {email}")
    return user


def authenticate_user(session: Session, email: str, password: str) -> User:
    user = get_user_by_email(session, email)
    if not user or not user.is_active or not user.check_password(password or ''):
        raise BusinessLogicError('Invalid email or password', status_code=401)
    return user


def create_staff_user(session: Session, email: str, password: str, role: str = UserRole.ADMIN.value,
                      first_name: Optional[str] = None) -> User:
    """Create a back-office account (used by the CLI)."""
    if role not in (UserRole.ADMIN.value, UserRole.MANAGER.value, UserRole.SUPPORT.value):
        raise BusinessLogicError('Role must be admin, manager or support')
    if get_user_by_email(session, email):
        raise BusinessLogicError(f'A user with email {email} already exists')
    try:
        user = User(email=email.strip().lower(), role=role, first_name=first_name, is_active=True)
        user.set_password(password)
        session.add(user)
        session.commit()
        return user
    except Exception:
        session.rollback()
        raise


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------

def list_addresses(session: Session, user_id: int) -> List[Address]:
    return session.query(Address).filter(Address.user_id == user_id).order_by(
        Address.is_default.desc(), Address.id
    ).all()


def get_address(session: Session, user_id: int, address_id: int) -> Address:
    address = session.query(Address).filter_by(id=address_id, user_id=user_id).first()
    if not address:
        raise NotFoundError('Address not found')
    return address


def _clear_default(session: Session, user_id: int, keep_id: Optional[int] = None) -> None:
    query = session.query(Address).filter(Address.user_id == user_id, Address.is_default.is_(True))
    if keep_id:
        query = query.filter(Address.id != keep_id)
    for other in query.all():
        other.is_default = False


def save_address(session: Session, user_id: int, data: Dict[str, Any], address_id: Optional[int] = None) -> Address:
    """Create or update an address. The first address becomes the default."""
    if address_id:
        address = get_address(session, user_id, address_id)
    else:
        address = Address(user_id=user_id, country='India')
        if not list_addresses(session, user_id):
            address.is_default = True
        session.add(address)

    try:
        for field in ADDRESS_FIELDS:
            if field in data:
                setattr(address, field, data[field])
        if 'is_default' in data and (address_id or not address.is_default):
            address.is_default = bool(data['is_default'])
        if address.is_default is None:
            address.is_default = False
        session.flush()
        if address.is_default:
            _clear_default(session, user_id, keep_id=address.id)
        session.commit()
        return address
    except Exception:
        session.rollback()
        raise


def delete_address(session: Session, user_id: int, address_id: int) -> None:
    address = get_address(session, user_id, address_id)
    was_default = address.is_default
    session.delete(address)
    session.flush()
    if was_default:
        remaining = list_addresses(session, user_id)
        if remaining:
            remaining[0].is_default = True
    session.commit()
