"""
Subscription customers, their per category discount overrides and the
weight based delivery tiers used to charge them for delivery.
"""
import logging
from decimal import Decimal
from typing import List, Dict, Any, Optional
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from storefront.models import (
    User, Order, OrderStatus, Category, SubscriptionCategoryDiscount,
    SubscriptionDeliveryTier, CustomerType, DiscountType, DeliverySchedule, UserRole
)
from storefront.exceptions import BusinessLogicError, NotFoundError
from storefront.services.pricing_service import to_money, ZERO

logger = logging.getLogger(__name__)

SUBSCRIPTION_FIELDS = (
    'first_name', 'last_name', 'phone',
    'subscription_discount_type', 'subscription_discount_value',
    'subscription_sale_discount_type', 'subscription_sale_discount_value',
    'subscription_delivery_fee', 'subscription_delivery_schedule',
    'subscription_start_date', 'subscription_end_date', 'subscription_notes',
)


def _validate_discount(discount_type: Optional[str], value, label: str) -> None:
    if value is None:
        return
    if discount_type not in (DiscountType.PERCENTAGE.value, DiscountType.FIXED.value):
        raise BusinessLogicError(f'{label} type must be percentage or fixed')
    value = Decimal(str(value))
    if value < 0:
        raise BusinessLogicError(f'{label} cannot be negative')
    if discount_type == DiscountType.PERCENTAGE.value and value > 100:
        raise BusinessLogicError(f'{label} cannot exceed 100%')


def _validate_subscription(user: User) -> None:
    _validate_discount(user.subscription_discount_type, user.subscription_discount_value, 'Discount')
    _validate_discount(user.subscription_sale_discount_type, user.subscription_sale_discount_value, 'Sale discount')
    schedule = user.subscription_delivery_schedule
    if schedule and schedule not in [s.value for s in DeliverySchedule]:
        raise BusinessLogicError('Delivery schedule must be weekly, biweekly or monthly')
    if (user.subscription_start_date and user.subscription_end_date
            and user.subscription_end_date < user.subscription_start_date):
        raise BusinessLogicError('Subscription end date must be after the start date')
    if user.subscription_delivery_fee is not None and Decimal(str(user.subscription_delivery_fee)) < 0:
        raise BusinessLogicError('Delivery fee cannot be negative')


def create_subscription_customer(session: Session, data: Dict[str, Any]) -> User:
    """Create a customer on subscription pricing. Email, password and first name are required."""
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    if not email or not password or not (data.get('first_name') or '').strip():
        raise BusinessLogicError('Email, password and first name are required')
    if session.query(User).filter(func.lower(User.email) == email).first():
        raise BusinessLogicError(f'A user with email {email} already exists')

    try:
        user = User(
            email=email,
            role=UserRole.CUSTOMER.value,
            customer_type=CustomerType.SUBSCRIPTION.value,
            is_active=True,
        )
        user.set_password(password)
        for field in SUBSCRIPTION_FIELDS:
            if field in data:
                setattr(user, field, data[field])
        _validate_subscription(user)
        session.add(user)
        session.commit()
        logger.info(f"[SUBSCRIPTION] Created subscription customer {email}")
        return user
    except Exception:
        session.rollback()
        raise


def update_subscription_customer(session: Session, user_id: int, data: Dict[str, Any]) -> User:
    user = session.get(User, user_id)
    if not user or user.role != UserRole.CUSTOMER.value:
        raise NotFoundError('Customer not found')
    try:
        for field in SUBSCRIPTION_FIELDS:
            if field in data:
                setattr(user, field, data[field])
        if data.get('customer_type'):
            if data['customer_type'] not in [t.value for t in CustomerType]:
                raise BusinessLogicError('Invalid customer type')
            user.customer_type = data['customer_type']
        if 'is_active' in data:
            user.is_active = bool(data['is_active'])
        if data.get('password'):
            user.set_password(data['password'])
        _validate_subscription(user)
        session.commit()
        return user
    except Exception:
        session.rollback()
        raise


def list_customers(session: Session, customer_type: Optional[str] = None,
                   search: Optional[str] = None) -> List[Dict[str, Any]]:
    """Customers with order count and total spent (cancelled orders excluded)."""
    stats = session.query(
        Order.user_id.label('user_id'),
        func.count(Order.id).label('order_count'),
        func.coalesce(func.sum(Order.total), 0).label('total_spent')
    ).filter(
        Order.status != OrderStatus.CANCELLED.value,
        Order.user_id.isnot(None)
    ).group_by(Order.user_id).subquery()

    query = session.query(User, stats.c.order_count, stats.c.total_spent).outerjoin(
        stats, stats.c.user_id == User.id
    ).filter(User.role == UserRole.CUSTOMER.value)

    if customer_type:
        query = query.filter(User.customer_type == customer_type)
    if search:
        pattern = f'%{search.strip().lower()}%'
        query = query.filter(or_(
            func.lower(User.email).like(pattern),
            func.lower(User.first_name).like(pattern),
            func.lower(User.last_name).like(pattern),
            User.phone.like(pattern)
        ))

    result = []
    for user, order_count, total_spent in query.order_by(User.created_at.desc(), User.id.desc()).all():
        data = user.to_dict()
        data['order_count'] = int(order_count or 0)
        data['total_spent'] = to_money(total_spent or 0)
        result.append(data)
    return result


# ---------------------------------------------------------------------------
# Category overrides
# ---------------------------------------------------------------------------

def list_category_discounts(session: Session, customer_id: int) -> List[SubscriptionCategoryDiscount]:
    return session.query(SubscriptionCategoryDiscount).filter(
        SubscriptionCategoryDiscount.customer_id == customer_id
    ).order_by(SubscriptionCategoryDiscount.id).all()


def upsert_category_discount(session: Session, customer_id: int, category_id: int,
                             data: Dict[str, Any]) -> SubscriptionCategoryDiscount:
    """Create or replace the override for one customer and category."""
    customer = session.get(User, customer_id)
    if not customer or not customer.is_subscription_customer:
        raise NotFoundError('Subscription customer not found')
    if not session.get(Category, category_id):
        raise NotFoundError('Category not found')

    _validate_discount(data.get('discount_type'), data.get('discount_value'), 'Discount')
    _validate_discount(data.get('sale_discount_type'), data.get('sale_discount_value'), 'Sale discount')

    try:
        row = session.query(SubscriptionCategoryDiscount).filter_by(
            customer_id=customer_id, category_id=category_id
        ).first()
        if not row:
            row = SubscriptionCategoryDiscount(customer_id=customer_id, category_id=category_id)
            session.add(row)
        for field in ('discount_type', 'discount_value', 'sale_discount_type', 'sale_discount_value'):
            setattr(row, field, data.get(field))
        session.commit()
        return row
    except IntegrityError:
        session.rollback()
        raise BusinessLogicError('An override for this category already exists')
    except Exception:
        session.rollback()
        raise


def delete_category_discount(session: Session, customer_id: int, override_id: int) -> None:
    row = session.query(SubscriptionCategoryDiscount).filter_by(id=override_id, customer_id=customer_id).first()
    if not row:
        raise NotFoundError('Category discount not found')
    session.delete(row)
    session.commit()


# ---------------------------------------------------------------------------
# Delivery tiers
# ---------------------------------------------------------------------------

def list_delivery_tiers(session: Session, active_only: bool = False) -> List[SubscriptionDeliveryTier]:
    query = session.query(SubscriptionDeliveryTier)
    if active_only:
        query = query.filter(SubscriptionDeliveryTier.is_active.is_(True))
    return query.order_by(
        SubscriptionDeliveryTier.up_to_weight_kg, SubscriptionDeliveryTier.sort_order
    ).all()


def save_delivery_tier(session: Session, data: Dict[str, Any], tier_id: Optional[int] = None) -> SubscriptionDeliveryTier:
    if tier_id:
        tier = session.get(SubscriptionDeliveryTier, tier_id)
        if not tier:
            raise NotFoundError('Delivery tier not found')
    else:
        tier = SubscriptionDeliveryTier()
        session.add(tier)
    try:
        for field in ('label', 'up_to_weight_kg', 'local_fee', 'pan_india_fee', 'sort_order', 'is_active'):
            if field in data:
                setattr(tier, field, data[field])
        if not tier.label:
            raise BusinessLogicError('Tier label is required')
        if tier.up_to_weight_kg is None or Decimal(str(tier.up_to_weight_kg)) <= 0:
            raise BusinessLogicError('Weight limit must be greater than 0')
        for fee in (tier.local_fee, tier.pan_india_fee):
            if fee is not None and Decimal(str(fee)) < 0:
                raise BusinessLogicError('Delivery fees cannot be negative')
        session.commit()
        return tier
    except Exception:
        session.rollback()
        raise


def delete_delivery_tier(session: Session, tier_id: int) -> None:
    tier = session.get(SubscriptionDeliveryTier, tier_id)
    if not tier:
        raise NotFoundError('Delivery tier not found')
    session.delete(tier)
    session.commit()


def pick_delivery_tier(tiers: List[SubscriptionDeliveryTier], weight) -> Optional[SubscriptionDeliveryTier]:
    """Smallest active tier covering the weight, else the largest active tier."""
    active = sorted(
        (t for t in tiers if t.is_active),
        key=lambda t: (Decimal(str(t.up_to_weight_kg)), t.sort_order or 0)
    )
    if not active:
        return None
    weight = Decimal(str(weight or 0))
    for tier in active:
        if weight <= Decimal(str(tier.up_to_weight_kg)):
            return tier
    return active[-1]


def resolve_delivery_fee(session: Session, weight, is_local: bool) -> Decimal:
    tier = pick_delivery_tier(list_delivery_tiers(session, active_only=True), weight)
    if tier is None:
        return ZERO
    return to_money(tier.local_fee if is_local else tier.pan_india_fee)
