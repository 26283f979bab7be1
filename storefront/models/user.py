"""User model - storefront customers, POS walk-in customers and back-office staff."""
from sqlalchemy import Column, String, Boolean, Numeric, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash
from storefront.database import Base, BigIntId
import enum


class UserRole(str, enum.Enum):
    """Back-office roles. Customers carry the CUSTOMER role."""
    ADMIN = 'admin'
    MANAGER = 'manager'
    SUPPORT = 'support'
    CUSTOMER = 'customer'


class CustomerType(str, enum.Enum):
    """Customer pricing tier."""
    REGULAR = 'regular'
    SUBSCRIPTION = 'subscription'
    RETAILER = 'retailer'
    DISTRIBUTOR = 'distributor'
    SELF_EMPLOYED = 'self_employed'


class DiscountType(str, enum.Enum):
    """How a discount value is interpreted."""
    PERCENTAGE = 'percentage'
    FIXED = 'fixed'


class DeliverySchedule(str, enum.Enum):
    """Delivery cadence for subscription customers."""
    WEEKLY = 'weekly'
    BIWEEKLY = 'biweekly'
    MONTHLY = 'monthly'


STAFF_ROLES = (UserRole.ADMIN.value, UserRole.MANAGER.value, UserRole.SUPPORT.value)


class User(Base):
    """User model."""

    __tablename__ = 'users'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=True, unique=True)
    password_hash = Column(String(255), nullable=True)  # Nullable for POS walk-in customers
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.CUSTOMER.value)
    customer_type = Column(String(20), nullable=False, default=CustomerType.REGULAR.value)
    is_active = Column(Boolean, nullable=False, default=True)

    # Subscription terms (only meaningful for customer_type == 'subscription')
    subscription_discount_type = Column(String(20), nullable=True)
    subscription_discount_value = Column(Numeric(10, 2), nullable=True)
    subscription_sale_discount_type = Column(String(20), nullable=True)
    subscription_sale_discount_value = Column(Numeric(10, 2), nullable=True)
    subscription_delivery_fee = Column(Numeric(10, 2), nullable=True)
    subscription_delivery_schedule = Column(String(20), nullable=True)
    subscription_start_date = Column(DateTime, nullable=True)
    subscription_end_date = Column(DateTime, nullable=True)
    subscription_notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    orders = relationship('Order', back_populates='user', foreign_keys='Order.user_id')
    addresses = relationship('Address', back_populates='user', cascade='all, delete-orphan')
    category_discounts = relationship(
        'SubscriptionCategoryDiscount', back_populates='customer', cascade='all, delete-orphan'
    )

    def set_password(self, password):
        """Set password hash."""
        self.password_hash = generate_password_hash(password, method='scrypt')

    def check_password(self, password):
        """Check password against hash."""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def full_name(self):
        return ' '.join(p for p in (self.first_name, self.last_name) if p) or None

    @property
    def is_staff(self):
        return self.role in STAFF_ROLES

    @property
    def is_subscription_customer(self):
        return self.customer_type == CustomerType.SUBSCRIPTION.value

    def to_dict(self):
        data = {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'phone': self.phone,
            'role': self.role,
            'customer_type': self.customer_type,
            'is_active': self.is_active,
        }
        if self.is_subscription_customer:
            data['subscription'] = {
                'discount_type': self.subscription_discount_type,
                'discount_value': self.subscription_discount_value,
                'sale_discount_type': self.subscription_sale_discount_type,
                'sale_discount_value': self.subscription_sale_discount_value,
                'delivery_fee': self.subscription_delivery_fee,
                'delivery_schedule': self.subscription_delivery_schedule,
                'start_date': self.subscription_start_date,
                'end_date': self.subscription_end_date,
                'notes': self.subscription_notes,
            }
        return data

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}', type='{self.customer_type}')>"
