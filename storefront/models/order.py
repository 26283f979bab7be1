"""Order model."""
from sqlalchemy import Column, String, Text, Numeric, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.database import Base, BigIntId
import enum


class OrderStatus(str, enum.Enum):
    """Order fulfilment status."""
    PENDING = 'pending'
    PROCESSING = 'processing'
    SHIPPED = 'shipped'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'


class PaymentStatus(str, enum.Enum):
    """Payment status."""
    PENDING = 'pending'
    PAID = 'paid'
    FAILED = 'failed'


class OrderSource(str, enum.Enum):
    """Where the order was placed."""
    ONLINE = 'online'
    POS = 'pos'


class PosPaymentType(str, enum.Enum):
    """Payment types accepted at the POS terminal."""
    CASH = 'cash'
    CARD = 'card'
    UPI = 'upi'
    CREDIT = 'credit'


class Order(Base):
    """
    Order placed online or at the POS.

    Monetary fields are snapshots taken at purchase time. `tax` is the GST
    already contained in the item prices, it is not added on top of `total`.
    """

    __tablename__ = 'orders'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    order_number = Column(String(50), nullable=False, unique=True)
    source = Column(String(10), nullable=False, default=OrderSource.ONLINE.value)
    user_id = Column(BigIntId, ForeignKey('users.id'), nullable=True)
    guest_email = Column(String(255), nullable=True)

    subtotal = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    tax = Column(Numeric(10, 2), nullable=False, default=0)
    shipping_cost = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)

    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value)
    payment_method = Column(String(20), nullable=True)  # online, cod
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    shipping_address = Column(JSON, nullable=True)
    billing_address = Column(JSON, nullable=True)
    tracking_number = Column(String(100), nullable=True)
    coupon_code = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    # POS-only fields
    pos_payment_type = Column(String(20), nullable=True)
    pos_customer_name = Column(String(200), nullable=True)
    pos_customer_phone = Column(String(50), nullable=True)
    created_by_id = Column(BigIntId, ForeignKey('users.id'), nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship('User', back_populates='orders', foreign_keys=[user_id])
    created_by = relationship('User', foreign_keys=[created_by_id])
    items = relationship('OrderItem', back_populates='order', cascade='all, delete-orphan')

    @property
    def is_pos(self):
        return self.source == OrderSource.POS.value

    @property
    def customer_name(self):
        if self.pos_customer_name:
            return self.pos_customer_name
        if self.user and self.user.full_name:
            return self.user.full_name
        address = self.billing_address or self.shipping_address or {}
        return address.get('full_name')

    @property
    def customer_email(self):
        if self.user and self.user.email:
            return self.user.email
        return self.guest_email

    def to_dict(self, include_items=True):
        data = {
            'id': self.id,
            'order_number': self.order_number,
            'source': self.source,
            'user_id': self.user_id,
            'guest_email': self.guest_email,
            'customer_name': self.customer_name,
            'subtotal': self.subtotal,
            'discount': self.discount,
            'tax': self.tax,
            'shipping_cost': self.shipping_cost,
            'total': self.total,
            'status': self.status,
            'payment_method': self.payment_method,
            'payment_status': self.payment_status,
            'shipping_address': self.shipping_address,
            'billing_address': self.billing_address,
            'tracking_number': self.tracking_number,
            'coupon_code': self.coupon_code,
            'notes': self.notes,
            'pos_payment_type': self.pos_payment_type,
            'pos_customer_phone': self.pos_customer_phone,
            'created_at': self.created_at,
        }
        if include_items:
            data['items'] = [item.to_dict() for item in self.items]
        return data

    def __repr__(self):
        return f"<Order(id={self.id}, number='{self.order_number}', total={self.total}, status='{self.status}')>"
