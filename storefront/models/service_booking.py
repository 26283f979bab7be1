"""Service Booking model."""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.database import Base, BigIntId
import enum


class BookingStatus(str, enum.Enum):
    CONFIRMED = 'confirmed'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class ServiceBooking(Base):
    """Customer booking of a provider slot."""

    __tablename__ = 'service_bookings'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    booking_number = Column(String(50), nullable=False, unique=True)
    slot_id = Column(BigIntId, ForeignKey('service_slots.id'), nullable=False)
    user_id = Column(BigIntId, ForeignKey('users.id'), nullable=True)
    customer_name = Column(String(200), nullable=False)
    customer_phone = Column(String(50), nullable=False)
    customer_email = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    locality_id = Column(BigIntId, ForeignKey('localities.id'), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    slot = relationship('ServiceSlot')
    user = relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'booking_number': self.booking_number,
            'slot': self.slot.to_dict() if self.slot else None,
            'user_id': self.user_id,
            'customer_name': self.customer_name,
            'customer_phone': self.customer_phone,
            'customer_email': self.customer_email,
            'address': self.address,
            'locality_id': self.locality_id,
            'notes': self.notes,
            'status': self.status,
            'created_at': self.created_at,
        }

    def __repr__(self):
        return f"<ServiceBooking(id={self.id}, number='{self.booking_number}', status='{self.status}')>"
