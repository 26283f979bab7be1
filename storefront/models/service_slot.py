"""Service Slot model - provider availability windows."""
from sqlalchemy import Column, String, Integer, Date, Time, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.database import Base, BigIntId
import enum


class SlotStatus(str, enum.Enum):
    AVAILABLE = 'available'
    FULL = 'full'
    CANCELLED = 'cancelled'


class ServiceSlot(Base):
    """Time slot offered by a provider for one service."""

    __tablename__ = 'service_slots'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    provider_id = Column(BigIntId, ForeignKey('service_providers.id'), nullable=False)
    service_id = Column(BigIntId, ForeignKey('service_offerings.id'), nullable=False)
    slot_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    capacity = Column(Integer, nullable=False, default=1)
    booked_count = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=SlotStatus.AVAILABLE.value)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    provider = relationship('ServiceProvider')
    service = relationship('ServiceOffering')

    @property
    def remaining(self):
        return max(self.capacity - self.booked_count, 0)

    def to_dict(self):
        return {
            'id': self.id,
            'provider_id': self.provider_id,
            'service_id': self.service_id,
            'slot_date': self.slot_date,
            'start_time': self.start_time.strftime('%H:%M'),
            'end_time': self.end_time.strftime('%H:%M'),
            'capacity': self.capacity,
            'booked_count': self.booked_count,
            'remaining': self.remaining,
            'status': self.status,
        }

    def __repr__(self):
        return f"<ServiceSlot(id={self.id}, date={self.slot_date}, status='{self.status}')>"
