"""Subscription Delivery Tier model - weight based delivery fees."""
from sqlalchemy import Column, String, Integer, Boolean, Numeric, DateTime
from sqlalchemy.sql import func
from storefront.database import Base, BigIntId


class SubscriptionDeliveryTier(Base):
    """Delivery fee for orders up to a given weight, split by local and PAN India."""

    __tablename__ = 'subscription_delivery_tiers'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    label = Column(String(100), nullable=False)
    up_to_weight_kg = Column(Numeric(8, 2), nullable=False)
    local_fee = Column(Numeric(10, 2), nullable=False, default=0)
    pan_india_fee = Column(Numeric(10, 2), nullable=False, default=0)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    def to_dict(self):
        return {
            'id': self.id,
            'label': self.label,
            'up_to_weight_kg': self.up_to_weight_kg,
            'local_fee': self.local_fee,
            'pan_india_fee': self.pan_india_fee,
            'sort_order': self.sort_order,
            'is_active': self.is_active,
        }

    def __repr__(self):
        return f"<SubscriptionDeliveryTier(id={self.id}, up_to={self.up_to_weight_kg}kg)>"
