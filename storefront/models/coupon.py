"""Coupon model."""
from sqlalchemy import Column, String, Text, Integer, Boolean, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.database import Base, BigIntId


class Coupon(Base):
    """
    Discount coupon.

    The usage class (product / bulk / store-wide) is never stored: it is
    derived from whether `product_id` and `min_quantity` are set.
    """

    __tablename__ = 'coupons'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    code = Column(String(50), nullable=False, unique=True)
    type = Column(String(20), nullable=False)  # percentage, fixed
    amount = Column(Numeric(10, 2), nullable=False)
    min_cart_total = Column(Numeric(10, 2), nullable=True)
    min_quantity = Column(Integer, nullable=True)
    max_uses = Column(Integer, nullable=True)
    used_count = Column(Integer, nullable=False, default=0)
    product_id = Column(BigIntId, ForeignKey('products.id'), nullable=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    product = relationship('Product')

    @property
    def scope(self):
        from storefront.services.coupon_service import classify_coupon
        return classify_coupon(self)

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'type': self.type,
            'amount': self.amount,
            'scope': self.scope.value,
            'min_cart_total': self.min_cart_total,
            'min_quantity': self.min_quantity,
            'max_uses': self.max_uses,
            'used_count': self.used_count,
            'product_id': self.product_id,
            'description': self.description,
            'is_active': self.is_active,
            'expires_at': self.expires_at,
        }

    def __repr__(self):
        return f"<Coupon(id={self.id}, code='{self.code}', type='{self.type}')>"
