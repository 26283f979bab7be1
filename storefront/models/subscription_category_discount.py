"""Per-customer, per-category subscription discount override."""
from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.database import Base, BigIntId


class SubscriptionCategoryDiscount(Base):
    """Overrides the user-level subscription discount for one category."""

    __tablename__ = 'subscription_category_discounts'
    __table_args__ = (
        UniqueConstraint('customer_id', 'category_id', name='uq_subscription_category_discount'),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    customer_id = Column(BigIntId, ForeignKey('users.id'), nullable=False)
    category_id = Column(BigIntId, ForeignKey('categories.id'), nullable=False)
    discount_type = Column(String(20), nullable=True)
    discount_value = Column(Numeric(10, 2), nullable=True)
    sale_discount_type = Column(String(20), nullable=True)
    sale_discount_value = Column(Numeric(10, 2), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    customer = relationship('User', back_populates='category_discounts')
    category = relationship('Category')

    def to_dict(self):
        return {
            'id': self.id,
            'customer_id': self.customer_id,
            'category_id': self.category_id,
            'category_name': self.category.name if self.category else None,
            'discount_type': self.discount_type,
            'discount_value': self.discount_value,
            'sale_discount_type': self.sale_discount_type,
            'sale_discount_value': self.sale_discount_value,
        }

    def __repr__(self):
        return (
            f"<SubscriptionCategoryDiscount(customer_id={self.customer_id}, "
            f"category_id={self.category_id})>"
        )
