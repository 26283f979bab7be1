"""Combo Offer model - bundle of products sold at a single price."""
from sqlalchemy import Column, String, Text, Integer, Boolean, Numeric, DateTime, JSON
from sqlalchemy.sql import func
from storefront.database import Base, BigIntId


class ComboOffer(Base):
    """
    Combo offer.

    `original_price` and `discount_percentage` are recomputed from the
    bundled products whenever the combo is saved.
    """

    __tablename__ = 'combo_offers'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    product_ids = Column(JSON, nullable=False)
    combo_price = Column(Numeric(10, 2), nullable=False)
    original_price = Column(Numeric(10, 2), nullable=False)
    discount_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    position = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    def is_live(self, at):
        if not self.is_active:
            return False
        if self.start_date and at < self.start_date:
            return False
        if self.end_date and at > self.end_date:
            return False
        return True

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'slug': self.slug,
            'description': self.description,
            'image_url': self.image_url,
            'product_ids': list(self.product_ids or []),
            'combo_price': self.combo_price,
            'original_price': self.original_price,
            'discount_percentage': self.discount_percentage,
            'position': self.position,
            'is_active': self.is_active,
            'start_date': self.start_date,
            'end_date': self.end_date,
        }

    def __repr__(self):
        return f"<ComboOffer(id={self.id}, slug='{self.slug}', price={self.combo_price})>"
