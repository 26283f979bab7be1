"""Product model."""
from sqlalchemy import Column, String, Text, Integer, Boolean, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.database import Base, BigIntId


class Product(Base):
    """Product model. Prices are GST-inclusive."""

    __tablename__ = 'products'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    sku = Column(String(100), nullable=False, unique=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    category_id = Column(BigIntId, ForeignKey('categories.id'), nullable=True)
    short_desc = Column(Text, nullable=True)
    long_desc = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)

    price = Column(Numeric(10, 2), nullable=False)
    sale_price = Column(Numeric(10, 2), nullable=True)
    sale_price_start = Column(DateTime, nullable=True)
    sale_price_end = Column(DateTime, nullable=True)
    gst_rate = Column(Numeric(5, 2), nullable=False, default=18)  # GST percentage included in price

    stock = Column(Integer, nullable=False, default=0)
    low_stock_threshold = Column(Integer, nullable=False, default=10)
    allow_backorder = Column(Boolean, nullable=False, default=False)
    weight = Column(Numeric(8, 2), nullable=True)  # kg, used for subscription delivery tiers

    is_featured = Column(Boolean, nullable=False, default=False)
    is_trending = Column(Boolean, nullable=False, default=False)
    is_new_arrival = Column(Boolean, nullable=False, default=False)
    is_on_sale = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    category = relationship('Category', foreign_keys=[category_id])

    @property
    def is_low_stock(self):
        return self.stock <= self.low_stock_threshold

    def to_dict(self):
        return {
            'id': self.id,
            'sku': self.sku,
            'title': self.title,
            'slug': self.slug,
            'category_id': self.category_id,
            'short_desc': self.short_desc,
            'long_desc': self.long_desc,
            'image_url': self.image_url,
            'price': self.price,
            'sale_price': self.sale_price,
            'sale_price_start': self.sale_price_start,
            'sale_price_end': self.sale_price_end,
            'gst_rate': self.gst_rate,
            'stock': self.stock,
            'allow_backorder': self.allow_backorder,
            'weight': self.weight,
            'is_featured': self.is_featured,
            'is_trending': self.is_trending,
            'is_new_arrival': self.is_new_arrival,
            'is_on_sale': self.is_on_sale,
            'is_active': self.is_active,
        }

    def __repr__(self):
        return f"<Product(id={self.id}, title='{self.title}', sku='{self.sku}')>"
