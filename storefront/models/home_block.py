"""Home Block model - ordered sections of the storefront home page."""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, JSON
from sqlalchemy.sql import func
from storefront.database import Base, BigIntId
import enum


class HomeBlockType(str, enum.Enum):
    FEATURED_PRODUCTS = 'featured_products'
    CATEGORY_PRODUCTS = 'category_products'
    PROMO_HTML = 'promo_html'
    BANNER_CAROUSEL = 'banner_carousel'
    CUSTOM_CODE = 'custom_code'


class HomeBlock(Base):
    """
    Home page block.

    `payload` holds the type specific configuration, e.g. `{"category_id": 3,
    "limit": 8}` for category_products or `{"html": "..."}` for promo_html.
    """

    __tablename__ = 'home_blocks'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    type = Column(String(30), nullable=False)
    title = Column(String(255), nullable=True)
    payload = Column(JSON, nullable=True)
    position = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'title': self.title,
            'payload': self.payload or {},
            'position': self.position,
            'is_active': self.is_active,
        }

    def __repr__(self):
        return f"<HomeBlock(id={self.id}, type='{self.type}', position={self.position})>"
