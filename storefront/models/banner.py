"""Banner model - hero carousel slides and section banners placed around home blocks."""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.database import Base, BigIntId
import enum


class BannerType(str, enum.Enum):
    HERO = 'hero'
    SECTION = 'section'


class BannerPlacement(str, enum.Enum):
    """Position of a section banner relative to its target home block."""
    ABOVE = 'above'
    BELOW = 'below'


class BannerAlignment(str, enum.Enum):
    LEFT = 'left'
    CENTER = 'center'
    RIGHT = 'right'


class Banner(Base):
    """Promotional banner."""

    __tablename__ = 'banners'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    type = Column(String(20), nullable=False, default=BannerType.HERO.value)
    title = Column(String(255), nullable=True)
    subtitle = Column(String(500), nullable=True)
    image_url = Column(String(500), nullable=False)
    mobile_image_url = Column(String(500), nullable=True)
    link_url = Column(String(500), nullable=True)
    button_text = Column(String(100), nullable=True)
    target_block_id = Column(BigIntId, ForeignKey('home_blocks.id', ondelete='SET NULL'), nullable=True)
    relative_placement = Column(String(10), nullable=False, default=BannerPlacement.BELOW.value)
    display_width = Column(Integer, nullable=False, default=100)  # 25, 50, 75 or 100 percent
    alignment = Column(String(10), nullable=False, default=BannerAlignment.CENTER.value)
    position = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    target_block = relationship('HomeBlock')

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'title': self.title,
            'subtitle': self.subtitle,
            'image_url': self.image_url,
            'mobile_image_url': self.mobile_image_url,
            'link_url': self.link_url,
            'button_text': self.button_text,
            'target_block_id': self.target_block_id,
            'relative_placement': self.relative_placement,
            'display_width': self.display_width,
            'alignment': self.alignment,
            'position': self.position,
            'is_active': self.is_active,
        }

    def __repr__(self):
        return f"<Banner(id={self.id}, type='{self.type}', width={self.display_width})>"
