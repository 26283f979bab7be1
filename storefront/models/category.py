"""Category model."""
from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.database import Base, BigIntId


class Category(Base):
    """Product category (main -> sub -> child)."""

    __tablename__ = 'categories'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    parent_id = Column(BigIntId, ForeignKey('categories.id'), nullable=True)
    name = Column(String(200), nullable=False)
    slug = Column(String(200), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    banner_url = Column(String(500), nullable=True)
    position = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    # Relationships
    parent = relationship('Category', remote_side=[id], back_populates='children')
    children = relationship('Category', back_populates='parent', order_by='Category.position')

    def to_dict(self, include_children=False):
        data = {
            'id': self.id,
            'parent_id': self.parent_id,
            'name': self.name,
            'slug': self.slug,
            'description': self.description,
            'image_url': self.image_url,
            'banner_url': self.banner_url,
            'position': self.position,
            'is_active': self.is_active,
        }
        if include_children:
            data['children'] = [
                c.to_dict(include_children=True) for c in self.children if c.is_active
            ]
        return data

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}')>"
