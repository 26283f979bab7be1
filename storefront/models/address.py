"""Address model."""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.database import Base, BigIntId


class Address(Base):
    """Saved customer address."""

    __tablename__ = 'addresses'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    user_id = Column(BigIntId, ForeignKey('users.id'), nullable=False)
    full_name = Column(String(200), nullable=False)
    line1 = Column(String(255), nullable=False)
    line2 = Column(String(255), nullable=True)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    postal_code = Column(String(20), nullable=False)
    country = Column(String(100), nullable=False, default='India')
    phone = Column(String(50), nullable=True)
    gst_number = Column(String(20), nullable=True)  # Optional GSTIN for business invoicing
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    # Relationships
    user = relationship('User', back_populates='addresses')

    def to_dict(self):
        return {
            'id': self.id,
            'full_name': self.full_name,
            'line1': self.line1,
            'line2': self.line2,
            'city': self.city,
            'state': self.state,
            'postal_code': self.postal_code,
            'country': self.country,
            'phone': self.phone,
            'gst_number': self.gst_number,
            'is_default': self.is_default,
        }

    def __repr__(self):
        return f"<Address(id={self.id}, city='{self.city}', state='{self.state}')>"
