"""Service offering and provider models for the booking vertical."""
from sqlalchemy import Column, String, Text, Integer, Boolean, Numeric, DateTime, ForeignKey, Table
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash
from storefront.database import Base, BigIntId


provider_services = Table(
    'provider_services',
    Base.metadata,
    Column('provider_id', BigIntId, ForeignKey('service_providers.id', ondelete='CASCADE'), primary_key=True),
    Column('service_id', BigIntId, ForeignKey('service_offerings.id', ondelete='CASCADE'), primary_key=True),
)


class ServiceOffering(Base):
    """A bookable service (e.g. home cleaning)."""

    __tablename__ = 'service_offerings'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    name = Column(String(150), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=60)
    base_price = Column(Numeric(10, 2), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'duration_minutes': self.duration_minutes,
            'base_price': self.base_price,
            'is_active': self.is_active,
        }

    def __repr__(self):
        return f"<ServiceOffering(id={self.id}, name='{self.name}')>"


class ServiceProvider(Base):
    """Service provider with its own portal login."""

    __tablename__ = 'service_providers'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    phone = Column(String(50), nullable=True)
    password_hash = Column(String(255), nullable=False)
    bio = Column(Text, nullable=True)
    city_id = Column(BigIntId, ForeignKey('cities.id'), nullable=True)
    locality_id = Column(BigIntId, ForeignKey('localities.id'), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_approved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    city = relationship('City')
    locality = relationship('Locality')
    services = relationship('ServiceOffering', secondary=provider_services, order_by='ServiceOffering.name')

    def set_password(self, password):
        self.password_hash = generate_password_hash(password, method='scrypt')

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'bio': self.bio,
            'city_id': self.city_id,
            'locality_id': self.locality_id,
            'is_active': self.is_active,
            'is_approved': self.is_approved,
            'services': [s.to_dict() for s in self.services],
        }

    def __repr__(self):
        return f"<ServiceProvider(id={self.id}, name='{self.name}')>"
