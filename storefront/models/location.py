"""Location models - Country > State > City > Locality hierarchy for service bookings."""
from sqlalchemy import Column, String, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from storefront.database import Base, BigIntId


class Country(Base):
    __tablename__ = 'countries'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    code = Column(String(5), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    states = relationship('State', back_populates='country', order_by='State.name')

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'code': self.code, 'is_active': self.is_active}

    def __repr__(self):
        return f"<Country(id={self.id}, name='{self.name}')>"


class State(Base):
    __tablename__ = 'states'
    __table_args__ = (UniqueConstraint('country_id', 'name', name='uq_state_country_name'),)

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    country_id = Column(BigIntId, ForeignKey('countries.id'), nullable=False)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    country = relationship('Country', back_populates='states')
    cities = relationship('City', back_populates='state', order_by='City.name')

    def to_dict(self):
        return {'id': self.id, 'country_id': self.country_id, 'name': self.name, 'is_active': self.is_active}

    def __repr__(self):
        return f"<State(id={self.id}, name='{self.name}')>"


class City(Base):
    __tablename__ = 'cities'
    __table_args__ = (UniqueConstraint('state_id', 'name', name='uq_city_state_name'),)

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    state_id = Column(BigIntId, ForeignKey('states.id'), nullable=False)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    state = relationship('State', back_populates='cities')
    localities = relationship('Locality', back_populates='city', order_by='Locality.name')

    def to_dict(self):
        return {'id': self.id, 'state_id': self.state_id, 'name': self.name, 'is_active': self.is_active}

    def __repr__(self):
        return f"<City(id={self.id}, name='{self.name}')>"


class Locality(Base):
    __tablename__ = 'localities'
    __table_args__ = (UniqueConstraint('city_id', 'name', name='uq_locality_city_name'),)

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    city_id = Column(BigIntId, ForeignKey('cities.id'), nullable=False)
    name = Column(String(100), nullable=False)
    postal_code = Column(String(20), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    city = relationship('City', back_populates='localities')

    def to_dict(self):
        return {
            'id': self.id,
            'city_id': self.city_id,
            'name': self.name,
            'postal_code': self.postal_code,
            'is_active': self.is_active,
        }

    def __repr__(self):
        return f"<Locality(id={self.id}, name='{self.name}')>"
