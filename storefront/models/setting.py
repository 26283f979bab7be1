"""Setting model - key/value JSON settings (invoice, home page sections)."""
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func
from storefront.database import Base, BigIntId


class Setting(Base):
    """Key/value setting."""

    __tablename__ = 'settings'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    key = Column(String(100), nullable=False, unique=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Setting(key='{self.key}')>"
