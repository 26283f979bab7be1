"""Order Item model."""
from decimal import Decimal
from sqlalchemy import Column, String, Integer, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from storefront.database import Base, BigIntId


class OrderItem(Base):
    """Order line with price and GST rate snapshot."""

    __tablename__ = 'order_items'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    order_id = Column(BigIntId, ForeignKey('orders.id'), nullable=False)
    product_id = Column(BigIntId, ForeignKey('products.id'), nullable=False)
    title = Column(String(255), nullable=False)
    sku = Column(String(100), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    gst_rate = Column(Numeric(5, 2), nullable=False, default=18)
    image_url = Column(String(500), nullable=True)

    # Relationships
    order = relationship('Order', back_populates='items')
    product = relationship('Product')

    @property
    def line_total(self):
        return (Decimal(str(self.price)) * self.quantity).quantize(Decimal('0.01'))

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'title': self.title,
            'sku': self.sku,
            'price': self.price,
            'quantity': self.quantity,
            'gst_rate': self.gst_rate,
            'line_total': self.line_total,
        }

    def __repr__(self):
        return f"<OrderItem(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
