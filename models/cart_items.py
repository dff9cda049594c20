from core.database import Base
from sqlalchemy import (Column, Integer, ForeignKey, Numeric, JSON)
from sqlalchemy.orm import relationship
from .mixins import CreatedAtMixin

class CartItem(Base, CreatedAtMixin):
    __tablename__ = "cart_items"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    cart_id = Column(Integer, ForeignKey("carts.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    #relationships
    cart = relationship("Cart", back_populates="items")
    product = relationship("Product", back_populates="cart_items")

    variant_ids = Column(JSON, default=list)
    quantity = Column(Integer, nullable=False)
    # snapshot taken when the item was added; checkout re-prices from the catalog
    unit_price = Column(Numeric(12, 2), nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)
