from core.database import Base
from sqlalchemy import (Column, Integer, String, ForeignKey, Numeric, Boolean)
from sqlalchemy.orm import relationship
from .mixins import CreatedAtMixin, UpdatedAtMixin

class Product(Base, CreatedAtMixin, UpdatedAtMixin):
    __tablename__ = "products"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    category_id = Column(Integer, ForeignKey("categories.id"))
    
    #relationships
    category = relationship("Category", back_populates="products")
    variants = relationship("ProductVariant", back_populates="product")
    order_items = relationship("OrderItem", back_populates="product")
    cart_items = relationship("CartItem", back_populates="product")
    inventory_changes = relationship("InventoryChange", back_populates="product")

    name = Column(String, nullable=False)
    description = Column(String)
    price = Column(Numeric(12, 2), nullable=False)
    image_url = Column(String)
    # stock <= 0 means the product is not stock-tracked (unlimited)
    stock = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
