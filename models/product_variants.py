from core.database import Base
from sqlalchemy import (Column, Integer, String, ForeignKey, Numeric)
from sqlalchemy.orm import relationship

class ProductVariant(Base):
    __tablename__ = "product_variants"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)

    #relationships
    product = relationship("Product", back_populates="variants")

    name = Column(String, nullable=False)      # e.g. "Size"
    value = Column(String, nullable=False)     # e.g. "42"
    # added to the product's base price, never an absolute price
    price_delta = Column(Numeric(12, 2), default=0, nullable=False)
    stock = Column(Integer, default=0, nullable=False)

    @property
    def label(self) -> str:
        return f"{self.name}: {self.value}"
