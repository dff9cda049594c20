from decimal import Decimal
from core.database import Base
from sqlalchemy import (Column, Integer, ForeignKey, Numeric, JSON, String)
from sqlalchemy.orm import relationship

class OrderItem(Base):
    __tablename__ = "order_items"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    #relationships
    order = relationship("Order", back_populates="items")
    product = relationship("Product", back_populates="order_items")

    variant_ids = Column(JSON, default=list)
    variant_label = Column(String)
    # price snapshot at order time: base price and base + variant deltas
    unit_price = Column(Numeric(12, 2), nullable=False)
    variant_price = Column(Numeric(12, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)

    @property
    def effective_price(self) -> Decimal:
        if self.variant_price and self.variant_price > 0:
            return self.variant_price
        return self.unit_price

    @property
    def variants(self) -> list[dict]:
        """Parse "Size: 42, Color: Black" into [{"name": "Size", "value": "42"}, ...]."""
        if not self.variant_label:
            return []

        parsed = []
        for part in self.variant_label.split(", "):
            if ":" in part:
                name, value = part.split(":", 1)
                parsed.append({"name": name.strip(), "value": value.strip()})
        return parsed
