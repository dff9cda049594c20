from core.database import Base
from sqlalchemy import (Column, Integer, String, ForeignKey, Text, DateTime)
from sqlalchemy.orm import relationship
from .mixins import CreatedAtMixin

class Notification(Base, CreatedAtMixin):
    __tablename__ = "notifications"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True)
    payment_id = Column(Integer, ForeignKey("payments.id"), nullable=True)

    #relationships
    user = relationship("User", back_populates="notifications")
    order = relationship("Order", back_populates="notifications")
    payment = relationship("Payment", back_populates="notifications")

    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(50), default="general", nullable=False)
    target_role = Column(String(20), default="customer", nullable=False)
    sent_at = Column(DateTime(timezone=True))
    read_at = Column(DateTime(timezone=True), nullable=True)
