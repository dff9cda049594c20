import enum
from core.database import Base
from sqlalchemy import (Column, Integer, ForeignKey, Numeric, Enum, String, DateTime)
from sqlalchemy.orm import relationship
from .mixins import CreatedAtMixin, UpdatedAtMixin
from .orders import PaymentMethod, enum_values


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    EXPIRED = "expired"


class Payment(Base, CreatedAtMixin, UpdatedAtMixin):
    __tablename__ = "payments"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    order_id = Column(Integer, ForeignKey("orders.id"), unique=True, nullable=False)

    #relationships
    order = relationship("Order", back_populates="payment")
    notifications = relationship("Notification", back_populates="payment")

    amount = Column(Numeric(12, 2), nullable=False)
    method = Column(
        Enum(PaymentMethod, name="payment_method", values_callable=enum_values),
        nullable=False,
    )
    status = Column(
        Enum(PaymentStatus, name="payment_status", values_callable=enum_values),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    paid_at = Column(DateTime(timezone=True), nullable=True)

    # gateway checkout session
    session_token = Column(String(255), nullable=True)
    redirect_url = Column(String(512), nullable=True)
    # our per-attempt reference ("ORDER-{id}-{ts}"), the webhook lookup key
    transaction_id = Column(String(100), unique=True, nullable=True, index=True)
    # the gateway's own transaction id, recorded once known
    gateway_transaction_id = Column(String(100), nullable=True)
    payment_type = Column(String(50), nullable=True)
