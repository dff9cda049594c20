import enum
from core.database import Base
from sqlalchemy.orm import relationship
from sqlalchemy import (Column, Integer, ForeignKey, Numeric, Enum, String, Boolean, Text)
from .mixins import CreatedAtMixin, UpdatedAtMixin


class OrderStatus(str, enum.Enum):
    AWAITING_PAYMENT = "awaiting_payment"
    PACKED = "packed"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, enum.Enum):
    TRANSFER = "transfer"
    COD = "cod"
    GATEWAY = "gateway"


TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


def enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Order(Base, CreatedAtMixin, UpdatedAtMixin):
    __tablename__ = "orders"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    #relationships
    user = relationship("User", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.id")
    payment = relationship("Payment", back_populates="order", uselist=False)
    notifications = relationship("Notification", back_populates="order")
    inventory_changes = relationship("InventoryChange", back_populates="order")

    total_price = Column(Numeric(12, 2), nullable=False)
    shipping_cost = Column(Numeric(12, 2), default=0, nullable=False)
    status = Column(
        Enum(OrderStatus, name="order_status", values_callable=enum_values),
        default=OrderStatus.AWAITING_PAYMENT,
        nullable=False,
    )
    payment_method = Column(
        Enum(PaymentMethod, name="payment_method", values_callable=enum_values),
        nullable=False,
    )

    shipping_address = Column(Text, nullable=False)
    receiver_name = Column(String, nullable=False)
    receiver_phone = Column(String, nullable=False)
    shipping_method = Column(String)
    courier_code = Column(String(50))
    courier_service = Column(String(100))
    tracking_number = Column(String(100))

    rating = Column(Integer)
    rating_feedback = Column(Text)

    # True while this order holds stock taken from the catalog
    stock_deducted = Column(Boolean, default=False, nullable=False)
