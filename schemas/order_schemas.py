from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from models.orders import OrderStatus, PaymentMethod
from models.payments import PaymentStatus


class UpdateStatusRequest(BaseModel):
    status: OrderStatus


class TrackingUpdateRequest(BaseModel):
    tracking_number: str = Field(min_length=1, max_length=100)
    courier_code: Optional[str] = Field(default=None, max_length=50)

    @field_validator('tracking_number')
    @classmethod
    def strip_tracking(cls, value):
        value = value.strip()
        if not value:
            raise ValueError('Tracking number must not be blank')
        return value


class ShipRequest(BaseModel):
    tracking_number: Optional[str] = Field(default=None, max_length=100)
    courier_code: Optional[str] = Field(default=None, max_length=50)


class RatingRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    feedback: Optional[str] = Field(default=None, max_length=2000)


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    variant_ids: Optional[list[int]] = None
    variant_label: Optional[str] = None
    variants: list[dict] = []
    unit_price: Decimal
    variant_price: Decimal
    quantity: int
    subtotal: Decimal


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount: Decimal
    method: PaymentMethod
    status: PaymentStatus
    paid_at: Optional[datetime] = None
    session_token: Optional[str] = None
    redirect_url: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_type: Optional[str] = None


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    status: OrderStatus
    payment_method: PaymentMethod
    total_price: Decimal
    shipping_cost: Decimal
    receiver_name: str
    receiver_phone: str
    shipping_address: str
    shipping_method: Optional[str] = None
    courier_code: Optional[str] = None
    courier_service: Optional[str] = None
    tracking_number: Optional[str] = None
    rating: Optional[int] = None
    rating_feedback: Optional[str] = None
    created_at: Optional[datetime] = None
    items: list[OrderItemResponse] = []
    payment: Optional[PaymentResponse] = None


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: Optional[int] = None
    payment_id: Optional[int] = None
    title: str
    message: str
    type: str
    sent_at: Optional[datetime] = None
    read_at: Optional[datetime] = None


def serialize_order(order) -> dict:
    return OrderResponse.model_validate(order).model_dump(mode="json")
