from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator
from models.orders import PaymentMethod
from schemas.auth_schemas import normalize_phone
from core.config import settings


class LineSelection(BaseModel):
    """
    Which lines to price: selected cart items, or a single buy-now product.
    An empty item_ids list means the whole cart.
    """
    item_ids: list[int] = Field(default_factory=list)
    buy_now: bool = False
    product_id: Optional[int] = None
    quantity: Optional[int] = Field(default=None, ge=1)
    variant_ids: list[int] = Field(default_factory=list)

    @model_validator(mode='after')
    def check_buy_now(self):
        if self.buy_now and (self.product_id is None or self.quantity is None):
            raise ValueError('product_id and quantity are required for buy now')
        return self


class CheckoutSummaryRequest(LineSelection):
    shipping_cost: Decimal = Decimal("0")


class ShippingRatesRequest(LineSelection):
    destination_area_id: str = Field(min_length=1)
    couriers: Optional[str] = None


class CheckoutRequest(LineSelection):
    receiver_name: str = Field(min_length=1, max_length=255)
    receiver_phone: str
    shipping_address: str = Field(min_length=1)
    payment_method: PaymentMethod
    shipping_method: str = Field(min_length=1, max_length=100)
    # range is enforced by the checkout service, not here
    shipping_cost: Decimal = Decimal("0")
    courier_code: Optional[str] = Field(default=None, max_length=50)
    courier_service: Optional[str] = Field(default=None, max_length=100)

    @field_validator('receiver_name', 'shipping_address')
    @classmethod
    def strip_text(cls, value):
        value = value.strip()
        if not value:
            raise ValueError('must not be blank')
        return value

    @field_validator('receiver_phone')
    @classmethod
    def validate_phone(cls, value):
        return normalize_phone(value, settings.PHONE_DEFAULT_REGION)
