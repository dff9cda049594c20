from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class PaymentNotification(BaseModel):
    """
    Asynchronous status notification posted by the gateway.

    order_id here is the gateway's name for our transaction reference
    (Payment.transaction_id), not the Order primary key.
    """
    model_config = ConfigDict(extra="allow")

    order_id: str
    status_code: str
    gross_amount: str
    signature_key: str = ""
    transaction_status: str
    fraud_status: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_type: Optional[str] = None


class OrderReference(BaseModel):
    order_id: int = Field(gt=0)


class CreateTokenRequest(OrderReference):
    pass


class CheckStatusRequest(OrderReference):
    pass
