"""
Midtrans payment gateway client.

Two REST surfaces are used:
    Snap  POST {snap}/transactions           -> hosted checkout session
    Core  GET  {api}/{order_id}/status        -> current transaction state

Authentication is HTTP Basic with the server key as username and an empty
password. Webhook payloads are authenticated separately with a SHA-512
signature, see verify_signature().

The client is configured through an explicit GatewayConfig handed in at
construction; nothing is stored in module globals.
"""

import hashlib
import hmac
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

import httpx

from core.exceptions import GatewayError
from utils.logger import get_payments_logger, sanitize_log_data

logger = get_payments_logger(__name__)


SANDBOX_SNAP_URL = "https://app.sandbox.midtrans.com/snap/v1"
PRODUCTION_SNAP_URL = "https://app.midtrans.com/snap/v1"
SANDBOX_API_URL = "https://api.sandbox.midtrans.com/v2"
PRODUCTION_API_URL = "https://api.midtrans.com/v2"

ENABLED_PAYMENTS = [
    "credit_card", "bca_va", "bni_va", "bri_va", "mandiri_va",
    "permata_va", "gopay", "shopeepay", "qris",
]

# gateway item names are truncated to this length
ITEM_NAME_MAX = 50


@dataclass(frozen=True)
class GatewayConfig:
    server_key: str
    is_production: bool = False
    timeout: float = 15.0
    finish_url: Optional[str] = None

    @property
    def snap_url(self) -> str:
        return PRODUCTION_SNAP_URL if self.is_production else SANDBOX_SNAP_URL

    @property
    def api_url(self) -> str:
        return PRODUCTION_API_URL if self.is_production else SANDBOX_API_URL

    @classmethod
    def from_settings(cls, settings) -> "GatewayConfig":
        return cls(
            server_key=settings.MIDTRANS_SERVER_KEY,
            is_production=settings.MIDTRANS_IS_PRODUCTION,
            timeout=settings.MIDTRANS_TIMEOUT_SECONDS,
            finish_url=settings.PAYMENT_FINISH_URL,
        )


@dataclass(frozen=True)
class GatewayItem:
    id: str
    name: str
    price: int
    quantity: int

    def to_payload(self) -> dict:
        return {
            "id": self.id,
            "name": self.name[:ITEM_NAME_MAX],
            "price": self.price,
            "quantity": self.quantity,
        }


@dataclass(frozen=True)
class GatewayCustomer:
    first_name: str
    email: str
    phone: str
    address: Optional[str] = None

    def to_payload(self) -> dict:
        payload = {
            "first_name": self.first_name,
            "email": self.email,
            "phone": self.phone,
        }
        if self.address:
            payload["shipping_address"] = {
                "first_name": self.first_name,
                "phone": self.phone,
                "address": self.address,
            }
        return payload


@dataclass(frozen=True)
class CheckoutSession:
    token: str
    redirect_url: Optional[str] = None


@dataclass(frozen=True)
class TransactionStatus:
    transaction_status: str
    fraud_status: Optional[str] = None
    status_code: Optional[str] = None
    gross_amount: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_type: Optional[str] = None
    raw: dict = field(default_factory=dict, compare=False, repr=False)


def to_gateway_amount(amount: Decimal | int | float) -> int:
    """The gateway only accepts whole currency units."""
    return int(amount)


class PaymentGatewayClient:

    def __init__(self, config: GatewayConfig, http_client: Optional[httpx.Client] = None):
        self.config = config
        self._http = http_client or httpx.Client(timeout=config.timeout)

    def close(self):
        self._http.close()

    def _request(self, method: str, url: str, **kwargs) -> dict:
        try:
            response = self._http.request(
                method,
                url,
                auth=(self.config.server_key, ""),
                headers={"Accept": "application/json", "Content-Type": "application/json"},
                **kwargs
            )
        except httpx.HTTPError as e:
            logger.error(
                "Payment gateway unreachable",
                extra={"url": url, "error": str(e), "error_type": type(e).__name__}
            )
            raise GatewayError(f"Payment gateway unreachable: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error:
            messages = body.get("error_messages") or [body.get("status_message") or response.text]
            logger.error(
                "Payment gateway rejected request",
                extra={"url": url, "status_code": response.status_code, "errors": messages}
            )
            raise GatewayError(f"Payment gateway error: {'; '.join(str(m) for m in messages)}")

        return body

    def create_checkout_session(
        self,
        transaction_ref: str,
        gross_amount: int,
        items: list[GatewayItem],
        customer: GatewayCustomer,
    ) -> CheckoutSession:
        """
        Open a hosted checkout (Snap) session.

        Args:
            transaction_ref: Unique per attempt, becomes the gateway's order_id
            gross_amount: Whole currency units, must equal sum of item lines
            items: Product lines plus the shipping line
            customer: Buyer contact and shipping address

        Raises:
            GatewayError: Transport failure, rejected request or missing token
        """
        payload: dict[str, Any] = {
            "transaction_details": {
                "order_id": transaction_ref,
                "gross_amount": gross_amount,
            },
            "item_details": [item.to_payload() for item in items],
            "customer_details": customer.to_payload(),
            "enabled_payments": ENABLED_PAYMENTS,
        }
        if self.config.finish_url:
            payload["callbacks"] = {"finish": self.config.finish_url}

        logger.info(
            "Creating checkout session",
            extra={"transaction_ref": transaction_ref, "gross_amount": gross_amount, "items": len(items)}
        )

        body = self._request("POST", f"{self.config.snap_url}/transactions", json=payload)

        token = body.get("token")
        if not token:
            raise GatewayError("Payment gateway did not return a session token")

        logger.info(
            "Checkout session created",
            extra=sanitize_log_data({"transaction_ref": transaction_ref, "session_token": token})
        )
        return CheckoutSession(token=token, redirect_url=body.get("redirect_url"))

    def query_status(self, transaction_ref: str) -> TransactionStatus:
        """
        Fetch the current state of a transaction.

        Raises:
            GatewayError: Transport failure or unknown transaction
        """
        body = self._request("GET", f"{self.config.api_url}/{transaction_ref}/status")

        # the status API answers HTTP 200 with a status_code of "404" for unknown ids
        if "transaction_status" not in body:
            raise GatewayError(
                f"Transaction {transaction_ref} not found at gateway: {body.get('status_message', 'unknown')}"
            )

        return TransactionStatus(
            transaction_status=body["transaction_status"],
            fraud_status=body.get("fraud_status"),
            status_code=body.get("status_code"),
            gross_amount=body.get("gross_amount"),
            transaction_id=body.get("transaction_id"),
            payment_type=body.get("payment_type"),
            raw=body,
        )

    def signature_for(self, order_id: str, status_code: str, gross_amount: str) -> str:
        raw = f"{order_id}{status_code}{gross_amount}{self.config.server_key}"
        return hashlib.sha512(raw.encode()).hexdigest()

    def verify_signature(self, order_id: str, status_code: str, gross_amount: str, signature: str) -> bool:
        """sha512(order_id + status_code + gross_amount + server_key), compared in constant time."""
        if not signature:
            return False
        expected = self.signature_for(order_id, status_code, gross_amount)
        return hmac.compare_digest(expected, signature.lower())
