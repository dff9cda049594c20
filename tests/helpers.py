"""
Shared test helpers: request builders, auth headers and HTTP stubs for the
payment gateway and shipping provider.
"""

import hashlib
import json
from decimal import Decimal

import httpx
from sqlalchemy.orm import Session

from core.config import settings
from clients.payment_gateway import GatewayConfig, PaymentGatewayClient
from clients.shipping_provider import ShippingConfig, ShippingProviderClient
from models.users import User
from models.products import Product
from models.carts import Cart
from models.cart_items import CartItem
from models.orders import Order
from schemas.checkout_schemas import CheckoutRequest
from services.checkout_service import CheckoutService
from services.token_service import TokenService

TEST_PASSWORD = "TestPassword123!"


def sign(order_id: str, status_code: str, gross_amount: str, server_key: str | None = None) -> str:
    key = settings.MIDTRANS_SERVER_KEY if server_key is None else server_key
    return hashlib.sha512(f"{order_id}{status_code}{gross_amount}{key}".encode()).hexdigest()


def notification_payload(transaction_ref: str, transaction_status: str, gross_amount: str,
                         fraud_status: str | None = None, status_code: str = "200") -> dict:
    payload = {
        "order_id": transaction_ref,
        "status_code": status_code,
        "gross_amount": gross_amount,
        "signature_key": sign(transaction_ref, status_code, gross_amount),
        "transaction_status": transaction_status,
        "transaction_id": "gw-txn-0001",
        "payment_type": "bank_transfer",
    }
    if fraud_status:
        payload["fraud_status"] = fraud_status
    return payload


def auth_headers(user: User) -> dict:
    token = TokenService.create_access_token(user.email, user.id, user.role)
    return {"Authorization": f"Bearer {token}"}


def add_to_cart(session: Session, user: User, product: Product, quantity: int,
                variant_ids: list[int] | None = None) -> CartItem:
    cart = session.query(Cart).filter(Cart.user_id == user.id).one_or_none()
    if not cart:
        cart = Cart(user_id=user.id, total_price=Decimal("0"))
        session.add(cart)
        session.flush()

    item = CartItem(
        cart_id=cart.id,
        product_id=product.id,
        variant_ids=variant_ids or [],
        quantity=quantity,
        unit_price=product.price,
        subtotal=product.price * quantity,
    )
    session.add(item)
    session.commit()
    session.refresh(item)
    return item


def checkout_body(**overrides) -> dict:
    body = {
        "receiver_name": "Budi Santoso",
        "receiver_phone": "081234567890",
        "shipping_address": "Jl. Merdeka No. 1, Jakarta",
        "payment_method": "gateway",
        "shipping_method": "jne-reg",
        "shipping_cost": "15000",
        "courier_code": "jne",
        "courier_service": "reg",
    }
    body.update(overrides)
    return body


class GatewayStub:
    """
    Stands in for the payment gateway's HTTP API behind httpx.MockTransport,
    so the real PaymentGatewayClient code runs in tests.
    """

    def __init__(self):
        self.sessions: list[dict] = []
        self.status_queries: list[str] = []
        self.session_error = False
        self.unreachable = False
        self.transaction_status: str | None = "pending"
        self.fraud_status: str | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.unreachable:
            raise httpx.ConnectError("gateway down", request=request)

        if request.method == "POST" and request.url.path.endswith("/transactions"):
            if self.session_error:
                return httpx.Response(500, json={"error_messages": ["internal gateway error"]})

            self.sessions.append(json.loads(request.content))
            n = len(self.sessions)
            return httpx.Response(201, json={
                "token": f"snap-token-{n:04d}-abcdef",
                "redirect_url": f"https://app.sandbox.midtrans.com/snap/v4/redirection/snap-token-{n:04d}",
            })

        if request.method == "GET" and request.url.path.endswith("/status"):
            ref = request.url.path.split("/")[-2]
            self.status_queries.append(ref)
            if self.transaction_status is None:
                return httpx.Response(200, json={"status_code": "404",
                                                 "status_message": "Transaction doesn't exist."})
            body = {
                "status_code": "200",
                "order_id": ref,
                "transaction_status": self.transaction_status,
                "transaction_id": "gw-txn-0001",
                "payment_type": "bank_transfer",
            }
            if self.fraud_status:
                body["fraud_status"] = self.fraud_status
            return httpx.Response(200, json=body)

        return httpx.Response(404, json={"status_message": "unknown endpoint"})

    def client(self) -> PaymentGatewayClient:
        return PaymentGatewayClient(
            GatewayConfig(server_key=settings.MIDTRANS_SERVER_KEY),
            http_client=httpx.Client(transport=httpx.MockTransport(self.handler)),
        )


class ShippingStub:

    def __init__(self):
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/rates/couriers"):
            return httpx.Response(200, json={"success": True, "pricing": [
                {"courier_code": "jne", "courier_service_code": "reg", "price": 18000, "duration": "2 - 3 days"},
                {"courier_code": "sicepat", "courier_service_code": "best", "price": 15000, "duration": "1 - 2 days"},
            ]})
        if "/trackings/" in request.url.path:
            return httpx.Response(200, json={
                "waybill_id": request.url.path.split("/")[-3],
                "status": "on_process",
                "history": [{"note": "Shipment picked up", "status": "picked"}],
            })
        return httpx.Response(404, json={})

    def client(self) -> ShippingProviderClient:
        return ShippingProviderClient(
            ShippingConfig(api_key="biteship-test-key", origin_area_id="ORIGIN"),
            http_client=httpx.Client(transport=httpx.MockTransport(self.handler)),
        )


def place_order(session: Session, user: User, product: Product, quantity: int, gateway: PaymentGatewayClient,
                variant_ids: list[int] | None = None, **overrides):
    """Buy-now checkout through the service layer; returns the persisted Order."""
    body = checkout_body(buy_now=True, product_id=product.id, quantity=quantity,
                         variant_ids=variant_ids or [], **overrides)
    result = CheckoutService.process(session, user.id, CheckoutRequest(**body), gateway)
    return session.get(Order, result["order_id"])
