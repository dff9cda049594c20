import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable
from sqlalchemy.orm import Session
from models.orders import Order, OrderStatus, PaymentMethod
from models.payments import Payment, PaymentStatus
from models.users import User
from clients.payment_gateway import GatewayCustomer, GatewayItem, PaymentGatewayClient, to_gateway_amount
from core.config import settings
from core.database import transaction
from core.exceptions import InvalidTotal, InvalidTransition, NotFound, PaymentNotFound
from services.pricing_service import LineQuote
from utils.logger import get_payments_logger

logger = get_payments_logger(__name__)

SHIPPING_ITEM_ID = "SHIPPING"


def new_transaction_ref(order_id: int) -> str:
    """Per-attempt gateway reference, "{prefix}-{order id}-{microsecond timestamp}"."""
    return f"{settings.TRANSACTION_PREFIX}-{order_id}-{time.time_ns() // 1000}"


def order_id_from_ref(transaction_ref: str) -> int | None:
    """Order id embedded by new_transaction_ref, or None for a foreign reference."""
    head = f"{settings.TRANSACTION_PREFIX}-"
    if not transaction_ref or not transaction_ref.startswith(head):
        return None
    order_part, _, timestamp = transaction_ref[len(head):].partition("-")
    if not order_part.isdigit() or not timestamp.isdigit():
        return None
    return int(order_part)


def gateway_items_from_quotes(quotes: Iterable[LineQuote], shipping_cost: Decimal) -> list[GatewayItem]:
    items = [
        GatewayItem(
            id=str(quote.product.id),
            name=quote.product.name if not quote.variant_label
            else f"{quote.product.name} ({quote.variant_label})",
            price=to_gateway_amount(quote.variant_price),
            quantity=quote.quantity,
        )
        for quote in quotes
    ]
    return _with_shipping(items, shipping_cost)


def gateway_items_from_order(order: Order) -> list[GatewayItem]:
    items = [
        GatewayItem(
            id=str(item.product_id),
            name=item.product.name if item.product else f"Product {item.product_id}",
            price=to_gateway_amount(item.effective_price),
            quantity=item.quantity,
        )
        for item in order.items
    ]
    return _with_shipping(items, order.shipping_cost)


def _with_shipping(items: list[GatewayItem], shipping_cost) -> list[GatewayItem]:
    if shipping_cost and Decimal(shipping_cost) > 0:
        items.append(GatewayItem(
            id=SHIPPING_ITEM_ID,
            name="Shipping",
            price=to_gateway_amount(shipping_cost),
            quantity=1,
        ))
    return items


def gross_amount_of(items: Iterable[GatewayItem]) -> int:
    """The gateway rejects sessions whose gross amount differs from the item sum."""
    return sum(item.price * item.quantity for item in items)


def gateway_customer(order: Order, user: User) -> GatewayCustomer:
    return GatewayCustomer(
        first_name=order.receiver_name,
        email=user.email,
        phone=order.receiver_phone,
        address=order.shipping_address,
    )


class PaymentService:

    @staticmethod
    def _open_session(payment: Payment, order: Order, items: list[GatewayItem],
                      user: User, gateway: PaymentGatewayClient) -> None:
        gross_amount = gross_amount_of(items)
        if gross_amount != payment.amount:
            raise InvalidTotal(
                "Order total must be a whole amount for gateway payment",
                data={"order_id": order.id, "total": str(payment.amount)}
            )

        transaction_ref = new_transaction_ref(order.id)
        session = gateway.create_checkout_session(
            transaction_ref=transaction_ref,
            gross_amount=gross_amount,
            items=items,
            customer=gateway_customer(order, user),
        )

        payment.transaction_id = transaction_ref
        payment.session_token = session.token
        payment.redirect_url = session.redirect_url

    @staticmethod
    def initiate(db: Session, order: Order, quotes: list[LineQuote], user: User,
                 gateway: PaymentGatewayClient) -> Payment:
        """
        Create the order's single payment record.

        COD is recorded as already paid. Transfer stays pending until an
        admin confirms it. Gateway payments open a hosted checkout session;
        a GatewayError propagates and rolls back the whole checkout.

        Runs inside the checkout transaction, nothing is committed here.
        """
        payment = Payment(
            order_id=order.id,
            amount=order.total_price,
            method=order.payment_method,
            status=PaymentStatus.PENDING,
        )

        if order.payment_method == PaymentMethod.COD:
            payment.status = PaymentStatus.PAID
            payment.paid_at = datetime.now(timezone.utc)

        elif order.payment_method == PaymentMethod.GATEWAY:
            items = gateway_items_from_quotes(quotes, order.shipping_cost)
            PaymentService._open_session(payment, order, items, user, gateway)

        db.add(payment)
        db.flush()

        logger.info(
            "Payment initiated",
            extra={"order_id": order.id, "payment_id": payment.id,
                   "method": payment.method.value, "payment_status": payment.status.value,
                   "transaction_ref": payment.transaction_id}
        )
        return payment

    @staticmethod
    def retry_session(db: Session, order_id: int, user_id: int, gateway: PaymentGatewayClient) -> Payment:
        """
        Open a fresh checkout session for an unpaid order.

        Each attempt gets a new transaction reference; notifications for an
        older reference no longer match any payment. A transfer order
        switches to the gateway method.
        """
        with transaction(db):
            order = db.query(Order).filter(Order.id == order_id) \
                .with_for_update().one_or_none()
            if not order or order.user_id != user_id:
                raise NotFound("Order not found")

            if order.status != OrderStatus.AWAITING_PAYMENT:
                raise InvalidTransition(f"Order is {order.status.value}, payment cannot be retried")

            payment = db.query(Payment).filter(Payment.order_id == order.id) \
                .with_for_update().one_or_none()
            if not payment:
                raise PaymentNotFound()

            if payment.status != PaymentStatus.PENDING:
                raise InvalidTransition(f"Payment is already {payment.status.value}")

            user = db.query(User).filter(User.id == user_id).one()
            previous_ref = payment.transaction_id

            PaymentService._open_session(payment, order, gateway_items_from_order(order), user, gateway)

            order.payment_method = PaymentMethod.GATEWAY
            payment.method = PaymentMethod.GATEWAY

            logger.info(
                "Checkout session reissued",
                extra={"order_id": order.id, "payment_id": payment.id,
                       "previous_ref": previous_ref, "transaction_ref": payment.transaction_id}
            )

        db.refresh(payment)
        return payment
