"""
Payment reconciliation.

Gateway statuses reach us twice: pushed by the webhook and pulled by the
customer's status poll. Both paths lock the Order row, then the Payment row,
and run the same apply step, so replays and races converge on one outcome:

    * a payment leaves "pending" at most once; later contradicting
      statuses are logged and ignored
    * stock is taken at most once per order (Order.stock_deducted)
    * the "awaiting payment" reminder is sent once per payment
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional
from sqlalchemy.orm import Session
from models.orders import Order, OrderStatus
from models.payments import Payment, PaymentStatus
from clients.payment_gateway import PaymentGatewayClient, to_gateway_amount
from core.database import transaction
from core.exceptions import GatewayError, InvalidSignature, NotFound, PaymentNotFound
from schemas.payment_schemas import PaymentNotification
from services.inventory_service import InventoryService
from services.notification_service import NotificationService
from services.payment_service import order_id_from_ref
from utils.logger import get_payments_logger, sanitize_log_data

logger = get_payments_logger(__name__)


PAYMENT_NOTIFICATIONS = {
    "payment_success": ("Payment successful", "Your payment has been confirmed. Your order is being packed."),
    "payment_pending": ("Awaiting payment", "Your order is waiting for payment. Please complete it before it expires."),
    "payment_failed": ("Payment failed", "Your payment was declined or cancelled. The order has been cancelled."),
    "payment_expired": ("Payment expired", "The payment window has closed. The order has been cancelled."),
}


@dataclass(frozen=True)
class GatewayOutcome:
    payment_status: PaymentStatus
    order_status: Optional[OrderStatus] = None
    notification: Optional[str] = None


PAID = GatewayOutcome(PaymentStatus.PAID, OrderStatus.PACKED, "payment_success")


def map_gateway_status(transaction_status: str, fraud_status: Optional[str] = None) -> Optional[GatewayOutcome]:
    """
    Canonical gateway status table.

        capture (fraud accept) / settlement -> paid,    order packed
        capture (fraud challenge)           -> pending, no change
        pending                             -> pending, reminder
        deny / cancel                       -> failed,  order cancelled
        expire                              -> expired, order cancelled

    A capture without a fraud status counts as accepted. Anything else
    (refund, chargeback, ...) returns None and is left alone.
    """
    status = (transaction_status or "").lower()
    fraud = (fraud_status or "accept").lower()

    if status == "capture":
        return PAID if fraud == "accept" else GatewayOutcome(PaymentStatus.PENDING)
    if status == "settlement":
        return PAID
    if status == "pending":
        return GatewayOutcome(PaymentStatus.PENDING, None, "payment_pending")
    if status in ("deny", "cancel"):
        return GatewayOutcome(PaymentStatus.FAILED, OrderStatus.CANCELLED, "payment_failed")
    if status == "expire":
        return GatewayOutcome(PaymentStatus.EXPIRED, OrderStatus.CANCELLED, "payment_expired")
    return None


def _notify(db: Session, order: Order, payment: Payment, key: str) -> None:
    title, message = PAYMENT_NOTIFICATIONS[key]
    NotificationService.notify(
        db,
        user_id=order.user_id,
        title=title,
        message=message,
        type=key,
        order_id=order.id,
        payment_id=payment.id,
    )


class ReconciliationService:

    @staticmethod
    def apply_outcome(db: Session, order: Order, payment: Payment,
                      outcome: Optional[GatewayOutcome], source: str) -> bool:
        """
        Move payment and order to the state the gateway reports.

        Caller must hold row locks on both and own the transaction.

        Returns:
            True when the payment status changed
        """
        context = {"order_id": order.id, "payment_id": payment.id, "source": source}

        if outcome is None:
            logger.info("Gateway status not handled, ignoring", extra=context)
            return False

        if payment.status == outcome.payment_status:
            if outcome.notification == "payment_pending" and \
                    not NotificationService.exists(db, payment.id, "payment_pending"):
                _notify(db, order, payment, "payment_pending")
            logger.info(
                "Payment already in reported state",
                extra={**context, "payment_status": payment.status.value}
            )
            return False

        if payment.status != PaymentStatus.PENDING:
            logger.warning(
                "Ignoring gateway status for settled payment",
                extra={**context, "payment_status": payment.status.value,
                       "reported_status": outcome.payment_status.value}
            )
            return False

        old_order_status = order.status
        payment.status = outcome.payment_status
        if outcome.payment_status == PaymentStatus.PAID and payment.paid_at is None:
            payment.paid_at = datetime.now(timezone.utc)

        if outcome.order_status is not None:
            if order.status == OrderStatus.AWAITING_PAYMENT:
                order.status = outcome.order_status
                if outcome.order_status == OrderStatus.PACKED:
                    InventoryService.deduct_for_order(db, order, strict=False)
            else:
                logger.warning(
                    "Order not awaiting payment, order status left unchanged",
                    extra={**context, "order_status": order.status.value,
                           "reported_status": outcome.payment_status.value}
                )

        if outcome.notification:
            _notify(db, order, payment, outcome.notification)

        logger.info(
            "Payment reconciled",
            extra={**context, "payment_status": payment.status.value,
                   "old_order_status": old_order_status.value, "new_order_status": order.status.value}
        )
        return True

    @staticmethod
    def _lock(db: Session, order_id: int) -> tuple[Order, Payment]:
        order = db.query(Order).filter(Order.id == order_id).with_for_update().one_or_none()
        if not order:
            raise NotFound("Order not found")

        payment = db.query(Payment).filter(Payment.order_id == order.id) \
            .with_for_update().populate_existing().one_or_none()
        if not payment:
            raise PaymentNotFound()

        return order, payment

    @staticmethod
    def handle_notification(db: Session, payload: PaymentNotification,
                            gateway: PaymentGatewayClient) -> dict:
        """
        Process one webhook delivery.

        Raises:
            InvalidSignature: Signature does not match; nothing is read or written
            PaymentNotFound: Neither the reference nor the order it names has a payment
        """
        if not gateway.verify_signature(payload.order_id, payload.status_code,
                                        payload.gross_amount, payload.signature_key):
            logger.warning(
                "Webhook rejected: invalid signature",
                extra=sanitize_log_data({
                    "transaction_ref": payload.order_id,
                    "status_code": payload.status_code,
                    "gross_amount": payload.gross_amount,
                    "transaction_status": payload.transaction_status,
                    "signature_key": payload.signature_key,
                })
            )
            raise InvalidSignature()

        logger.info(
            "Webhook received",
            extra={"transaction_ref": payload.order_id, "transaction_status": payload.transaction_status,
                   "fraud_status": payload.fraud_status}
        )

        with transaction(db):
            order_id = db.query(Payment.order_id) \
                .filter(Payment.transaction_id == payload.order_id).scalar()
            superseded = False

            if order_id is None:
                # an earlier checkout session of a retried order can still be paid
                fallback_id = order_id_from_ref(payload.order_id)
                if fallback_id is not None:
                    order_id = db.query(Payment.order_id) \
                        .filter(Payment.order_id == fallback_id).scalar()
                    superseded = order_id is not None

            if order_id is None:
                raise PaymentNotFound(f"No payment for transaction {payload.order_id}")

            order, payment = ReconciliationService._lock(db, order_id)

            try:
                reported = to_gateway_amount(Decimal(payload.gross_amount))
            except (InvalidOperation, ValueError):
                reported = None
            if reported != to_gateway_amount(payment.amount):
                logger.warning(
                    "Webhook amount differs from payment amount",
                    extra={"payment_id": payment.id, "reported_amount": payload.gross_amount,
                           "payment_amount": str(payment.amount)}
                )

            outcome = map_gateway_status(payload.transaction_status, payload.fraud_status)

            if superseded:
                logger.warning(
                    "Webhook for superseded transaction reference",
                    extra={"order_id": order.id, "payment_id": payment.id,
                           "transaction_ref": payload.order_id, "current_ref": payment.transaction_id,
                           "transaction_status": payload.transaction_status}
                )
                # a stale session may settle the payment, nothing else
                if outcome is not PAID:
                    outcome = None
                elif payment.status == PaymentStatus.PENDING:
                    payment.transaction_id = payload.order_id

            if outcome is not None:
                if payload.transaction_id:
                    payment.gateway_transaction_id = payload.transaction_id
                if payload.payment_type:
                    payment.payment_type = payload.payment_type

            changed = ReconciliationService.apply_outcome(db, order, payment, outcome, "webhook")

            result = {
                "order_id": order.id,
                "order_status": order.status.value,
                "payment_status": payment.status.value,
                "changed": changed,
            }

        return result

    @staticmethod
    def check_status(db: Session, order_id: int, user_id: int, gateway: PaymentGatewayClient) -> dict:
        """
        Customer-triggered poll of the gateway.

        A gateway that cannot be reached is not an error for the caller:
        the locally known status is returned instead.
        """
        with transaction(db):
            order, payment = ReconciliationService._lock(db, order_id)
            if order.user_id != user_id:
                raise NotFound("Order not found")

            gateway_status = None
            if payment.transaction_id and payment.status == PaymentStatus.PENDING:
                try:
                    gateway_status = gateway.query_status(payment.transaction_id)
                except GatewayError as e:
                    logger.warning(
                        "Status poll failed, returning local status",
                        extra={"order_id": order.id, "payment_id": payment.id, "error": str(e)}
                    )

            if gateway_status is not None:
                if gateway_status.transaction_id:
                    payment.gateway_transaction_id = gateway_status.transaction_id
                if gateway_status.payment_type:
                    payment.payment_type = gateway_status.payment_type

                outcome = map_gateway_status(gateway_status.transaction_status, gateway_status.fraud_status)
                ReconciliationService.apply_outcome(db, order, payment, outcome, "poll")

            result = {
                "order_id": order.id,
                "order_status": order.status.value,
                "payment_status": payment.status.value,
                "transaction_status": gateway_status.transaction_status if gateway_status else None,
            }

        return result
