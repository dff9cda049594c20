from typing import Iterable, Optional
from sqlalchemy.orm import Session
from models.orders import Order, OrderStatus, TERMINAL_STATUSES
from models.payments import Payment, PaymentStatus
from clients.shipping_provider import ShippingProviderClient
from core.database import transaction
from core.exceptions import AlreadyRated, InvalidTransition, NotFound, TrackingUnavailable
from services.inventory_service import InventoryService
from services.notification_service import NotificationService
from utils.logger import get_logger

logger = get_logger(__name__)


# status -> (label, customer message, notification type)
STATUS_NOTIFICATIONS = {
    OrderStatus.AWAITING_PAYMENT: ("Awaiting payment", "Your order is waiting for payment.", "order_pending_payment"),
    OrderStatus.PACKED: ("Packed", "Your order is being packed and will ship soon.", "order_packed"),
    OrderStatus.SHIPPED: ("Shipped", "Your order is on its way.", "order_shipped"),
    OrderStatus.COMPLETED: ("Completed", "Your order is complete. Thank you for shopping with us!", "order_delivered"),
    OrderStatus.CANCELLED: ("Cancelled", "Your order has been cancelled.", "order_cancelled"),
}

CANCELLABLE = (OrderStatus.AWAITING_PAYMENT, OrderStatus.PACKED)


class OrderService:

    @staticmethod
    def _load(db: Session, order_id: int, user_id: Optional[int] = None, lock: bool = True) -> Order:
        query = db.query(Order).filter(Order.id == order_id)
        if lock:
            query = query.with_for_update()
        order = query.one_or_none()

        # customers get a 404 for orders that are not theirs
        if not order or (user_id is not None and order.user_id != user_id):
            raise NotFound("Order not found")
        return order

    @staticmethod
    def _require(order: Order, allowed: Iterable[OrderStatus], action: str) -> None:
        allowed = tuple(allowed)
        if order.status not in allowed:
            expected = " or ".join(status.value for status in allowed)
            raise InvalidTransition(
                f"Cannot {action} an order that is {order.status.value} (must be {expected})"
            )

    @staticmethod
    def _transition(db: Session, order: Order, new_status: OrderStatus, actor: str) -> bool:
        """
        Apply a status change with its side effects, in the caller's transaction.

            -> packed     take stock (strict, at most once)
            -> cancelled  give back stock held by the order, fail the payment

        Returns:
            False when the order already had new_status
        """
        old_status = order.status
        if old_status in TERMINAL_STATUSES:
            raise InvalidTransition(f"Order is already {old_status.value}")

        if new_status == old_status:
            return False

        if new_status == OrderStatus.PACKED:
            InventoryService.deduct_for_order(db, order, strict=True)

        if new_status == OrderStatus.CANCELLED:
            InventoryService.restore_for_order(db, order)

            payment = db.query(Payment).filter(Payment.order_id == order.id) \
                .with_for_update().one_or_none()
            if payment and payment.status in (PaymentStatus.PENDING, PaymentStatus.PAID):
                payment.status = PaymentStatus.FAILED

        order.status = new_status

        label, message, notification_type = STATUS_NOTIFICATIONS[new_status]
        if new_status == OrderStatus.SHIPPED and order.tracking_number:
            message = f"{message} Tracking number: {order.tracking_number}"

        NotificationService.notify(
            db,
            user_id=order.user_id,
            title=f"Order status changed: {label}",
            message=message,
            type=notification_type,
            order_id=order.id,
        )

        logger.info(
            "Order status changed",
            extra={"order_id": order.id, "old_status": old_status.value,
                   "new_status": new_status.value, "actor": actor}
        )
        return True

    @staticmethod
    def _run(db: Session, order_id: int, new_status: OrderStatus, actor: str,
             allowed: Optional[Iterable[OrderStatus]] = None, user_id: Optional[int] = None,
             action: str = "update") -> Order:
        with transaction(db):
            order = OrderService._load(db, order_id, user_id)
            if allowed is not None:
                OrderService._require(order, allowed, action)
            OrderService._transition(db, order, new_status, actor)

        db.refresh(order)
        return order

    # Admin

    @staticmethod
    def update_status(db: Session, order_id: int, new_status: OrderStatus) -> Order:
        """Generic admin override: any target from a non-terminal status."""
        return OrderService._run(db, order_id, new_status, actor="admin")

    @staticmethod
    def pack(db: Session, order_id: int) -> Order:
        return OrderService._run(db, order_id, OrderStatus.PACKED, "admin",
                                 allowed=[OrderStatus.AWAITING_PAYMENT], action="pack")

    @staticmethod
    def ship(db: Session, order_id: int, tracking_number: Optional[str] = None,
             courier_code: Optional[str] = None) -> Order:
        with transaction(db):
            order = OrderService._load(db, order_id)
            OrderService._require(order, [OrderStatus.PACKED], "ship")

            if tracking_number:
                order.tracking_number = tracking_number
            if courier_code:
                order.courier_code = courier_code

            OrderService._transition(db, order, OrderStatus.SHIPPED, "admin")

        db.refresh(order)
        return order

    @staticmethod
    def complete(db: Session, order_id: int) -> Order:
        return OrderService._run(db, order_id, OrderStatus.COMPLETED, "admin",
                                 allowed=[OrderStatus.SHIPPED], action="complete")

    @staticmethod
    def cancel(db: Session, order_id: int) -> Order:
        return OrderService._run(db, order_id, OrderStatus.CANCELLED, "admin",
                                 allowed=CANCELLABLE, action="cancel")

    @staticmethod
    def set_tracking(db: Session, order_id: int, tracking_number: str,
                     courier_code: Optional[str] = None) -> Order:
        with transaction(db):
            order = OrderService._load(db, order_id)
            order.tracking_number = tracking_number
            if courier_code:
                order.courier_code = courier_code

            logger.info(
                "Tracking number set",
                extra={"order_id": order.id, "tracking_number": tracking_number}
            )

        db.refresh(order)
        return order

    # Customer

    @staticmethod
    def customer_cancel(db: Session, order_id: int, user_id: int) -> Order:
        return OrderService._run(db, order_id, OrderStatus.CANCELLED, "customer",
                                 allowed=CANCELLABLE, user_id=user_id, action="cancel")

    @staticmethod
    def customer_complete(db: Session, order_id: int, user_id: int) -> Order:
        return OrderService._run(db, order_id, OrderStatus.COMPLETED, "customer",
                                 allowed=[OrderStatus.SHIPPED], user_id=user_id, action="complete")

    @staticmethod
    def rate(db: Session, order_id: int, user_id: int, rating: int, feedback: Optional[str] = None) -> Order:
        with transaction(db):
            order = OrderService._load(db, order_id, user_id)

            if order.status != OrderStatus.COMPLETED:
                raise InvalidTransition("Only completed orders can be rated")
            if order.rating is not None:
                raise AlreadyRated()

            order.rating = rating
            order.rating_feedback = feedback

            logger.info("Order rated", extra={"order_id": order.id, "rating": rating})

        db.refresh(order)
        return order

    @staticmethod
    def tracking(db: Session, order_id: int, user_id: int, provider: ShippingProviderClient) -> dict:
        order = OrderService._load(db, order_id, user_id, lock=False)

        if not order.tracking_number or not order.courier_code:
            raise TrackingUnavailable()

        return provider.track(order.tracking_number, order.courier_code)

    # Queries

    @staticmethod
    def list_orders(db: Session, user_id: Optional[int] = None, status: Optional[OrderStatus] = None,
                    page: int = 1, per_page: int = 20):
        query = db.query(Order)
        if user_id is not None:
            query = query.filter(Order.user_id == user_id)
        if status is not None:
            query = query.filter(Order.status == status)

        total = query.count()
        items = query.order_by(Order.id.desc()).offset((page - 1) * per_page).limit(per_page).all()
        return items, total

    @staticmethod
    def get_order(db: Session, order_id: int, user_id: Optional[int] = None) -> Order:
        return OrderService._load(db, order_id, user_id, lock=False)
