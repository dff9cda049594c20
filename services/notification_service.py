from datetime import datetime, timezone
from sqlalchemy.orm import Session
from models.notifications import Notification
from core.exceptions import NotFound
from utils.logger import get_logger

logger = get_logger(__name__)


class NotificationService:

    @staticmethod
    def notify(db: Session, user_id: int, title: str, message: str, type: str,
               order_id: int | None = None, payment_id: int | None = None,
               target_role: str = "customer") -> Notification:
        """
        Queue a notification row in the caller's transaction.

        Nothing is committed here: the notification becomes visible only if
        the status change that produced it commits.
        """
        notification = Notification(
            user_id=user_id,
            order_id=order_id,
            payment_id=payment_id,
            title=title,
            message=message,
            type=type,
            target_role=target_role,
            sent_at=datetime.now(timezone.utc),
        )
        db.add(notification)

        logger.debug(
            "Notification queued",
            extra={"user_id": user_id, "order_id": order_id, "type": type}
        )
        return notification

    @staticmethod
    def exists(db: Session, payment_id: int, type: str) -> bool:
        return db.query(Notification).filter(
            Notification.payment_id == payment_id,
            Notification.type == type
        ).first() is not None

    @staticmethod
    def list_for_user(db: Session, user_id: int, unread_only: bool = False,
                      page: int = 1, per_page: int = 20):
        query = db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.read_at.is_(None))

        total = query.count()
        items = query.order_by(Notification.id.desc()) \
            .offset((page - 1) * per_page).limit(per_page).all()

        return items, total

    @staticmethod
    def unread_count(db: Session, user_id: int) -> int:
        return db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.read_at.is_(None)
        ).count()

    @staticmethod
    def mark_read(db: Session, user_id: int, notification_id: int) -> int:
        notification = db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id
        ).one_or_none()

        if not notification:
            raise NotFound("Notification not found")

        if notification.read_at is None:
            notification.read_at = datetime.now(timezone.utc)
            db.commit()

        return NotificationService.unread_count(db, user_id)

    @staticmethod
    def mark_all_read(db: Session, user_id: int) -> int:
        db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.read_at.is_(None)
        ).update({"read_at": datetime.now(timezone.utc)}, synchronize_session=False)
        db.commit()

        return NotificationService.unread_count(db, user_id)
