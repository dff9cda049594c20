from fastapi import APIRouter, Path, Query
from utils.deps import db_dependency, customer_dependency
from utils.responses import envelope
from schemas.order_schemas import NotificationResponse
from services.notification_service import NotificationService


router = APIRouter(
    prefix="/customer/notifications",
    tags=["notifications"]
)


@router.get("")
async def list_notifications(user: customer_dependency, db: db_dependency,
                             unread_only: bool = False,
                             page: int = Query(1, ge=1),
                             per_page: int = Query(20, ge=1, le=100)):
    items, total = NotificationService.list_for_user(db, user["user_id"], unread_only, page, per_page)
    return envelope({
        "items": [NotificationResponse.model_validate(n).model_dump(mode="json") for n in items],
        "total": total,
        "unread_count": NotificationService.unread_count(db, user["user_id"]),
        "page": page,
        "per_page": per_page,
    })


@router.post("/{notification_id}/read")
async def mark_notification_read(user: customer_dependency, db: db_dependency,
                                 notification_id: int = Path(gt=0)):
    unread = NotificationService.mark_read(db, user["user_id"], notification_id)
    return envelope({"unread_count": unread}, message="Notification marked as read")


@router.post("/read-all")
async def mark_all_notifications_read(user: customer_dependency, db: db_dependency):
    unread = NotificationService.mark_all_read(db, user["user_id"])
    return envelope({"unread_count": unread}, message="All notifications marked as read")
