from typing import Optional
from fastapi import APIRouter, Path, Query
from utils.deps import db_dependency, admin_dependency
from utils.responses import envelope
from models.orders import OrderStatus
from schemas.order_schemas import ShipRequest, TrackingUpdateRequest, UpdateStatusRequest, serialize_order
from services.order_service import OrderService
from utils.logger import get_logger

logger = get_logger(__name__)


router = APIRouter(
    prefix="/admin/orders",
    tags=["admin-orders"]
)


@router.get("")
async def list_orders(admin: admin_dependency, db: db_dependency,
                      status: Optional[OrderStatus] = None,
                      page: int = Query(1, ge=1),
                      per_page: int = Query(20, ge=1, le=100)):
    orders, total = OrderService.list_orders(db, None, status, page, per_page)
    return envelope({
        "items": [serialize_order(order) for order in orders],
        "total": total,
        "page": page,
        "per_page": per_page,
    })


@router.get("/{order_id}")
async def get_order(admin: admin_dependency, db: db_dependency, order_id: int = Path(gt=0)):
    return envelope(serialize_order(OrderService.get_order(db, order_id)))


@router.put("/{order_id}/status")
async def update_order_status(body: UpdateStatusRequest, admin: admin_dependency, db: db_dependency,
                              order_id: int = Path(gt=0)):
    order = OrderService.update_status(db, order_id, body.status)

    logger.info(
        "Admin updated order status",
        extra={"admin_id": admin["user_id"], "order_id": order.id, "new_status": order.status.value}
    )
    return envelope(serialize_order(order), message="Order status updated")


@router.put("/{order_id}/pack")
async def pack_order(admin: admin_dependency, db: db_dependency, order_id: int = Path(gt=0)):
    return envelope(serialize_order(OrderService.pack(db, order_id)), message="Order packed")


@router.put("/{order_id}/ship")
async def ship_order(admin: admin_dependency, db: db_dependency, order_id: int = Path(gt=0),
                     body: Optional[ShipRequest] = None):
    body = body or ShipRequest()
    order = OrderService.ship(db, order_id, body.tracking_number, body.courier_code)
    return envelope(serialize_order(order), message="Order shipped")


@router.put("/{order_id}/complete")
async def complete_order(admin: admin_dependency, db: db_dependency, order_id: int = Path(gt=0)):
    return envelope(serialize_order(OrderService.complete(db, order_id)), message="Order completed")


@router.put("/{order_id}/cancel")
async def cancel_order(admin: admin_dependency, db: db_dependency, order_id: int = Path(gt=0)):
    return envelope(serialize_order(OrderService.cancel(db, order_id)), message="Order cancelled")


@router.put("/{order_id}/tracking")
async def set_tracking(body: TrackingUpdateRequest, admin: admin_dependency, db: db_dependency,
                       order_id: int = Path(gt=0)):
    order = OrderService.set_tracking(db, order_id, body.tracking_number, body.courier_code)
    return envelope(serialize_order(order), message="Tracking number updated")
