from typing import Optional
from fastapi import APIRouter, Path, Query
from utils.deps import db_dependency, customer_dependency, shipping_dependency
from utils.responses import envelope
from models.orders import OrderStatus
from schemas.order_schemas import RatingRequest, serialize_order
from services.order_service import OrderService


router = APIRouter(
    prefix="/customer/orders",
    tags=["orders"]
)


@router.get("")
async def list_my_orders(user: customer_dependency, db: db_dependency,
                         status: Optional[OrderStatus] = None,
                         page: int = Query(1, ge=1),
                         per_page: int = Query(20, ge=1, le=100)):
    orders, total = OrderService.list_orders(db, user["user_id"], status, page, per_page)
    return envelope({
        "items": [serialize_order(order) for order in orders],
        "total": total,
        "page": page,
        "per_page": per_page,
    })


@router.get("/{order_id}")
async def get_my_order(user: customer_dependency, db: db_dependency, order_id: int = Path(gt=0)):
    return envelope(serialize_order(OrderService.get_order(db, order_id, user["user_id"])))


@router.post("/{order_id}/cancel")
async def cancel_my_order(user: customer_dependency, db: db_dependency, order_id: int = Path(gt=0)):
    order = OrderService.customer_cancel(db, order_id, user["user_id"])
    return envelope(serialize_order(order), message="Order cancelled")


@router.post("/{order_id}/complete")
async def complete_my_order(user: customer_dependency, db: db_dependency, order_id: int = Path(gt=0)):
    order = OrderService.customer_complete(db, order_id, user["user_id"])
    return envelope(serialize_order(order), message="Order completed")


@router.post("/{order_id}/rating")
async def rate_my_order(body: RatingRequest, user: customer_dependency, db: db_dependency,
                        order_id: int = Path(gt=0)):
    order = OrderService.rate(db, order_id, user["user_id"], body.rating, body.feedback)
    return envelope(serialize_order(order), message="Thank you for your rating")


@router.get("/{order_id}/tracking")
async def track_my_order(user: customer_dependency, db: db_dependency, provider: shipping_dependency,
                         order_id: int = Path(gt=0)):
    return envelope(OrderService.tracking(db, order_id, user["user_id"], provider))
