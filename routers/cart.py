from fastapi import APIRouter, Path
from starlette import status
from utils.deps import db_dependency, customer_dependency
from utils.responses import envelope
from schemas.cart_schemas import AddCartItemRequest, UpdateCartItemRequest
from services.cart_service import CartService


router = APIRouter(
    prefix="/customer/cart",
    tags=["cart"]
)


@router.get("")
async def get_cart(user: customer_dependency, db: db_dependency):
    return envelope(CartService.view(db, user["user_id"]))


@router.post("", status_code=status.HTTP_201_CREATED)
async def add_to_cart(body: AddCartItemRequest, user: customer_dependency, db: db_dependency):
    CartService.add_item(db, user["user_id"], body.product_id, body.quantity, body.variant_ids)
    return envelope(
        CartService.view(db, user["user_id"]),
        message="Item added to cart",
        status_code=status.HTTP_201_CREATED,
    )


@router.put("/{item_id}")
async def update_cart_item(body: UpdateCartItemRequest, user: customer_dependency, db: db_dependency,
                           item_id: int = Path(gt=0)):
    CartService.update_quantity(db, user["user_id"], item_id, body.quantity)
    return envelope(CartService.view(db, user["user_id"]), message="Cart updated")


@router.delete("/{item_id}")
async def remove_cart_item(user: customer_dependency, db: db_dependency, item_id: int = Path(gt=0)):
    CartService.remove_item(db, user["user_id"], item_id)
    return envelope(CartService.view(db, user["user_id"]), message="Item removed from cart")
