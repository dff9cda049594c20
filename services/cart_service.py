from decimal import Decimal
from sqlalchemy.orm import Session
from models.carts import Cart
from models.cart_items import CartItem
from models.products import Product
from models.product_variants import ProductVariant
from core.exceptions import NotFound
from services.pricing_service import PricingService
from utils.logger import get_logger

logger = get_logger(__name__)


class CartService:

    @staticmethod
    def get_or_create_cart(db: Session, user_id: int) -> Cart:
        cart = db.query(Cart).filter(Cart.user_id == user_id).one_or_none()
        if not cart:
            cart = Cart(user_id=user_id, total_price=Decimal("0"))
            db.add(cart)
            db.flush()
        return cart

    @staticmethod
    def selected_items(db: Session, user_id: int, item_ids: list[int] | None = None):
        """
        The cart and the items a checkout will consume.

        An empty item_ids selects every item. Ids that are not in this
        user's cart are ignored.
        """
        cart = db.query(Cart).filter(Cart.user_id == user_id).one_or_none()
        if not cart:
            return None, []

        query = db.query(CartItem).filter(CartItem.cart_id == cart.id)
        if item_ids:
            query = query.filter(CartItem.id.in_(item_ids))

        return cart, query.order_by(CartItem.id).all()

    @staticmethod
    def current_unit_price(db: Session, product: Product, variant_ids: list[int] | None) -> Decimal:
        """Catalog price without any availability checks."""
        price = Decimal(product.price)
        if variant_ids:
            variants = db.query(ProductVariant).filter(
                ProductVariant.id.in_(variant_ids),
                ProductVariant.product_id == product.id
            ).all()
            price += sum((Decimal(v.price_delta or 0) for v in variants), Decimal("0"))
        return price

    @staticmethod
    def recalculate_total(db: Session, cart: Cart) -> Decimal:
        """
        Re-price every remaining item from the catalog and store the cart total.
        Items whose product has disappeared are priced from their snapshot.
        """
        db.flush()
        items = db.query(CartItem).filter(CartItem.cart_id == cart.id).all()

        total = Decimal("0")
        for item in items:
            product = db.query(Product).filter(Product.id == item.product_id).one_or_none()
            if product:
                item.unit_price = CartService.current_unit_price(db, product, item.variant_ids)
            item.subtotal = Decimal(item.unit_price) * item.quantity
            total += item.subtotal

        cart.total_price = total
        return total

    @staticmethod
    def remove_items(db: Session, cart: Cart, item_ids: list[int]) -> int:
        if not item_ids:
            return 0

        removed = db.query(CartItem).filter(
            CartItem.cart_id == cart.id,
            CartItem.id.in_(item_ids)
        ).delete(synchronize_session=False)
        db.expire(cart, ["items"])

        logger.debug("Cart items removed", extra={"cart_id": cart.id, "removed": removed})
        return removed

    @staticmethod
    def view(db: Session, user_id: int) -> dict:
        cart = CartService.get_or_create_cart(db, user_id)
        CartService.recalculate_total(db, cart)
        db.commit()
        db.refresh(cart)

        return {
            "id": cart.id,
            "total_price": str(cart.total_price),
            "items": [
                {
                    "id": item.id,
                    "product_id": item.product_id,
                    "name": item.product.name if item.product else None,
                    "variant_ids": item.variant_ids or [],
                    "quantity": item.quantity,
                    "unit_price": str(item.unit_price),
                    "subtotal": str(item.subtotal),
                }
                for item in sorted(cart.items, key=lambda i: i.id)
            ],
        }

    @staticmethod
    def add_item(db: Session, user_id: int, product_id: int, quantity: int,
                 variant_ids: list[int] | None = None) -> CartItem:
        """
        Add a line, or grow the existing line for the same product and
        variant selection. Availability is checked against the merged quantity.
        """
        cart = CartService.get_or_create_cart(db, user_id)
        wanted = sorted(variant_ids or [])

        existing = None
        for item in db.query(CartItem).filter(CartItem.cart_id == cart.id,
                                              CartItem.product_id == product_id).all():
            if sorted(item.variant_ids or []) == wanted:
                existing = item
                break

        new_quantity = quantity + (existing.quantity if existing else 0)
        quote = PricingService.quote_line(db, product_id, variant_ids, new_quantity)

        if existing:
            existing.quantity = new_quantity
            existing.unit_price = quote.variant_price
            existing.subtotal = quote.subtotal
            item = existing
        else:
            item = CartItem(
                cart_id=cart.id,
                product_id=product_id,
                variant_ids=quote.variant_ids,
                quantity=quantity,
                unit_price=quote.variant_price,
                subtotal=quote.subtotal,
            )
            db.add(item)

        CartService.recalculate_total(db, cart)
        db.commit()
        db.refresh(item)

        logger.info(
            "Cart item added",
            extra={"user_id": user_id, "product_id": product_id, "quantity": new_quantity}
        )
        return item

    @staticmethod
    def _get_item(db: Session, user_id: int, item_id: int) -> CartItem:
        item = db.query(CartItem).join(Cart).filter(
            CartItem.id == item_id,
            Cart.user_id == user_id
        ).one_or_none()
        if not item:
            raise NotFound("Cart item not found")
        return item

    @staticmethod
    def update_quantity(db: Session, user_id: int, item_id: int, quantity: int) -> CartItem:
        item = CartService._get_item(db, user_id, item_id)
        quote = PricingService.quote_line(db, item.product_id, item.variant_ids, quantity)

        item.quantity = quantity
        item.unit_price = quote.variant_price
        item.subtotal = quote.subtotal

        CartService.recalculate_total(db, item.cart)
        db.commit()
        db.refresh(item)
        return item

    @staticmethod
    def remove_item(db: Session, user_id: int, item_id: int) -> None:
        item = CartService._get_item(db, user_id, item_id)
        cart = item.cart

        db.delete(item)
        CartService.recalculate_total(db, cart)
        db.commit()
