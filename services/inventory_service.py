from collections import defaultdict
from sqlalchemy.orm import Session
from models.orders import Order
from models.products import Product
from models.product_variants import ProductVariant
from models.inventory_changes import InventoryChange
from core.exceptions import InsufficientStock
from utils.logger import get_payments_logger

logger = get_payments_logger(__name__)


class InventoryService:
    """
    Stock mutations made on behalf of an order.

    Order.stock_deducted is the guard: stock is taken only when it is False
    and given back only when it is True, and the flag is flipped in the same
    transaction as the stock rows. Callers hold the Order row lock, so a
    retried webhook racing a status poll cannot take stock twice.
    """

    @staticmethod
    def _take(db: Session, order: Order, row, quantity: int, strict: bool, product_id: int,
              variant_id: int | None, label: str) -> None:
        current = row.stock or 0

        # stock <= 0 is the "not tracked" convention: nothing to take
        if current <= 0:
            return

        taken = quantity
        if current < quantity:
            if strict:
                raise InsufficientStock(
                    f"Insufficient stock for {label}. Available: {current}, required: {quantity}",
                    data={"product_id": product_id, "variant_id": variant_id,
                          "available": current, "required": quantity}
                )
            # payment already succeeded; do not block the order on a count anomaly
            logger.warning(
                "Stock shortfall while deducting paid order, clamping to zero",
                extra={"order_id": order.id, "product_id": product_id, "variant_id": variant_id,
                       "available": current, "required": quantity}
            )
            taken = current

        row.stock = current - taken
        db.add(InventoryChange(
            product_id=product_id,
            variant_id=variant_id,
            order_id=order.id,
            change_amount=taken,
            reason="decrement",
        ))
        logger.info(
            "Stock decreased",
            extra={"order_id": order.id, "product_id": product_id, "variant_id": variant_id,
                   "old_stock": current, "new_stock": row.stock}
        )

    @staticmethod
    def deduct_for_order(db: Session, order: Order, strict: bool = False) -> bool:
        """
        Take every line's quantity from product (and chosen variant) stock.

        Args:
            strict: Raise InsufficientStock instead of clamping at zero

        Returns:
            False when the order already holds its stock (no-op)
        """
        if order.stock_deducted:
            logger.info("Stock already deducted, skipping", extra={"order_id": order.id})
            return False

        for item in order.items:
            product = db.query(Product).filter(Product.id == item.product_id) \
                .with_for_update().one_or_none()
            if product is None:
                logger.warning("Order item without product", extra={"order_id": order.id, "item_id": item.id})
                continue

            InventoryService._take(db, order, product, item.quantity, strict,
                                   product.id, None, f"product '{product.name}'")

            for variant_id in item.variant_ids or []:
                variant = db.query(ProductVariant).filter(ProductVariant.id == variant_id) \
                    .with_for_update().one_or_none()
                if variant is None:
                    continue
                InventoryService._take(db, order, variant, item.quantity, strict,
                                       product.id, variant.id, f"variant {variant.value} of '{product.name}'")

        order.stock_deducted = True
        return True

    @staticmethod
    def restore_for_order(db: Session, order: Order) -> int:
        """
        Give back exactly what the ledger says this order took.

        Returns:
            Total units restored (0 when the order holds no stock)
        """
        if not order.stock_deducted:
            return 0

        net: dict[tuple[int, int | None], int] = defaultdict(int)
        db.flush()
        changes = db.query(InventoryChange).filter(InventoryChange.order_id == order.id).all()
        for change in changes:
            sign = 1 if change.reason == "decrement" else -1
            net[(change.product_id, change.variant_id)] += sign * change.change_amount

        restored = 0
        for (product_id, variant_id), amount in net.items():
            if amount <= 0:
                continue

            if variant_id is None:
                row = db.query(Product).filter(Product.id == product_id).with_for_update().one_or_none()
            else:
                row = db.query(ProductVariant).filter(ProductVariant.id == variant_id).with_for_update().one_or_none()
            if row is None:
                continue

            old_stock = row.stock or 0
            row.stock = old_stock + amount
            db.add(InventoryChange(
                product_id=product_id,
                variant_id=variant_id,
                order_id=order.id,
                change_amount=amount,
                reason="increment",
            ))
            restored += amount

            logger.info(
                "Stock restored",
                extra={"order_id": order.id, "product_id": product_id, "variant_id": variant_id,
                       "old_stock": old_stock, "new_stock": row.stock}
            )

        order.stock_deducted = False
        return restored
