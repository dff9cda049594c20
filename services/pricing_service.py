from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional
from sqlalchemy.orm import Session
from models.products import Product
from models.product_variants import ProductVariant
from core.exceptions import OutOfStock, ProductUnavailable, VariantMismatch
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class LineSpec:
    """What the customer asked for. Prices are never taken from here."""
    product_id: int
    quantity: int
    variant_ids: tuple[int, ...] = ()
    cart_item_id: Optional[int] = None


@dataclass
class LineQuote:
    product: Product
    variants: list[ProductVariant]
    quantity: int
    unit_price: Decimal
    variant_price: Decimal
    subtotal: Decimal
    variant_label: Optional[str] = None
    cart_item_id: Optional[int] = field(default=None)

    @property
    def variant_ids(self) -> list[int]:
        return [variant.id for variant in self.variants]

    def as_dict(self) -> dict:
        return {
            "cart_item_id": self.cart_item_id,
            "product_id": self.product.id,
            "name": self.product.name,
            "variant_ids": self.variant_ids,
            "variant_label": self.variant_label,
            "unit_price": str(self.unit_price),
            "price": str(self.variant_price),
            "quantity": self.quantity,
            "subtotal": str(self.subtotal),
        }


def build_variant_label(variants: Iterable[ProductVariant]) -> Optional[str]:
    labels = [variant.label for variant in variants]
    return ", ".join(labels) if labels else None


def has_tracked_shortfall(stock: int | None, quantity: int) -> bool:
    """Stock of zero or less means the item is not stock-tracked."""
    return stock is not None and stock > 0 and quantity > stock


class PricingService:

    @staticmethod
    def quote_line(db: Session, product_id: int, variant_ids: Iterable[int] | None,
                   quantity: int, lock: bool = False, cart_item_id: int | None = None) -> LineQuote:
        """
        Authoritative unit price and subtotal for one line.

        Always reads the product and its variants from the database, so a
        price sent by the client can never reach an order.

        Args:
            lock: Read the product and variant rows FOR UPDATE (used on the
                  pass that immediately precedes writing order items)

        Raises:
            ProductUnavailable: Product missing or deactivated
            VariantMismatch: A variant does not belong to the product, or
                             fewer variants resolved than were requested
            OutOfStock: A positive stock is smaller than the quantity
        """
        query = db.query(Product).filter(Product.id == product_id)
        if lock:
            query = query.with_for_update()
        product = query.one_or_none()

        if not product:
            logger.warning("Quote for missing product", extra={"product_id": product_id})
            raise ProductUnavailable("Product not found")

        if not product.is_active:
            raise ProductUnavailable(f"Product '{product.name}' is not available for purchase")

        requested = list(variant_ids or [])
        variants: list[ProductVariant] = []

        if requested:
            variant_query = db.query(ProductVariant).filter(
                ProductVariant.id.in_(requested),
                ProductVariant.product_id == product.id
            )
            if lock:
                variant_query = variant_query.with_for_update()
            found = {variant.id: variant for variant in variant_query.all()}

            if len(found) != len(requested):
                logger.warning(
                    "Variant mismatch",
                    extra={"product_id": product.id, "requested": requested, "resolved": sorted(found)}
                )
                raise VariantMismatch(f"One or more variants are not valid for '{product.name}'")

            variants = [found[variant_id] for variant_id in requested]

        if has_tracked_shortfall(product.stock, quantity):
            raise OutOfStock(
                f"Insufficient stock for '{product.name}'. Available: {product.stock}",
                data={"product_id": product.id, "available": product.stock}
            )

        for variant in variants:
            if has_tracked_shortfall(variant.stock, quantity):
                raise OutOfStock(
                    f"Insufficient stock for variant {variant.value} of '{product.name}'. "
                    f"Available: {variant.stock}",
                    data={"product_id": product.id, "variant_id": variant.id, "available": variant.stock}
                )

        unit_price = Decimal(product.price)
        variant_price = unit_price + sum((Decimal(v.price_delta or 0) for v in variants), Decimal("0"))

        return LineQuote(
            product=product,
            variants=variants,
            quantity=quantity,
            unit_price=unit_price,
            variant_price=variant_price,
            subtotal=variant_price * quantity,
            variant_label=build_variant_label(variants),
            cart_item_id=cart_item_id,
        )

    @staticmethod
    def quote_lines(db: Session, specs: Iterable[LineSpec], lock: bool = False) -> list[LineQuote]:
        """
        Quote every line, then check stock against the combined quantity:
        two lines of one product (different variants) draw on the same stock.
        """
        quotes = [
            PricingService.quote_line(
                db, spec.product_id, spec.variant_ids, spec.quantity,
                lock=lock, cart_item_id=spec.cart_item_id
            )
            for spec in specs
        ]
        PricingService.check_combined_stock(quotes)
        return quotes

    @staticmethod
    def check_combined_stock(quotes: Iterable[LineQuote]) -> None:
        """
        Raises:
            OutOfStock: The summed quantity for a product or variant exceeds
                        its tracked stock
        """
        products: dict[int, Product] = {}
        variants: dict[int, tuple[Product, ProductVariant]] = {}
        product_totals: dict[int, int] = defaultdict(int)
        variant_totals: dict[int, int] = defaultdict(int)

        for quote in quotes:
            products[quote.product.id] = quote.product
            product_totals[quote.product.id] += quote.quantity
            for variant in quote.variants:
                variants[variant.id] = (quote.product, variant)
                variant_totals[variant.id] += quote.quantity

        for product_id, total in product_totals.items():
            product = products[product_id]
            if has_tracked_shortfall(product.stock, total):
                raise OutOfStock(
                    f"Insufficient stock for '{product.name}'. Available: {product.stock}, "
                    f"requested in total: {total}",
                    data={"product_id": product.id, "available": product.stock, "requested": total}
                )

        for variant_id, total in variant_totals.items():
            product, variant = variants[variant_id]
            if has_tracked_shortfall(variant.stock, total):
                raise OutOfStock(
                    f"Insufficient stock for variant {variant.value} of '{product.name}'. "
                    f"Available: {variant.stock}, requested in total: {total}",
                    data={"product_id": product.id, "variant_id": variant.id,
                          "available": variant.stock, "requested": total}
                )
