from decimal import Decimal, InvalidOperation
from typing import Optional
from sqlalchemy.orm import Session
from models.orders import Order, OrderStatus, PaymentMethod
from models.order_items import OrderItem
from models.users import User
from clients.payment_gateway import PaymentGatewayClient
from clients.shipping_provider import ShippingProviderClient
from core.config import settings
from core.database import transaction
from core.exceptions import EmptyCart, InvalidShippingCost, InvalidTotal, NotFound
from schemas.checkout_schemas import CheckoutRequest, LineSelection
from services.cart_service import CartService
from services.inventory_service import InventoryService
from services.notification_service import NotificationService
from services.payment_service import PaymentService
from services.pricing_service import LineQuote, LineSpec, PricingService
from utils.logger import get_logger

logger = get_logger(__name__)

# grams per unit when the catalog has no weight data
DEFAULT_ITEM_WEIGHT = 1000


def validate_shipping_cost(cost) -> Decimal:
    """Shipping cost is client supplied; accept it only within [0, MAX_SHIPPING_COST]."""
    try:
        value = Decimal(str(cost))
    except InvalidOperation:
        raise InvalidShippingCost("Shipping cost must be a number")

    if not value.is_finite() or value < 0:
        raise InvalidShippingCost("Shipping cost cannot be negative")

    if value != value.to_integral_value():
        raise InvalidShippingCost("Shipping cost must be a whole amount")

    if value > settings.MAX_SHIPPING_COST:
        raise InvalidShippingCost(
            f"Shipping cost exceeds the maximum of {settings.MAX_SHIPPING_COST}"
        )
    return value


def subtotal_of(quotes: list[LineQuote]) -> Decimal:
    return sum((quote.subtotal for quote in quotes), Decimal("0"))


class CheckoutService:

    @staticmethod
    def _line_specs(db: Session, user_id: int, selection: LineSelection):
        """
        Returns:
            (cart or None, list of LineSpec). Buy-now never touches the cart.
        """
        if selection.buy_now:
            spec = LineSpec(
                product_id=selection.product_id,
                quantity=selection.quantity,
                variant_ids=tuple(selection.variant_ids),
            )
            return None, [spec]

        cart, cart_items = CartService.selected_items(db, user_id, selection.item_ids)
        if not cart_items:
            raise EmptyCart("No cart items selected for checkout" if selection.item_ids else "Cart is empty")

        specs = [
            LineSpec(
                product_id=item.product_id,
                quantity=item.quantity,
                variant_ids=tuple(item.variant_ids or ()),
                cart_item_id=item.id,
            )
            for item in cart_items
        ]
        return cart, specs

    @staticmethod
    def summary(db: Session, user_id: int, selection: LineSelection,
                shipping_cost=Decimal("0")) -> dict:
        """Read-only preview of what process() would charge."""
        _, specs = CheckoutService._line_specs(db, user_id, selection)
        quotes = PricingService.quote_lines(db, specs)

        shipping = validate_shipping_cost(shipping_cost)
        subtotal = subtotal_of(quotes)

        return {
            "items": [quote.as_dict() for quote in quotes],
            "subtotal": str(subtotal),
            "shipping_cost": str(shipping),
            "total": str(subtotal + shipping),
            "total_weight": sum(quote.quantity for quote in quotes) * DEFAULT_ITEM_WEIGHT,
        }

    @staticmethod
    def shipping_rates(db: Session, user_id: int, selection: LineSelection, destination_area_id: str,
                       provider: ShippingProviderClient, couriers: Optional[str] = None) -> list[dict]:
        _, specs = CheckoutService._line_specs(db, user_id, selection)
        quotes = PricingService.quote_lines(db, specs)

        rates = provider.rates(
            destination_area_id=destination_area_id,
            total_weight=sum(quote.quantity for quote in quotes) * DEFAULT_ITEM_WEIGHT,
            total_value=int(subtotal_of(quotes)),
            couriers=couriers,
        )
        return [rate.as_dict() for rate in rates]

    @staticmethod
    def process(db: Session, user_id: int, request: CheckoutRequest, gateway: PaymentGatewayClient) -> dict:
        """
        Turn a cart selection (or a buy-now line) into an order with its payment.

        Flow (one transaction, all or nothing):
        1. Resolve lines and price them from the catalog
        2. Validate shipping cost and total
        3. Insert the order (COD starts packed, everything else awaits payment)
        4. Re-validate every line under row locks and write order items
        5. Create the payment (opens a gateway session for gateway orders)
        6. COD takes stock immediately
        7. Notify the customer and drop the consumed cart items
        """
        user = db.query(User).filter(User.id == user_id).one_or_none()
        if not user:
            raise NotFound("User not found")

        with transaction(db):
            cart, specs = CheckoutService._line_specs(db, user_id, request)

            quotes = PricingService.quote_lines(db, specs)
            shipping_cost = validate_shipping_cost(request.shipping_cost)
            total = subtotal_of(quotes) + shipping_cost

            if total <= 0:
                raise InvalidTotal("Order total must be greater than zero")

            is_cod = request.payment_method == PaymentMethod.COD

            order = Order(
                user_id=user_id,
                total_price=total,
                shipping_cost=shipping_cost,
                status=OrderStatus.PACKED if is_cod else OrderStatus.AWAITING_PAYMENT,
                payment_method=request.payment_method,
                shipping_address=request.shipping_address,
                receiver_name=request.receiver_name,
                receiver_phone=request.receiver_phone,
                shipping_method=request.shipping_method,
                courier_code=request.courier_code,
                courier_service=request.courier_service,
                stock_deducted=False,
            )
            db.add(order)
            db.flush()

            # second pass under row locks, prices and stock as of this instant
            locked_quotes = PricingService.quote_lines(db, specs, lock=True)
            locked_total = subtotal_of(locked_quotes) + shipping_cost
            if locked_total != total:
                logger.warning(
                    "Catalog changed during checkout, using locked prices",
                    extra={"order_id": order.id, "first_total": str(total), "locked_total": str(locked_total)}
                )
                order.total_price = locked_total

            for quote in locked_quotes:
                order.items.append(OrderItem(
                    product_id=quote.product.id,
                    variant_ids=quote.variant_ids,
                    variant_label=quote.variant_label,
                    unit_price=quote.unit_price,
                    variant_price=quote.variant_price,
                    quantity=quote.quantity,
                    subtotal=quote.subtotal,
                ))
            db.flush()

            payment = PaymentService.initiate(db, order, locked_quotes, user, gateway)

            if is_cod:
                InventoryService.deduct_for_order(db, order, strict=True)

            NotificationService.notify(
                db,
                user_id=user_id,
                title="Order placed",
                message=(
                    "Your order has been placed and is being packed."
                    if is_cod else
                    "Your order has been placed. Please complete the payment to continue."
                ),
                type="order_created",
                order_id=order.id,
                payment_id=payment.id,
            )

            if cart is not None:
                CartService.remove_items(db, cart, [spec.cart_item_id for spec in specs])
                CartService.recalculate_total(db, cart)

            result = {
                "order_id": order.id,
                "status": order.status.value,
                "payment_method": order.payment_method.value,
                "subtotal": str(order.total_price - shipping_cost),
                "shipping_cost": str(shipping_cost),
                "total": str(order.total_price),
                "payment_status": payment.status.value,
                "session_token": payment.session_token,
                "redirect_url": payment.redirect_url,
                "transaction_id": payment.transaction_id,
            }

        logger.info(
            "Order created",
            extra={"order_id": result["order_id"], "user_id": user_id, "total": result["total"],
                   "payment_method": result["payment_method"], "line_count": len(specs)}
        )
        return result
