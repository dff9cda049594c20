import pytest
from decimal import Decimal
from models.orders import Order, OrderStatus
from models.order_items import OrderItem
from models.payments import Payment, PaymentStatus
from models.products import Product
from models.product_variants import ProductVariant
from models.cart_items import CartItem
from models.carts import Cart
from models.notifications import Notification
from models.inventory_changes import InventoryChange
from schemas.checkout_schemas import CheckoutRequest
from services.checkout_service import CheckoutService
from core.exceptions import EmptyCart, GatewayError, InvalidShippingCost, InvalidTotal, OutOfStock
from tests.helpers import add_to_cart, checkout_body, place_order


def test_gateway_checkout_totals(session, customer, product, size_l, gateway, gateway_stub):
    """2 x (100,000 + 10,000) + 15,000 shipping = 235,000."""
    add_to_cart(session, customer, product, 2, [size_l.id])

    result = CheckoutService.process(session, customer.id, CheckoutRequest(**checkout_body()), gateway)

    assert Decimal(result["total"]) == Decimal("235000")
    assert result["status"] == "awaiting_payment"
    assert result["payment_status"] == "pending"
    assert result["session_token"] == "snap-token-0001-abcdef"

    order = session.get(Order, result["order_id"])
    assert order.total_price == Decimal("235000")
    assert order.shipping_cost == Decimal("15000")
    assert order.status == OrderStatus.AWAITING_PAYMENT
    assert order.receiver_phone == "+6281234567890"
    assert order.stock_deducted is False

    [item] = order.items
    assert item.unit_price == Decimal("100000")
    assert item.variant_price == Decimal("110000")
    assert item.subtotal == Decimal("220000")
    assert item.variant_label == "Size: L"
    assert item.variants == [{"name": "Size", "value": "L"}]

    payment = order.payment
    assert payment.amount == Decimal("235000")
    assert payment.status == PaymentStatus.PENDING
    assert payment.transaction_id.startswith(f"ORDER-{order.id}-")

    [sent] = gateway_stub.sessions
    assert sent["transaction_details"]["gross_amount"] == 235000
    assert sent["transaction_details"]["order_id"] == payment.transaction_id
    assert {"id": "SHIPPING", "name": "Shipping", "price": 15000, "quantity": 1} in sent["item_details"]

    # stock is only taken once the payment settles
    session.refresh(product)
    session.refresh(size_l)
    assert product.stock == 10
    assert size_l.stock == 5


def test_cart_snapshot_price_is_ignored(session, customer, product, gateway):
    item = add_to_cart(session, customer, product, 1)
    item.unit_price = Decimal("1")
    item.subtotal = Decimal("1")
    session.commit()

    result = CheckoutService.process(session, customer.id, CheckoutRequest(**checkout_body()), gateway)

    assert Decimal(result["total"]) == Decimal("115000")


def test_checkout_clears_consumed_cart_items(session, customer, product, gateway):
    add_to_cart(session, customer, product, 1)

    CheckoutService.process(session, customer.id, CheckoutRequest(**checkout_body()), gateway)

    cart = session.query(Cart).filter(Cart.user_id == customer.id).one()
    assert session.query(CartItem).filter(CartItem.cart_id == cart.id).count() == 0
    assert cart.total_price == Decimal("0")


def test_checkout_selected_items_only(session, customer, product, untracked_product, gateway):
    first = add_to_cart(session, customer, product, 1)
    second = add_to_cart(session, customer, untracked_product, 2)

    result = CheckoutService.process(
        session, customer.id, CheckoutRequest(**checkout_body(item_ids=[first.id])), gateway
    )

    order = session.get(Order, result["order_id"])
    assert [item.product_id for item in order.items] == [product.id]

    remaining = session.query(CartItem).all()
    assert [item.id for item in remaining] == [second.id]

    cart = session.query(Cart).filter(Cart.user_id == customer.id).one()
    assert cart.total_price == Decimal("100000")


def test_buy_now_does_not_touch_cart(session, customer, product, untracked_product, gateway):
    cart_item = add_to_cart(session, customer, untracked_product, 1)

    order = place_order(session, customer, product, 1, gateway)

    assert [item.product_id for item in order.items] == [product.id]
    assert session.get(CartItem, cart_item.id) is not None


def test_empty_cart_rejected(session, customer, gateway):
    with pytest.raises(EmptyCart):
        CheckoutService.process(session, customer.id, CheckoutRequest(**checkout_body()), gateway)


def test_out_of_stock_leaves_no_trace(session, customer, product, gateway, gateway_stub):
    add_to_cart(session, customer, product, 11)

    with pytest.raises(OutOfStock):
        CheckoutService.process(session, customer.id, CheckoutRequest(**checkout_body()), gateway)

    assert session.query(Order).count() == 0
    assert session.query(CartItem).count() == 1
    assert gateway_stub.sessions == []
    session.refresh(product)
    assert product.stock == 10


@pytest.mark.parametrize("shipping_cost", ["-1", "1000001"])
def test_shipping_cost_out_of_range(session, customer, product, gateway, shipping_cost):
    add_to_cart(session, customer, product, 1)

    with pytest.raises(InvalidShippingCost):
        CheckoutService.process(
            session, customer.id, CheckoutRequest(**checkout_body(shipping_cost=shipping_cost)), gateway
        )
    assert session.query(Order).count() == 0


def test_zero_total_rejected(session, customer, gateway):
    free = Product(name="Sticker", price=Decimal("0"), stock=0, is_active=True)
    session.add(free)
    session.commit()

    with pytest.raises(InvalidTotal):
        place_order(session, customer, free, 1, gateway, shipping_cost="0")
    assert session.query(Order).count() == 0


def test_gateway_failure_rolls_back_everything(session, customer, product, gateway, gateway_stub):
    gateway_stub.session_error = True
    add_to_cart(session, customer, product, 2)

    with pytest.raises(GatewayError):
        CheckoutService.process(session, customer.id, CheckoutRequest(**checkout_body()), gateway)

    assert session.query(Order).count() == 0
    assert session.query(OrderItem).count() == 0
    assert session.query(Payment).count() == 0
    assert session.query(Notification).count() == 0
    assert session.query(CartItem).count() == 1
    session.refresh(product)
    assert product.stock == 10


def test_cod_order_is_paid_and_packed_at_once(session, customer, gateway, gateway_stub):
    """COD: qty 1 at 50,000, no shipping. No gateway call, stock taken at creation."""
    item = Product(name="Tote Bag", price=Decimal("50000"), stock=3, is_active=True)
    session.add(item)
    session.commit()

    order = place_order(session, customer, item, 1, gateway, payment_method="cod", shipping_cost="0")

    assert order.total_price == Decimal("50000")
    assert order.status == OrderStatus.PACKED
    assert order.payment.status == PaymentStatus.PAID
    assert order.payment.paid_at is not None
    assert order.payment.session_token is None
    assert order.stock_deducted is True
    assert gateway_stub.sessions == []

    session.refresh(item)
    assert item.stock == 2

    change = session.query(InventoryChange).filter(InventoryChange.order_id == order.id).one()
    assert change.reason == "decrement"
    assert change.change_amount == 1


def test_transfer_order_waits_for_confirmation(session, customer, product, gateway, gateway_stub):
    order = place_order(session, customer, product, 1, gateway, payment_method="transfer")

    assert order.status == OrderStatus.AWAITING_PAYMENT
    assert order.payment.status == PaymentStatus.PENDING
    assert order.payment.transaction_id is None
    assert gateway_stub.sessions == []


def test_unlimited_stock_product_never_blocks(session, customer, untracked_product, gateway):
    order = place_order(session, customer, untracked_product, 500, gateway, payment_method="cod")

    assert order.status == OrderStatus.PACKED
    session.refresh(untracked_product)
    assert untracked_product.stock == 0
    assert session.query(InventoryChange).count() == 0


def test_order_prices_are_snapshots(session, customer, product, size_l, gateway):
    order = place_order(session, customer, product, 2, gateway, variant_ids=[size_l.id])

    product.price = Decimal("999999")
    size_l.price_delta = Decimal("50000")
    session.commit()
    session.expire_all()

    order = session.get(Order, order.id)
    assert order.total_price == Decimal("235000")
    assert order.items[0].variant_price == Decimal("110000")
    assert order.items[0].subtotal == Decimal("220000")


def test_order_created_notification(session, customer, product, gateway):
    order = place_order(session, customer, product, 1, gateway)

    notification = session.query(Notification).filter(Notification.order_id == order.id).one()
    assert notification.type == "order_created"
    assert notification.user_id == customer.id
    assert notification.payment_id == order.payment.id


def test_summary_prices_without_writing(session, customer, product, size_l):
    add_to_cart(session, customer, product, 2, [size_l.id])

    summary = CheckoutService.summary(session, customer.id, CheckoutRequest(**checkout_body()), Decimal("15000"))

    assert Decimal(summary["subtotal"]) == Decimal("220000")
    assert Decimal(summary["total"]) == Decimal("235000")
    assert summary["items"][0]["variant_label"] == "Size: L"
    assert session.query(Order).count() == 0


def test_two_variant_lines_cannot_oversell(session, customer, product, gateway, gateway_stub):
    product.stock = 5
    medium = ProductVariant(product_id=product.id, name="Size", value="M", price_delta=Decimal("0"), stock=0)
    small = ProductVariant(product_id=product.id, name="Size", value="S", price_delta=Decimal("0"), stock=0)
    session.add_all([medium, small])
    session.commit()
    add_to_cart(session, customer, product, 3, [medium.id])
    add_to_cart(session, customer, product, 3, [small.id])

    with pytest.raises(OutOfStock):
        CheckoutService.process(session, customer.id, CheckoutRequest(**checkout_body()), gateway)

    assert session.query(Order).count() == 0
    assert session.query(CartItem).count() == 2
    assert gateway_stub.sessions == []


def test_fractional_shipping_cost_rejected(session, customer, product, gateway):
    add_to_cart(session, customer, product, 1)

    with pytest.raises(InvalidShippingCost):
        CheckoutService.process(
            session, customer.id, CheckoutRequest(**checkout_body(shipping_cost="15000.50")), gateway
        )
    assert session.query(Order).count() == 0


def test_fractional_price_cannot_go_to_gateway(session, customer, gateway, gateway_stub):
    odd = Product(name="Loose Tea", price=Decimal("12500.50"), stock=0, is_active=True)
    session.add(odd)
    session.commit()

    with pytest.raises(InvalidTotal):
        place_order(session, customer, odd, 1, gateway)

    assert session.query(Order).count() == 0
    assert gateway_stub.sessions == []
