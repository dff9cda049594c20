import pytest
from decimal import Decimal
from pydantic import ValidationError
from core.config import settings
from core.exceptions import InvalidShippingCost
from schemas.checkout_schemas import CheckoutRequest
from services.checkout_service import validate_shipping_cost
from tests.helpers import checkout_body


def test_shipping_cost_within_range():
    assert validate_shipping_cost(Decimal("0")) == Decimal("0")
    assert validate_shipping_cost("15000") == Decimal("15000")
    assert validate_shipping_cost(settings.MAX_SHIPPING_COST) == settings.MAX_SHIPPING_COST


@pytest.mark.parametrize("cost", [Decimal("-1"), settings.MAX_SHIPPING_COST + 1, "abc", Decimal("NaN")])
def test_shipping_cost_out_of_range(cost):
    with pytest.raises(InvalidShippingCost):
        validate_shipping_cost(cost)


def test_shipping_cost_must_be_whole():
    assert validate_shipping_cost("15000.00") == Decimal("15000")

    with pytest.raises(InvalidShippingCost):
        validate_shipping_cost("15000.5")


def test_receiver_phone_normalized_to_e164():
    request = CheckoutRequest(**checkout_body(receiver_phone="0812-3456-7890"))
    assert request.receiver_phone == "+6281234567890"


def test_invalid_receiver_phone_rejected():
    with pytest.raises(ValidationError):
        CheckoutRequest(**checkout_body(receiver_phone="12"))


def test_buy_now_requires_product_and_quantity():
    with pytest.raises(ValidationError):
        CheckoutRequest(**checkout_body(buy_now=True, product_id=1))

    request = CheckoutRequest(**checkout_body(buy_now=True, product_id=1, quantity=2))
    assert request.buy_now is True


def test_unknown_payment_method_rejected():
    with pytest.raises(ValidationError):
        CheckoutRequest(**checkout_body(payment_method="bitcoin"))
