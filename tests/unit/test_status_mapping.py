import pytest
from models.orders import OrderStatus
from models.payments import PaymentStatus
from services.reconciliation_service import map_gateway_status


@pytest.mark.parametrize("transaction_status, fraud_status", [
    ("settlement", None),
    ("capture", "accept"),
    ("capture", None),
])
def test_settled_payments_pack_the_order(transaction_status, fraud_status):
    outcome = map_gateway_status(transaction_status, fraud_status)

    assert outcome.payment_status == PaymentStatus.PAID
    assert outcome.order_status == OrderStatus.PACKED
    assert outcome.notification == "payment_success"


def test_challenged_capture_stays_pending_silently():
    outcome = map_gateway_status("capture", "challenge")

    assert outcome.payment_status == PaymentStatus.PENDING
    assert outcome.order_status is None
    assert outcome.notification is None


def test_pending_sends_reminder():
    outcome = map_gateway_status("pending")

    assert outcome.payment_status == PaymentStatus.PENDING
    assert outcome.order_status is None
    assert outcome.notification == "payment_pending"


@pytest.mark.parametrize("transaction_status", ["deny", "cancel"])
def test_declined_payments_cancel_the_order(transaction_status):
    outcome = map_gateway_status(transaction_status)

    assert outcome.payment_status == PaymentStatus.FAILED
    assert outcome.order_status == OrderStatus.CANCELLED


def test_expired_payment_cancels_the_order():
    outcome = map_gateway_status("expire")

    assert outcome.payment_status == PaymentStatus.EXPIRED
    assert outcome.order_status == OrderStatus.CANCELLED
    assert outcome.notification == "payment_expired"


@pytest.mark.parametrize("transaction_status", ["refund", "partial_refund", "chargeback", "authorize", ""])
def test_unhandled_statuses_map_to_nothing(transaction_status):
    assert map_gateway_status(transaction_status) is None


def test_mapping_is_case_insensitive():
    assert map_gateway_status("SETTLEMENT").payment_status == PaymentStatus.PAID
