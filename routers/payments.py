from fastapi import APIRouter, Request
from utils.deps import db_dependency, customer_dependency, gateway_dependency
from utils.responses import envelope
from schemas.payment_schemas import CheckStatusRequest, CreateTokenRequest, PaymentNotification
from services.payment_service import PaymentService
from services.reconciliation_service import ReconciliationService
from core.exceptions import PaymentNotFound
from middleware.rate_limiter import limiter
from utils.logger import get_payments_logger

logger = get_payments_logger(__name__)


router = APIRouter(tags=["payments"])


@router.post("/customer/payment/create-token")
@limiter.limit("10/minute")
async def create_payment_token(request: Request, body: CreateTokenRequest, user: customer_dependency,
                               db: db_dependency, gateway: gateway_dependency):
    payment = PaymentService.retry_session(db, body.order_id, user["user_id"], gateway)
    return envelope(
        {
            "order_id": payment.order_id,
            "session_token": payment.session_token,
            "redirect_url": payment.redirect_url,
            "transaction_id": payment.transaction_id,
        },
        message="Payment session created",
    )


@router.post("/customer/payment/check-status")
@limiter.limit("30/minute")
async def check_payment_status(request: Request, body: CheckStatusRequest, user: customer_dependency,
                               db: db_dependency, gateway: gateway_dependency):
    result = ReconciliationService.check_status(db, body.order_id, user["user_id"], gateway)
    return envelope(result)


@router.post("/payment/notification")
async def payment_notification(body: PaymentNotification, db: db_dependency, gateway: gateway_dependency):
    """
    Gateway webhook. Authenticated by signature only.

    Unknown transaction references are acknowledged with 200 so the gateway
    stops retrying; a bad signature is answered with 403.
    """
    try:
        result = ReconciliationService.handle_notification(db, body, gateway)
    except PaymentNotFound as e:
        logger.warning(
            "Notification for unknown transaction acknowledged",
            extra={"transaction_ref": body.order_id, "transaction_status": body.transaction_status}
        )
        return envelope(None, message=e.message)

    return envelope(result, message="Notification processed")
