from fastapi import APIRouter, Request
from starlette import status
from utils.deps import db_dependency, customer_dependency, gateway_dependency, shipping_dependency
from utils.responses import envelope
from schemas.checkout_schemas import CheckoutRequest, CheckoutSummaryRequest, ShippingRatesRequest
from services.checkout_service import CheckoutService
from middleware.rate_limiter import limiter


router = APIRouter(
    prefix="/customer/checkout",
    tags=["checkout"]
)


@router.post("/summary")
async def checkout_summary(body: CheckoutSummaryRequest, user: customer_dependency, db: db_dependency):
    summary = CheckoutService.summary(db, user["user_id"], body, body.shipping_cost)
    return envelope(summary)


@router.post("/shipping-rates")
@limiter.limit("30/minute")
async def shipping_rates(request: Request, body: ShippingRatesRequest, user: customer_dependency,
                         db: db_dependency, provider: shipping_dependency):
    rates = CheckoutService.shipping_rates(
        db, user["user_id"], body, body.destination_area_id, provider, body.couriers
    )
    return envelope(rates)


@router.post("/process", status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def process_checkout(request: Request, body: CheckoutRequest, user: customer_dependency,
                           db: db_dependency, gateway: gateway_dependency):
    result = CheckoutService.process(db, user["user_id"], body, gateway)
    return envelope(result, message="Order created", status_code=status.HTTP_201_CREATED)
