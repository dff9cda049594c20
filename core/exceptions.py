"""
Domain errors raised by the services.

Each error is an HTTPException with a fixed status code, so a service can
raise it the same way it would raise a plain HTTPException and the router
does not need to translate anything. main.py renders them with the
{status_code, message, data} envelope.
"""

from starlette import status
from fastapi import HTTPException


class AppError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be processed"

    def __init__(self, message: str | None = None, data=None):
        super().__init__(status_code=self.status_code, detail=message or self.default_message)
        self.data = data

    @property
    def message(self) -> str:
        return self.detail


# Business rule violations
class EmptyCart(AppError):
    default_message = "Cart is empty"


class OutOfStock(AppError):
    default_message = "Insufficient stock"


class ProductUnavailable(AppError):
    default_message = "Product is not available for purchase"


class VariantMismatch(AppError):
    default_message = "One or more variants are not valid for this product"


class InvalidShippingCost(AppError):
    default_message = "Invalid shipping cost"


class InvalidTotal(AppError):
    default_message = "Invalid order total"


class InvalidTransition(AppError):
    default_message = "Order status cannot be changed"


class InsufficientStock(AppError):
    default_message = "Insufficient stock to pack this order"


class AlreadyRated(AppError):
    default_message = "Order has already been rated"


class TrackingUnavailable(AppError):
    default_message = "Tracking is not available for this order yet"


# Lookups and authorization
class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class PaymentNotFound(NotFound):
    default_message = "Payment not found"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class InvalidSignature(Forbidden):
    default_message = "Invalid signature"


# Integration failures
class GatewayError(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Payment gateway request failed"


class ShippingProviderError(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Shipping provider request failed"
