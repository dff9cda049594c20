from core.database import SessionLocal
from typing import Annotated
from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from jose import JWTError, jwt
from starlette import status
from core.config import settings
from clients.payment_gateway import GatewayConfig, PaymentGatewayClient
from clients.shipping_provider import ShippingConfig, ShippingProviderClient


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

db_dependency = Annotated[Session, Depends(get_db)]


def get_current_user(token: Annotated[str, Depends(OAuth2PasswordBearer(tokenUrl="auth/token"))]):
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        email: str = payload.get("sub")
        user_id: int = payload.get("id")
        user_role: str = payload.get("role")
        token_type: str = payload.get("type")

        if email is None or user_id is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                                detail="Could not validate credentials.")

        if token_type != "access":
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                                detail="Invalid token type. Access token required.")

        return {"email": email, "user_id": user_id, "user_role": user_role}

    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail="Could not validate credentials.")


user_dependency = Annotated[dict, Depends(get_current_user)]


def require_role(role: str):
    def checker(user: user_dependency):
        if user.get("user_role") != role:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN,
                                detail=f"{role.capitalize()} access required.")
        return user
    return checker


customer_dependency = Annotated[dict, Depends(require_role("customer"))]
admin_dependency = Annotated[dict, Depends(require_role("admin"))]


def get_payment_gateway():
    client = PaymentGatewayClient(GatewayConfig.from_settings(settings))
    try:
        yield client
    finally:
        client.close()

gateway_dependency = Annotated[PaymentGatewayClient, Depends(get_payment_gateway)]


def get_shipping_provider():
    client = ShippingProviderClient(ShippingConfig.from_settings(settings))
    try:
        yield client
    finally:
        client.close()

shipping_dependency = Annotated[ShippingProviderClient, Depends(get_shipping_provider)]
