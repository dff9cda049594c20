from decimal import Decimal
from pydantic_settings import BaseSettings
from pydantic import ConfigDict

class Settings(BaseSettings):
    model_config = ConfigDict(env_file=".env")

    ENV: str = "development"

    DATABASE_URL: str = "sqlite:///./storefront.db"
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # Payment gateway (Midtrans)
    MIDTRANS_SERVER_KEY: str = ""
    MIDTRANS_CLIENT_KEY: str = ""
    MIDTRANS_IS_PRODUCTION: bool = False
    MIDTRANS_TIMEOUT_SECONDS: float = 15.0
    PAYMENT_FINISH_URL: str = "http://localhost:3000/orders"
    TRANSACTION_PREFIX: str = "ORDER"

    # Checkout
    MAX_SHIPPING_COST: Decimal = Decimal("1000000")
    PHONE_DEFAULT_REGION: str = "ID"

    # Shipping provider (Biteship)
    BITESHIP_API_KEY: str = ""
    BITESHIP_BASE_URL: str = "https://api.biteship.com/v1"
    BITESHIP_ORIGIN_AREA_ID: str = ""
    BITESHIP_COURIERS: str = "jne,jnt,sicepat"
    BITESHIP_DEFAULT_WEIGHT: int = 1000


settings = Settings()
