import os

# must be set before the app (and its Settings) is imported
os.environ.setdefault("ENV", "testing")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("MIDTRANS_SERVER_KEY", "SB-Mid-server-test")

from decimal import Decimal
from typing import Generator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from main import app
from core.database import Base
from clients.payment_gateway import PaymentGatewayClient
from models.users import User
from models.products import Product
from models.product_variants import ProductVariant
from services.auth_service import get_password_hash
from utils.deps import get_db, get_payment_gateway, get_shipping_provider
from tests.helpers import TEST_PASSWORD, GatewayStub, ShippingStub, auth_headers

# SYNC SQLite for testing (matches sync service layer)
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False}
)

TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """
    Creates a fresh, empty database for each test.
    Uses SYNC SQLAlchemy to match the service layer.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def gateway_stub() -> GatewayStub:
    return GatewayStub()


@pytest.fixture
def gateway(gateway_stub) -> Generator[PaymentGatewayClient, None, None]:
    client = gateway_stub.client()
    yield client
    client.close()


@pytest.fixture
def shipping_stub() -> ShippingStub:
    return ShippingStub()


@pytest.fixture
async def client(session: Session, gateway_stub: GatewayStub, shipping_stub: ShippingStub):
    """
    Yields an HTTP client wired to the test database and to the stubbed
    payment gateway and shipping provider.
    """
    def override_get_db():
        yield session

    def override_get_payment_gateway():
        gateway_client = gateway_stub.client()
        try:
            yield gateway_client
        finally:
            gateway_client.close()

    def override_get_shipping_provider():
        provider = shipping_stub.client()
        try:
            yield provider
        finally:
            provider.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = override_get_payment_gateway
    app.dependency_overrides[get_shipping_provider] = override_get_shipping_provider

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


def _make_user(session: Session, email: str, role: str = "customer") -> User:
    user = User(
        email=email,
        first_name="Test",
        last_name=role.capitalize(),
        hashed_password=get_password_hash(TEST_PASSWORD),
        phone_number="+6281234567890",
        role=role,
        is_active=True,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def customer(session) -> User:
    return _make_user(session, "customer@example.com")


@pytest.fixture
def other_customer(session) -> User:
    return _make_user(session, "other@example.com")


@pytest.fixture
def admin(session) -> User:
    return _make_user(session, "admin@example.com", role="admin")


@pytest.fixture
def customer_headers(customer) -> dict:
    return auth_headers(customer)


@pytest.fixture
def admin_headers(admin) -> dict:
    return auth_headers(admin)


@pytest.fixture
def product(session) -> Product:
    """Price 100,000 and 10 in stock."""
    model = Product(name="Running Shoe", price=Decimal("100000"), stock=10, is_active=True)
    session.add(model)
    session.commit()
    session.refresh(model)
    return model


@pytest.fixture
def size_l(session, product) -> ProductVariant:
    """+10,000 on top of the product price, 5 in stock."""
    variant = ProductVariant(product_id=product.id, name="Size", value="L",
                             price_delta=Decimal("10000"), stock=5)
    session.add(variant)
    session.commit()
    session.refresh(variant)
    return variant


@pytest.fixture
def untracked_product(session) -> Product:
    """Stock 0: not stock-tracked."""
    model = Product(name="Gift Card", price=Decimal("50000"), stock=0, is_active=True)
    session.add(model)
    session.commit()
    session.refresh(model)
    return model


@pytest.fixture
def foreign_variant(session) -> ProductVariant:
    """A variant that belongs to some other product."""
    other = Product(name="Socks", price=Decimal("20000"), stock=0, is_active=True)
    session.add(other)
    session.flush()
    variant = ProductVariant(product_id=other.id, name="Color", value="Red",
                             price_delta=Decimal("0"), stock=0)
    session.add(variant)
    session.commit()
    session.refresh(variant)
    return variant
