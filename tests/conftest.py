"""
Pytest configuration and fixtures.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, AsyncGenerator, Callable, Iterator, List, Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from payment_orchestrator.config import Settings
from payment_orchestrator.core.models import CreditCard, PaymentRequest
from payment_orchestrator.database.models import Base
from payment_orchestrator.database.store import RecordStore
from payment_orchestrator.integrations.authorize_net import (
    AuthorizeNetClient,
    GatewayMessage,
    GatewayResponse,
)

ResponseFactory = Callable[..., GatewayResponse]


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        authorize_net_api_login_id="5KP3u95bQpv",
        authorize_net_transaction_key="346HZ32z3fP4hTG2",
        authorize_net_environment="Sandbox",
        database_url="sqlite+aiosqlite:///:memory:",
        app_name="payment-orchestrator-test",
        app_env="test",
        log_level="DEBUG",
        debug=True,
    )


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, Any]:
    """In-memory SQLite engine shared by every connection of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, Any]:
    """Create test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db_session: AsyncSession) -> RecordStore:
    return RecordStore(db_session)


@pytest.fixture
def approved_response() -> ResponseFactory:
    """Build an approved gateway response."""

    def build(
        transaction_id: str = "60123456789",
        response_code: str = "1",
        description: str = "This transaction has been approved.",
    ) -> GatewayResponse:
        return GatewayResponse(
            result_code="Ok",
            messages=[GatewayMessage(code="I00001", text="Successful.")],
            transaction_id=transaction_id,
            response_code=response_code,
            auth_code="ABC123",
            transaction_messages=[GatewayMessage(code="1", text=description)],
        )

    return build


@pytest.fixture
def declined_response() -> ResponseFactory:
    """Build a declined gateway response."""

    def build(
        response_code: Optional[str] = "2",
        error_text: Optional[str] = "This transaction has been declined.",
        messages: Optional[List[GatewayMessage]] = None,
    ) -> GatewayResponse:
        return GatewayResponse(
            result_code="Error",
            messages=messages
            if messages is not None
            else [GatewayMessage(code="E00027", text="The transaction was unsuccessful.")],
            transaction_id="0",
            response_code=response_code,
            errors=[GatewayMessage(code=response_code, text=error_text)] if error_text else [],
        )

    return build


@pytest.fixture
def gateway(approved_response: ResponseFactory) -> AsyncMock:
    """Gateway stub that approves everything unless a test says otherwise."""
    mock_gateway = AsyncMock(spec=AuthorizeNetClient)
    mock_gateway.submit_transaction.return_value = approved_response()
    return mock_gateway


@pytest.fixture
def payment_request() -> PaymentRequest:
    """Sample payment request: 100.50 on a Visa test card ending 1111."""
    return PaymentRequest(
        customer_id="CUST_12345",
        amount=Decimal("100.50"),
        credit_card=CreditCard(
            card_number="4111111111111111",
            expiration_month=12,
            expiration_year=2030,
            cvv="123",
            name_on_card="John Doe",
        ),
        description="Product purchase - Order #12345",
    )


class SteppingClock:
    """Deterministic clock advancing by ``step`` on every call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)) -> None:
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        now = self.current
        self.current = now + self.step
        return now


@pytest.fixture
def clock() -> Iterator[SteppingClock]:
    yield SteppingClock(datetime(2024, 12, 1, 12, 0, 0, tzinfo=timezone.utc))
