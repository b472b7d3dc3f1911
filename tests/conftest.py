"""Test configuration and fixtures."""

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from sqlalchemy import Integer, String
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import StaticPool

from chatbot_otp_auth.config import OTPAuthConfig
from chatbot_otp_auth.db.memory import MemoryOTPStore
from chatbot_otp_auth.db.models import OTPRecord
from chatbot_otp_auth.db.selector import OTPStoreSelector
from chatbot_otp_auth.db.sqlalchemy.adapter import SQLAlchemyUserDatabase
from chatbot_otp_auth.db.sqlalchemy.models import BaseOTPCodeTable, BaseWidgetUserTable
from chatbot_otp_auth.db.sqlalchemy.otp_store import SQLAlchemyOTPStore
from chatbot_otp_auth.exceptions import OTPStoreError
from chatbot_otp_auth.gateway import AuthenticationGateway
from chatbot_otp_auth.manager import OTPLifecycleManager
from chatbot_otp_auth.tokens import TokenIssuer
from chatbot_otp_auth.types import OTPPurpose

# ============================================================================
# Database Models for Testing
# ============================================================================


class Base(DeclarativeBase):
    """Base class for test database models."""


class User(BaseWidgetUserTable[int], Base):
    """Test user model."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str | None] = mapped_column(String(50), nullable=True)


class OTPCode(BaseOTPCodeTable, Base):
    """Test OTP table."""

    __tablename__ = "otp_codes"


# ============================================================================
# Test Configuration
# ============================================================================


class MockOTPConfig(OTPAuthConfig):
    """Mock OTP authentication configuration for testing."""

    secret_key = "test-secret-key-minimum-32-chars-long"
    access_token_lifetime = timedelta(days=7)
    otp_expiry = timedelta(minutes=10)
    otp_length = 6
    max_otp_attempts = 3
    otp_resend_throttle = timedelta(seconds=20)

    def __init__(self) -> None:
        """Initialize test config."""
        self.sent_otps: list[tuple[str, str, OTPPurpose]] = []
        self.fail_delivery = False
        super().__init__()

    async def send_otp(self, email: str, code: str, purpose: OTPPurpose) -> bool:
        """Store sent OTPs for testing instead of actually sending."""
        self.sent_otps.append((email, code, purpose))
        return not self.fail_delivery

    async def create_user(self, email: str) -> dict[str, Any]:
        """Create user data for new users."""
        return {"name": email.split("@")[0]}

    @property
    def last_code(self) -> str:
        return self.sent_otps[-1][1]


class FrozenClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 15, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FlakyStore(MemoryOTPStore):
    """Memory store standing in for a durable backend that can go away."""

    name = "flaky"

    def __init__(self) -> None:
        super().__init__()
        self.available = True
        self.failing = False
        self.probes = 0

    def _check(self) -> None:
        if self.failing:
            raise OTPStoreError("connection refused", self.name)

    async def upsert(self, record: OTPRecord) -> None:
        self._check()
        await super().upsert(record)

    async def get(self, identity: str) -> OTPRecord | None:
        self._check()
        return await super().get(identity)

    async def cleanup_expired(self, now: datetime | None = None) -> int:
        self._check()
        return await super().cleanup_expired(now)

    async def is_available(self) -> bool:
        self.probes += 1
        return self.available


def wrong_code(code: str) -> str:
    """Return a same-length code guaranteed to differ from ``code``."""
    return "1" * len(code) if code != "1" * len(code) else "2" * len(code)


# ============================================================================
# Basic Fixtures
# ============================================================================


@pytest.fixture
def test_secret() -> str:
    """Provide a test secret key."""
    return "test-secret-key-minimum-32-chars-long"


@pytest.fixture
def test_config() -> MockOTPConfig:
    """Provide a test configuration."""
    return MockOTPConfig()


@pytest.fixture
def clock() -> FrozenClock:
    """Provide a controllable clock."""
    return FrozenClock()


@pytest.fixture
def memory_store() -> MemoryOTPStore:
    """Provide an empty in-memory OTP store."""
    return MemoryOTPStore()


@pytest.fixture
def selector(memory_store: MemoryOTPStore) -> OTPStoreSelector:
    """Selector with no durable backend, so the memory store is always used."""
    return OTPStoreSelector(fallback=memory_store)


@pytest.fixture
def manager(
    selector: OTPStoreSelector, test_config: MockOTPConfig, clock: FrozenClock
) -> OTPLifecycleManager:
    """Provide a lifecycle manager on the memory store."""
    return OTPLifecycleManager(selector, test_config, clock=clock)


@pytest.fixture
def issuer(test_config: MockOTPConfig) -> TokenIssuer:
    """Provide a token issuer with its own blacklist."""
    return TokenIssuer(test_config)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def async_engine():  # type: ignore[no-untyped-def]
    """Create an async SQLite engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(async_engine) -> async_sessionmaker[AsyncSession]:  # type: ignore[no-untyped-def]
    """Create an async session maker bound to the test engine."""
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def user_db(session_maker: async_sessionmaker[AsyncSession]) -> SQLAlchemyUserDatabase[User]:
    """Create a SQLAlchemyUserDatabase instance."""
    return SQLAlchemyUserDatabase(session_maker, User)


@pytest.fixture
def sql_otp_store(session_maker: async_sessionmaker[AsyncSession]) -> SQLAlchemyOTPStore:
    """Create a SQLAlchemyOTPStore instance."""
    return SQLAlchemyOTPStore(session_maker, OTPCode)


@pytest.fixture
async def test_user(user_db: SQLAlchemyUserDatabase[User]) -> User:
    """Create a test user."""
    return await user_db.create_user(email="test@example.com", name="testuser")


@pytest.fixture
def gateway(
    manager: OTPLifecycleManager,
    issuer: TokenIssuer,
    user_db: SQLAlchemyUserDatabase[User],
    test_config: MockOTPConfig,
) -> AuthenticationGateway[User]:
    """Provide a gateway wired to the memory OTP store and SQLite users."""
    return AuthenticationGateway(
        manager=manager, issuer=issuer, users=user_db, config=test_config
    )
