"""Example FastAPI application with OTP authentication on SQLAlchemy.

This example demonstrates:
- Declaring the user and OTP tables from the provided mixins
- Wiring the durable SQL OTP store with the in-memory fallback
- Configuring OTP authentication with a custom send_otp implementation
- Starting and stopping the store selector with the app lifespan
- Using protected endpoints with authentication dependencies
"""
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import Depends, FastAPI
from sqlalchemy import Integer, String
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from chatbot_otp_auth import (
    AuthenticationGateway,
    BaseOTPCodeTable,
    BaseWidgetUserTable,
    OTPAuthConfig,
    OTPLifecycleManager,
    OTPPurpose,
    OTPStoreSelector,
    SQLAlchemyOTPStore,
    SQLAlchemyUserDatabase,
    TokenIssuer,
    get_auth_router,
    get_current_user_dependency,
    get_verified_user_dependency,
)

DATABASE_URL = "sqlite+aiosqlite:///./widget.db"


class Base(DeclarativeBase):
    pass


class User(BaseWidgetUserTable[int], Base):
    """Widget owner account."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)


class OTPCode(BaseOTPCodeTable, Base):
    __tablename__ = "otp_codes"


engine = create_async_engine(DATABASE_URL)
session_maker = async_sessionmaker(engine, expire_on_commit=False)


class WidgetOTPConfig(OTPAuthConfig):
    """Custom OTP configuration."""

    secret_key = "your-secret-key-min-32-chars-long-generate-with-openssl"
    developer_mode = True  # Set to False in production!

    access_token_lifetime = timedelta(days=7)
    otp_expiry = timedelta(minutes=10)
    max_otp_attempts = 3

    async def send_otp(self, email: str, code: str, purpose: OTPPurpose) -> bool:
        """
        Send OTP code to user's email.

        In production, hand the code to an email service here.
        """
        print(f"\nSending {purpose.value} OTP to {email}: {code}\n")
        return True

    async def create_user(self, email: str) -> dict[str, str]:
        return {"name": email.split("@")[0]}


config = WidgetOTPConfig()
selector = OTPStoreSelector.from_config(
    config, durable=SQLAlchemyOTPStore(session_maker, OTPCode)
)
gateway: AuthenticationGateway[User] = AuthenticationGateway(
    manager=OTPLifecycleManager(selector, config),
    issuer=TokenIssuer(config),
    users=SQLAlchemyUserDatabase(session_maker, User),
    config=config,
)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await selector.start()
    yield
    await selector.stop()
    await engine.dispose()


app = FastAPI(
    title="Chatbot Widget Auth Example",
    description="OTP login for the embeddable chatbot widget",
    lifespan=lifespan,
)
app.include_router(get_auth_router(gateway), prefix="/auth", tags=["Authentication"])

current_user = Depends(get_current_user_dependency(gateway))
verified_user = Depends(get_verified_user_dependency(gateway))


@app.get("/dashboard")
async def dashboard(user: User = current_user) -> dict[str, str]:
    """Protected endpoint - requires authentication."""
    return {"user_id": str(user.id), "email": user.email}


@app.get("/widget/settings")
async def widget_settings(user: User = verified_user) -> dict[str, str | bool]:
    """Protected endpoint - requires a verified email address."""
    return {"email": user.email, "email_verified": user.email_verified}


if __name__ == "__main__":
    import uvicorn

    print("""
    Try the following flow:

    1. POST http://localhost:8000/auth/request-otp   {"email": "owner@example.com"}
    2. POST http://localhost:8000/auth/verify-otp    {"email": "owner@example.com", "code": "000000"}
    3. Use the access_token as a Bearer token on /dashboard

    API Docs: http://localhost:8000/docs
    """)

    uvicorn.run(app, host="0.0.0.0", port=8000)
