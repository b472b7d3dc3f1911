"""Example FastAPI application with OTP authentication on MongoDB.

This example demonstrates:
- A user document model built on BaseWidgetUserDocument
- The durable MongoDB OTP store with a TTL index on expiresAt
- Falling back to the in-memory store while MongoDB is unreachable
- Using protected endpoints with authentication dependencies
"""
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pydantic import Field
from pymongo.errors import PyMongoError

from chatbot_otp_auth import (
    AuthenticationGateway,
    BaseWidgetUserDocument,
    MongoOTPStore,
    MongoUserDatabase,
    OTPAuthConfig,
    OTPLifecycleManager,
    OTPPurpose,
    OTPStoreError,
    OTPStoreSelector,
    TokenIssuer,
    get_auth_router,
    get_current_user_dependency,
)

MONGODB_URL = "mongodb://localhost:27017"
DATABASE_NAME = "chatbot_widget"

client: AsyncIOMotorClient = AsyncIOMotorClient(MONGODB_URL, serverSelectionTimeoutMS=2000)
database: AsyncIOMotorDatabase = client[DATABASE_NAME]


class User(BaseWidgetUserDocument):
    """Widget owner account."""

    name: str | None = Field(None, description="Display name", max_length=100)
    plan: str = Field(default="free", description="Subscription plan id")


class WidgetOTPConfig(OTPAuthConfig):
    """Custom OTP configuration."""

    secret_key = "your-secret-key-min-32-chars-long-generate-with-openssl"
    developer_mode = True  # Set to False in production!

    async def send_otp(self, email: str, code: str, purpose: OTPPurpose) -> bool:
        print(f"\nSending {purpose.value} OTP to {email}: {code}\n")
        return True

    async def create_user(self, email: str) -> dict[str, Any]:
        return {"name": email.split("@")[0], "plan": "free"}

    def get_additional_claims(self, user: User) -> dict[str, Any]:
        return {"plan": user.plan}


config = WidgetOTPConfig()
otp_store = MongoOTPStore(database, collection_name="otp_codes")
selector = OTPStoreSelector.from_config(config, durable=otp_store)
gateway: AuthenticationGateway[User] = AuthenticationGateway(
    manager=OTPLifecycleManager(selector, config),
    issuer=TokenIssuer(config),
    users=MongoUserDatabase(database, "users", User),
    config=config,
)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    try:
        await database["users"].create_index("email", unique=True)
        await otp_store.ensure_indexes()
    except (OTPStoreError, PyMongoError) as e:
        # Codes go to the memory store until the probe sees MongoDB again
        print(f"\nMongoDB not ready yet: {e}\n")
    await selector.start()
    yield
    await selector.stop()
    client.close()


app = FastAPI(
    title="Chatbot Widget Auth Example (MongoDB)",
    lifespan=lifespan,
)
app.include_router(get_auth_router(gateway), prefix="/auth", tags=["Authentication"])

current_user = Depends(get_current_user_dependency(gateway))


@app.get("/dashboard")
async def dashboard(user: User = current_user) -> dict[str, str]:
    """Protected endpoint - requires authentication."""
    return {"user_id": str(user.id), "email": str(user.email), "plan": user.plan}


if __name__ == "__main__":
    import uvicorn

    print("""
    Prerequisites: MongoDB on localhost:27017
    (docker run -d -p 27017:27017 mongo)

    1. POST http://localhost:8000/auth/request-otp   {"email": "owner@gmail.com"}
    2. POST http://localhost:8000/auth/verify-otp    {"email": "o.w.n.e.r@gmail.com", "code": "000000"}
       Gmail dot variants resolve to the same code.

    API Docs: http://localhost:8000/docs
    """)

    uvicorn.run(app, host="0.0.0.0", port=8000)
