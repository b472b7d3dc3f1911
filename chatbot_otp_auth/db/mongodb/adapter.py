"""MongoDB adapter for widget user operations."""

import contextlib
from datetime import UTC, datetime
from typing import Any

try:
    from bson import ObjectId  # type: ignore[import-untyped]
    from motor.motor_asyncio import AsyncIOMotorDatabase  # type: ignore[import-untyped]
except ImportError as e:
    raise ImportError(
        "MongoDB support requires motor and pymongo. "
        "Install with: pip install chatbot-otp-auth[mongodb]"
    ) from e


def _object_id(value: Any) -> Any:  # noqa: ANN401
    """Convert a string id to ObjectId when it is a valid one."""
    if isinstance(value, str):
        with contextlib.suppress(Exception):
            return ObjectId(value)
    return value


class MongoUserDatabase[UserType]:
    """
    MongoDB implementation of the UserDatabase protocol.

    Wraps a Motor AsyncIOMotorDatabase and maps user documents to a
    Pydantic model.

    Example:
        ```python
        client = AsyncIOMotorClient("mongodb://localhost:27017")
        users = MongoUserDatabase(
            database=client.widget,
            user_collection_name="users",
            user_model_class=User,
        )
        ```
    """

    def __init__(
        self,
        database: AsyncIOMotorDatabase,
        user_collection_name: str,
        user_model_class: type[UserType],
    ) -> None:
        """
        Initialize the MongoDB adapter.

        Args:
            database: Motor AsyncIOMotorDatabase instance
            user_collection_name: Name of the users collection
            user_model_class: Pydantic model class for user documents
        """
        self.database = database
        self.user_collection = database[user_collection_name]
        self.user_model_class = user_model_class

    def _deserialize_user(self, doc: dict[str, Any] | None) -> UserType | None:
        """
        Convert a MongoDB document to a Pydantic user model.

        Args:
            doc: MongoDB document dictionary

        Returns:
            User model instance or None if doc is None
        """
        if doc is None:
            return None

        if "_id" in doc and isinstance(doc["_id"], ObjectId):
            doc["_id"] = str(doc["_id"])

        # BSON dates come back naive
        last_login = doc.get("last_login_at")
        if isinstance(last_login, datetime) and last_login.tzinfo is None:
            doc["last_login_at"] = last_login.replace(tzinfo=UTC)

        return self.user_model_class.model_validate(doc)  # type: ignore[attr-defined]

    async def get_by_email(self, email: str) -> UserType | None:
        """
        Retrieve user by email address.

        Args:
            email: Email address to search for

        Returns:
            User object if found, None otherwise
        """
        doc = await self.user_collection.find_one({"email": email})
        return self._deserialize_user(doc)

    async def get_by_id(self, user_id: int | str) -> UserType | None:
        """
        Retrieve user by ID.

        Args:
            user_id: User ID to search for (string or ObjectId)

        Returns:
            User object if found, None otherwise
        """
        doc = await self.user_collection.find_one({"_id": _object_id(user_id)})
        return self._deserialize_user(doc)

    async def create_user(self, email: str, **kwargs: object) -> UserType:
        """
        Create a new user with the given email and additional fields.

        Args:
            email: Canonical email address
            **kwargs: Additional user fields

        Returns:
            Created user object
        """
        user_data: dict[str, Any] = {
            "email": email,
            "email_verified": False,
            "last_login_at": None,
            **kwargs,
        }

        result = await self.user_collection.insert_one(user_data)
        user_data["_id"] = str(result.inserted_id)

        return self.user_model_class.model_validate(user_data)  # type: ignore[attr-defined]

    async def mark_email_verified(self, user: UserType) -> None:
        """Flag the user's address as verified."""
        await self.user_collection.update_one(
            {"_id": _object_id(user.id)},  # type: ignore[attr-defined]
            {"$set": {"email_verified": True}},
        )
        user.email_verified = True  # type: ignore[attr-defined]

    async def record_login(self, user: UserType) -> None:
        """Stamp the time of a successful OTP login."""
        now = datetime.now(UTC)
        await self.user_collection.update_one(
            {"_id": _object_id(user.id)},  # type: ignore[attr-defined]
            {"$set": {"last_login_at": now}},
        )
        user.last_login_at = now  # type: ignore[attr-defined]
