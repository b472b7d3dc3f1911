"""MongoDB-backed durable OTP store with TTL expiry."""

import contextlib
import logging
from collections.abc import Iterator
from datetime import UTC, datetime
from typing import Any

try:
    from motor.motor_asyncio import AsyncIOMotorDatabase  # type: ignore[import-untyped]
    from pymongo import ASCENDING, ReturnDocument
    from pymongo.errors import PyMongoError
except ImportError as e:
    raise ImportError(
        "MongoDB support requires motor and pymongo. "
        "Install with: pip install chatbot-otp-auth[mongodb]"
    ) from e

from chatbot_otp_auth.db.models import OTPRecord
from chatbot_otp_auth.exceptions import OTPStoreError

logger = logging.getLogger(__name__)


class MongoOTPStore:
    """
    Durable OTPStore on a MongoDB collection.

    Document layout::

        {email, code, purpose, attempts, maxAttempts, lastSent, expiresAt}

    ``email`` carries a unique index and ``expiresAt`` a TTL index with
    ``expireAfterSeconds=0``, so the server removes abandoned codes on its own.
    Call ``ensure_indexes`` once at startup.

    Example:
        ```python
        store = MongoOTPStore(client.widget, collection_name="otp_codes")
        await store.ensure_indexes()
        ```
    """

    name = "mongodb"

    def __init__(
        self, database: AsyncIOMotorDatabase, collection_name: str = "otp_codes"
    ) -> None:
        self.database = database
        self.collection = database[collection_name]

    @contextlib.contextmanager
    def _errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except PyMongoError as e:
            raise OTPStoreError(f"OTP store {operation} failed: {e}", self.name) from e

    async def ensure_indexes(self) -> None:
        """Create the unique identity index and the TTL index."""
        with self._errors("index"):
            await self.collection.create_index([("email", ASCENDING)], unique=True)
            await self.collection.create_index(
                [("expiresAt", ASCENDING)], expireAfterSeconds=0
            )

    def _deserialize(self, doc: dict[str, Any] | None) -> OTPRecord | None:
        if doc is None:
            return None
        doc.pop("_id", None)
        return OTPRecord.model_validate(doc)

    async def upsert(self, record: OTPRecord) -> None:
        doc = record.model_dump(by_alias=True, mode="python")
        doc["purpose"] = record.purpose.value
        with self._errors("upsert"):
            await self.collection.replace_one(
                {"email": record.identity}, doc, upsert=True
            )

    async def get(self, identity: str) -> OTPRecord | None:
        with self._errors("get"):
            doc = await self.collection.find_one({"email": identity})
        return self._deserialize(doc)

    async def increment_attempts(self, identity: str) -> int | None:
        with self._errors("increment"):
            doc = await self.collection.find_one_and_update(
                {"email": identity},
                {"$inc": {"attempts": 1}},
                return_document=ReturnDocument.AFTER,
            )
        return None if doc is None else int(doc["attempts"])

    async def delete(self, identity: str) -> None:
        with self._errors("delete"):
            await self.collection.delete_one({"email": identity})

    async def touch_last_sent(self, identity: str, at: datetime) -> None:
        with self._errors("touch"):
            await self.collection.update_one(
                {"email": identity}, {"$set": {"lastSent": at}}
            )

    async def is_available(self) -> bool:
        try:
            await self.database.command("ping")
        except PyMongoError as e:
            logger.debug("MongoDB OTP store unreachable: %s", e)
            return False
        return True

    async def cleanup_expired(self, now: datetime | None = None) -> int:
        # The TTL monitor runs about once a minute; this only tightens that window
        now = now or datetime.now(UTC)
        with self._errors("cleanup"):
            result = await self.collection.delete_many({"expiresAt": {"$lt": now}})
        return result.deleted_count
