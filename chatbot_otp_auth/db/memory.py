"""In-process OTP store used when no durable backend is reachable."""

import logging
from datetime import UTC, datetime

from chatbot_otp_auth.db.models import OTPRecord

logger = logging.getLogger(__name__)


class MemoryOTPStore:
    """
    Process-local implementation of the OTPStore protocol.

    Records live in a plain dict. None of the methods await between reading
    and writing a record, so each call is atomic with respect to other
    coroutines on the same event loop. Expiry is only enforced when a record
    is read and by the periodic ``cleanup_expired`` sweep.
    """

    name = "memory"

    def __init__(self) -> None:
        self._records: dict[str, OTPRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    async def upsert(self, record: OTPRecord) -> None:
        self._records[record.identity] = record.model_copy()

    async def get(self, identity: str) -> OTPRecord | None:
        record = self._records.get(identity)
        return record.model_copy() if record is not None else None

    async def increment_attempts(self, identity: str) -> int | None:
        record = self._records.get(identity)
        if record is None:
            return None
        record.attempts += 1
        return record.attempts

    async def delete(self, identity: str) -> None:
        self._records.pop(identity, None)

    async def touch_last_sent(self, identity: str, at: datetime) -> None:
        record = self._records.get(identity)
        if record is not None:
            record.last_sent_at = at

    async def is_available(self) -> bool:
        return True

    async def cleanup_expired(self, now: datetime | None = None) -> int:
        now = now or datetime.now(UTC)
        expired = [key for key, record in self._records.items() if record.is_expired(now)]
        for key in expired:
            del self._records[key]

        if expired:
            logger.info("Cleaned up %d expired OTP records from memory", len(expired))
        return len(expired)
