"""Protocols defining the storage interfaces used by the OTP core."""

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from chatbot_otp_auth.db.models import OTPRecord


@runtime_checkable
class OTPStore(Protocol):
    """
    Key-value store holding at most one OTPRecord per canonical identity.

    Durable and in-process implementations share these semantics exactly.
    Infrastructure failures are raised as OTPStoreError.
    """

    name: str

    async def upsert(self, record: OTPRecord) -> None:
        """Replace or insert the record for ``record.identity``."""
        ...

    async def get(self, identity: str) -> OTPRecord | None:
        """Return the record for an identity, if any."""
        ...

    async def increment_attempts(self, identity: str) -> int | None:
        """
        Atomically add one failed attempt and return the new count.

        Returns None when the record no longer exists.
        """
        ...

    async def delete(self, identity: str) -> None:
        """Remove the record for an identity. Missing records are ignored."""
        ...

    async def touch_last_sent(self, identity: str, at: datetime) -> None:
        """Set the last-sent timestamp used for resend throttling."""
        ...

    async def is_available(self) -> bool:
        """Cheap reachability probe. Must not raise."""
        ...

    async def cleanup_expired(self, now: datetime | None = None) -> int:
        """Remove records past their expiry and return how many were removed."""
        ...


@runtime_checkable
class UserDatabase[UserType](Protocol):
    """
    User persistence consumed by the authentication gateway.

    The OTP core itself never touches users.
    """

    async def get_by_email(self, email: str) -> UserType | None: ...

    async def get_by_id(self, user_id: Any) -> UserType | None: ...  # noqa: ANN401

    async def create_user(self, email: str, **kwargs: object) -> UserType: ...

    async def mark_email_verified(self, user: UserType) -> None: ...

    async def record_login(self, user: UserType) -> None: ...
