"""Backend-neutral OTP record model."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chatbot_otp_auth.types import OTPPurpose


class OTPRecord(BaseModel):
    """
    The single active one-time code for one canonical identity.

    Field aliases match the durable document layout
    (``email``, ``maxAttempts``, ``lastSent``, ``expiresAt``), so a record can
    be dumped with ``by_alias=True`` straight into a collection.
    """

    identity: str = Field(..., alias="email", description="Canonical email address")
    code: str = Field(..., max_length=20)
    purpose: OTPPurpose = OTPPurpose.LOGIN
    attempts: int = Field(default=0, ge=0)
    max_attempts: int = Field(default=3, alias="maxAttempts", ge=1)
    expires_at: datetime = Field(..., alias="expiresAt")
    last_sent_at: datetime = Field(..., alias="lastSent")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("expires_at", "last_sent_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        # Drivers and SQLite may hand back naive datetimes; they are stored as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    @property
    def attempts_remaining(self) -> int:
        return max(0, self.max_attempts - self.attempts)
