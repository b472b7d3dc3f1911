"""Custom SQLAlchemy types for timezone-aware datetime handling."""

from datetime import UTC, datetime

from sqlalchemy import types
from sqlalchemy.engine import Dialect


class UTCDateTime(types.TypeDecorator):
    """
    DateTime column that stores naive UTC and loads aware UTC.

    OTP expiry and throttle checks compare against ``datetime.now(UTC)``, so
    values read back must carry tzinfo on every backend, SQLite included.
    Naive values written to the column are taken to already be UTC.

    Example:
        ```python
        expires_at: Mapped[datetime] = mapped_column(UTCDateTime, index=True)
        ```
    """

    impl = types.DateTime
    cache_ok = True

    def process_bind_param(
        self, value: datetime | None, _dialect: Dialect
    ) -> datetime | None:
        if value is None or value.tzinfo is None:
            return value
        return value.astimezone(UTC).replace(tzinfo=None)

    def process_result_value(
        self, value: datetime | None, _dialect: Dialect
    ) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
