"""SQLAlchemy table mixins for OTP authentication."""

from datetime import datetime

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column  # type: ignore[import-untyped]

from chatbot_otp_auth.db.sqlalchemy.types import UTCDateTime


class BaseWidgetUserTable[ID]:
    """
    Base class for widget user models.

    Generic type parameter ID allows for different primary key types (int, UUID, etc.).

    Required fields:
        - email: Canonical email address (unique, indexed)
        - email_verified: Whether the user proved ownership of the address
        - last_login_at: Timestamp of the last successful OTP login

    Example:
        ```python
        from sqlalchemy.orm import DeclarativeBase

        class Base(DeclarativeBase):
            pass

        class User(BaseWidgetUserTable[int], Base):
            __tablename__ = "users"

            id: Mapped[int] = mapped_column(Integer, primary_key=True)
            company: Mapped[str | None] = mapped_column(String(120))
        ```
    """

    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)


class BaseOTPCodeTable:
    """
    Durable storage for active OTP codes, one row per canonical email.

    SQL databases have no TTL index, so abandoned rows are removed by the
    store's periodic ``cleanup_expired`` sweep.

    Example:
        ```python
        class OTPCode(BaseOTPCodeTable, Base):
            __tablename__ = "otp_codes"
        ```
    """

    email: Mapped[str] = mapped_column(String(255), primary_key=True)
    code: Mapped[str] = mapped_column(String(20), nullable=False)
    purpose: Mapped[str] = mapped_column(String(20), nullable=False, default="login")
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    max_attempts: Mapped[int] = mapped_column(Integer, default=3, nullable=False)
    last_sent: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, index=True, nullable=False)
