"""Type definitions for chatbot-otp-auth."""

from enum import StrEnum
from typing import Any, Protocol


class OTPPurpose(StrEnum):
    """Flow that requested a one-time code. Informational only."""

    LOGIN = "login"
    SIGNUP = "signup"
    EMAIL_VERIFY = "email_verify"


class OTPErrorCode(StrEnum):
    """Typed outcomes of OTP operations that did not succeed."""

    OTP_NOT_FOUND = "OTP_NOT_FOUND"
    OTP_EXPIRED = "OTP_EXPIRED"
    MAX_ATTEMPTS_EXCEEDED = "MAX_ATTEMPTS_EXCEEDED"
    INVALID_OTP = "INVALID_OTP"
    TOO_FREQUENT = "TOO_FREQUENT"
    STORE_ERROR = "STORE_ERROR"


class TokenErrorCode(StrEnum):
    """Reasons a session token is rejected."""

    EXPIRED = "EXPIRED"
    MALFORMED = "MALFORMED"
    REVOKED = "REVOKED"


class WidgetUserProtocol(Protocol):
    """Attributes the gateway reads from user objects."""

    id: Any
    email: str
    email_verified: bool
