"""Exceptions raised across the OTP core boundary."""

from chatbot_otp_auth.types import TokenErrorCode


class OTPStoreError(Exception):
    """
    A store backend could not be reached or failed mid-operation.

    This is the only OTP failure that is raised rather than returned: callers
    cannot reason about record state when it happens and should retry shortly.
    """

    def __init__(self, message: str, backend: str = "unknown") -> None:
        super().__init__(message)
        self.backend = backend


class TokenError(Exception):
    """A session token was rejected."""

    def __init__(self, reason: TokenErrorCode, message: str | None = None) -> None:
        super().__init__(message or f"Token rejected: {reason.value}")
        self.reason = reason
