"""Configuration class for OTP authentication."""

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any

from fastapi import HTTPException, status  # type: ignore[import-untyped]

from chatbot_otp_auth.identity import DEFAULT_ALIAS_RULES, EmailAliasRule
from chatbot_otp_auth.types import OTPPurpose


class OTPAuthConfig(ABC):
    """
    Abstract configuration class for OTP authentication.

    Users must extend this class and implement the send_otp method.
    Configuration is set via class attributes.

    Example:
        ```python
        class WidgetOTPConfig(OTPAuthConfig):
            secret_key = "your-secret-key-here"
            access_token_lifetime = timedelta(days=7)
            otp_expiry = timedelta(minutes=10)

            async def send_otp(
                self, email: str, code: str, purpose: OTPPurpose
            ) -> bool:
                await mailer.send(email, f"Your verification code is {code}")
                return True
        ```
    """

    # Required configuration - these must be set
    secret_key: str
    algorithm: str = "HS256"

    # Session tokens
    access_token_lifetime: timedelta = timedelta(days=7)
    guest_token_lifetime: timedelta = timedelta(hours=24)
    token_issuer: str = "ai-chatbot-widget"
    token_audience: str = "chatbot-users"

    # OTP configuration
    otp_length: int = 6
    otp_expiry: timedelta = timedelta(minutes=10)
    max_otp_attempts: int = 3

    # Minimum time between two successful resends for one identity
    otp_resend_throttle: timedelta = timedelta(seconds=20)

    # Store selection and hygiene
    store_check_interval: timedelta = timedelta(seconds=5)
    otp_cleanup_interval: timedelta = timedelta(minutes=5)
    store_failover_threshold: int = 3
    """Consecutive durable-store errors before switching to the memory store."""

    # Revoked token set bounds
    blacklist_max_size: int = 10_000
    blacklist_keep: int = 5_000

    # Provider aliasing table used to build identity candidates
    email_alias_rules: tuple[EmailAliasRule, ...] = DEFAULT_ALIAS_RULES

    # User management
    auto_create_user: bool = True

    # Security settings
    developer_mode: bool = False

    def __init__(self) -> None:
        """Initialize and validate configuration."""
        self.validate_secret()

    def validate_secret(self) -> None:
        """
        Validate that the secret key is secure.

        In production mode, requires secret to be at least 32 characters.
        In developer mode, any secret is allowed.

        Raises:
            HTTPException: 500 if secret is not secure enough
        """
        if self.developer_mode:
            return

        if not getattr(self, "secret_key", None):
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="secret_key must be set. Generate with: openssl rand -hex 32",
            )

        if len(self.secret_key) < 32:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="secret_key must be at least 32 characters long. "
                "Generate with: openssl rand -hex 32",
            )

    @abstractmethod
    async def send_otp(self, email: str, code: str, purpose: OTPPurpose) -> bool:
        """
        Deliver an OTP code to the user's mailbox.

        Returning False (or raising) reports a delivery failure. The stored
        code stays valid either way; delivery is never retried by the library.

        Args:
            email: Address to deliver to
            code: OTP code to send
            purpose: Flow the code was issued for

        Returns:
            True if the message was handed to the mail transport
        """
        raise NotImplementedError("send_otp method must be implemented")

    async def create_user(self, _email: str) -> dict[str, Any]:
        """
        Extra fields for users created on their first successful login.

        Override to fill in defaults such as a display name or plan.
        """
        return {}

    def get_additional_claims(self, _user: Any) -> dict[str, Any]:  # noqa: ANN401
        """
        Get additional claims to include in session tokens.

        Example:
            ```python
            def get_additional_claims(self, user: User) -> dict[str, Any]:
                return {"plan": user.plan}
            ```
        """
        return {}
