"""Request-facing authentication contract built on the OTP core."""

import logging
from dataclasses import dataclass
from typing import Any

from chatbot_otp_auth.config import OTPAuthConfig
from chatbot_otp_auth.db.protocols import UserDatabase
from chatbot_otp_auth.exceptions import TokenError
from chatbot_otp_auth.identity import mask_email
from chatbot_otp_auth.manager import OTPLifecycleManager, OTPStatus, VerifyResult
from chatbot_otp_auth.tokens import TokenIssuer
from chatbot_otp_auth.types import OTPErrorCode, OTPPurpose, TokenErrorCode

logger = logging.getLogger(__name__)

# Stable user-facing messages. They never say whether an address has an account.
FAILURE_MESSAGES: dict[OTPErrorCode, str] = {
    OTPErrorCode.OTP_NOT_FOUND: "OTP not found or expired. Please request a new code.",
    OTPErrorCode.OTP_EXPIRED: "OTP has expired. Please request a new code.",
    OTPErrorCode.MAX_ATTEMPTS_EXCEEDED: (
        "Maximum verification attempts exceeded. Please request a new code."
    ),
    OTPErrorCode.INVALID_OTP: "Invalid OTP code.",
    OTPErrorCode.TOO_FREQUENT: "Please wait before requesting another OTP.",
    OTPErrorCode.STORE_ERROR: "Verification is temporarily unavailable. Please try again shortly.",
}


def describe_failure(error: OTPErrorCode) -> str:
    return FAILURE_MESSAGES[error]


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    user: Any | None
    user_type: str
    """"existing", "new" or "guest"."""


@dataclass(frozen=True)
class AuthFailure:
    error: OTPErrorCode
    message: str
    attempts_remaining: int | None = None

    @classmethod
    def from_result(cls, result: VerifyResult) -> "AuthFailure":
        error = result.error or OTPErrorCode.OTP_NOT_FOUND
        return cls(
            error=error,
            message=describe_failure(error),
            attempts_remaining=result.attempts_remaining,
        )


@dataclass(frozen=True)
class OTPDispatch:
    """Outcome of asking for a code to be (re)sent."""

    success: bool
    delivered: bool = False
    error: OTPErrorCode | None = None
    retry_after: int | None = None


class AuthenticationGateway[UserType]:
    """
    Glue between the OTP lifecycle, session tokens and user persistence.

    The OTP core never sees users; this class looks them up (or creates them)
    only after a code has verified, and hands the email collaborator the codes
    the core produces.

    Example:
        ```python
        config = WidgetOTPConfig()
        selector = OTPStoreSelector(durable=MongoOTPStore(db))
        gateway = AuthenticationGateway(
            manager=OTPLifecycleManager(selector, config),
            issuer=TokenIssuer(config),
            users=MongoUserDatabase(db, "users", User),
            config=config,
        )
        ```
    """

    def __init__(
        self,
        manager: OTPLifecycleManager,
        issuer: TokenIssuer,
        users: UserDatabase[UserType],
        config: OTPAuthConfig,
    ) -> None:
        self.manager = manager
        self.issuer = issuer
        self.users = users
        self.config = config

    async def _deliver(self, email: str, code: str, purpose: OTPPurpose) -> bool:
        # Delivery failures leave the stored code valid; they are never retried here
        try:
            delivered = bool(await self.config.send_otp(email, code, purpose))
        except Exception:  # noqa: BLE001
            logger.exception("OTP email delivery raised for %s", mask_email(email))
            return False

        if not delivered:
            logger.warning("OTP email delivery failed for %s", mask_email(email))
        return delivered

    async def _find_user(self, email: str) -> UserType | None:
        for candidate in self.manager.normalizer.candidates(email):
            user = await self.users.get_by_email(candidate)
            if user is not None:
                return user
        return None

    async def request_otp(
        self, email: str, purpose: OTPPurpose = OTPPurpose.LOGIN
    ) -> OTPDispatch:
        """
        Generate a code and send it.

        Raises:
            OTPStoreError: If the code could not be stored
        """
        code = await self.manager.generate(email, purpose)
        delivered = await self._deliver(email, code, purpose)
        return OTPDispatch(success=True, delivered=delivered)

    async def resend_otp(
        self, email: str, purpose: OTPPurpose = OTPPurpose.LOGIN
    ) -> OTPDispatch:
        """
        Replace and send a code, subject to the resend throttle.

        Raises:
            OTPStoreError: If the store could not be used
        """
        result = await self.manager.resend(email, purpose)
        if not result.success or result.code is None:
            return OTPDispatch(
                success=False, error=result.error, retry_after=result.retry_after
            )

        delivered = await self._deliver(email, result.code, purpose)
        return OTPDispatch(success=True, delivered=delivered)

    async def login_with_otp(self, email: str, code: str) -> AuthSession | AuthFailure:
        """
        Exchange a verified code for a session token.

        Known users get an access token. Unknown addresses are provisioned when
        ``auto_create_user`` is set; otherwise they receive a short-lived guest
        token carrying only the verified address.

        Raises:
            OTPStoreError: If the OTP store could not be used
        """
        result = await self.manager.verify(email, code)
        if not result.success:
            return AuthFailure.from_result(result)

        canonical = self.manager.normalizer.canonical(email)
        user = await self._find_user(email)
        user_type = "existing"

        if user is None:
            if not self.config.auto_create_user:
                logger.info("Guest session issued for %s", mask_email(canonical))
                token = self.issuer.issue(
                    canonical,
                    {"email": canonical, "verified": True},
                    token_type="guest",
                    lifetime=self.config.guest_token_lifetime,
                )
                return AuthSession(access_token=token, user=None, user_type="guest")

            extra = await self.config.create_user(canonical)
            user = await self.users.create_user(canonical, **extra)
            user_type = "new"
            logger.info("User provisioned for %s", mask_email(canonical))

        # A verified code proves ownership of the mailbox
        if not user.email_verified:  # type: ignore[attr-defined]
            await self.users.mark_email_verified(user)
        await self.users.record_login(user)

        return AuthSession(
            access_token=self._issue_for(user), user=user, user_type=user_type
        )

    def _issue_for(self, user: UserType) -> str:
        claims = {
            "email": user.email,  # type: ignore[attr-defined]
            **self.config.get_additional_claims(user),
        }
        return self.issuer.issue(user.id, claims)  # type: ignore[attr-defined]

    async def verify_email(self, user: UserType, code: str) -> AuthFailure | None:
        """
        Verify a code sent to an authenticated user's own address.

        Returns:
            None on success, otherwise the failure
        """
        result = await self.manager.verify(user.email, code)  # type: ignore[attr-defined]
        if not result.success:
            return AuthFailure.from_result(result)

        await self.users.mark_email_verified(user)
        return None

    async def otp_status(self, email: str) -> OTPStatus:
        return await self.manager.status(email)

    async def authenticate(self, token: str) -> UserType:
        """
        Resolve a bearer token to its user.

        Raises:
            TokenError: If the token is revoked, expired, malformed, or its
                user no longer exists
        """
        claims = self.issuer.verify(token, expected_type="access")
        user = await self.users.get_by_id(claims["sub"])
        if user is None:
            raise TokenError(TokenErrorCode.MALFORMED, "User not found")
        return user

    async def refresh(self, token: str) -> AuthSession:
        """
        Swap a valid access token for a new one, revoking the old one.

        Raises:
            TokenError: If the presented token is not acceptable
        """
        user = await self.authenticate(token)
        self.issuer.revoke(token)
        return AuthSession(
            access_token=self._issue_for(user), user=user, user_type="existing"
        )

    async def logout(self, token: str) -> None:
        self.issuer.revoke(token)
