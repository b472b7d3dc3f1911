"""OTP lifecycle: generate, verify, resend and status per identity."""

import logging
import math
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime

from chatbot_otp_auth.config import OTPAuthConfig
from chatbot_otp_auth.db.models import OTPRecord
from chatbot_otp_auth.db.protocols import OTPStore
from chatbot_otp_auth.db.selector import OTPStoreSelector
from chatbot_otp_auth.exceptions import OTPStoreError
from chatbot_otp_auth.identity import IdentityNormalizer, mask_email
from chatbot_otp_auth.security import codes_match, generate_otp
from chatbot_otp_auth.types import OTPErrorCode, OTPPurpose

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class VerifyResult:
    success: bool
    error: OTPErrorCode | None = None
    attempts_remaining: int | None = None
    identity: str | None = None
    """Key the matching record was stored under, set on success."""


@dataclass(frozen=True)
class ResendResult:
    success: bool
    code: str | None = None
    error: OTPErrorCode | None = None
    retry_after: int | None = None
    """Seconds until a resend will be accepted, set on TOO_FREQUENT."""


@dataclass(frozen=True)
class OTPStatus:
    exists: bool
    purpose: OTPPurpose | None = None
    expires_in_seconds: int = 0
    attempts: int = 0
    max_attempts: int = 0
    attempts_remaining: int = 0


class OTPLifecycleManager:
    """
    Orchestrate one-time codes for email identities.

    Per identity the states are "no record" and "active". ``generate`` and
    ``resend`` move to a fresh active record; ``verify`` either keeps the
    record with one more failed attempt or deletes it (success, expiry,
    exhausted budget). A deleted record is indistinguishable from one that
    was never requested.

    The store is picked once at the start of every operation and used for the
    whole operation. Store failures are reported to the selector and raised as
    OTPStoreError; every other outcome is a typed result.

    Args:
        stores: Selector choosing the durable or fallback store
        config: Authentication configuration
        normalizer: Identity normalizer, built from the config's alias rules
            when omitted
        clock: Source of the current time (aware UTC)
    """

    def __init__(
        self,
        stores: OTPStoreSelector,
        config: OTPAuthConfig,
        normalizer: IdentityNormalizer | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.stores = stores
        self.config = config
        self.normalizer = normalizer or IdentityNormalizer(config.email_alias_rules)
        self.clock = clock

    @contextmanager
    def _tracked(self, store: OTPStore) -> Iterator[None]:
        try:
            yield
        except OTPStoreError:
            self.stores.record_failure(store)
            raise
        self.stores.record_success(store)

    async def _issue(
        self, store: OTPStore, identity: str, purpose: OTPPurpose, now: datetime
    ) -> str:
        code = generate_otp(self.config.otp_length, self.config.developer_mode)
        record = OTPRecord(
            identity=identity,
            code=code,
            purpose=purpose,
            attempts=0,
            max_attempts=self.config.max_otp_attempts,
            expires_at=now + self.config.otp_expiry,
            last_sent_at=now,
        )
        await store.upsert(record)
        return code

    async def generate(
        self, identity: str, purpose: OTPPurpose = OTPPurpose.LOGIN
    ) -> str:
        """
        Create a fresh code for an identity, replacing any active one.

        Returns:
            The plaintext code, to be handed to the email collaborator only

        Raises:
            OTPStoreError: If the store write failed
        """
        canonical = self.normalizer.canonical(identity)
        store = self.stores.current()
        with self._tracked(store):
            code = await self._issue(store, canonical, purpose, self.clock())

        logger.info(
            "OTP generated for %s (purpose=%s, store=%s)",
            mask_email(canonical),
            purpose.value,
            store.name,
        )
        return code

    async def verify(self, identity: str, supplied_code: str) -> VerifyResult:
        """
        Check a supplied code against the active record for an identity.

        Every identity candidate is tried in order, so a code generated for
        one alias of a mailbox verifies under another.

        Raises:
            OTPStoreError: If the store could not be read or written
        """
        store = self.stores.current()
        now = self.clock()

        with self._tracked(store):
            for candidate in self.normalizer.candidates(identity):
                record = await store.get(candidate)
                if record is None:
                    continue

                if record.is_expired(now):
                    await store.delete(candidate)
                    logger.info("Expired OTP presented for %s", mask_email(candidate))
                    return VerifyResult(success=False, error=OTPErrorCode.OTP_EXPIRED)

                if record.attempts >= record.max_attempts:
                    await store.delete(candidate)
                    logger.warning(
                        "OTP attempt budget exhausted for %s", mask_email(candidate)
                    )
                    return VerifyResult(
                        success=False, error=OTPErrorCode.MAX_ATTEMPTS_EXCEEDED
                    )

                if codes_match(record.code, supplied_code):
                    await store.delete(candidate)
                    logger.info("OTP verified for %s", mask_email(candidate))
                    return VerifyResult(success=True, identity=candidate)

                attempts = await store.increment_attempts(candidate)
                if attempts is None:
                    # Record was replaced or consumed concurrently
                    return VerifyResult(success=False, error=OTPErrorCode.OTP_NOT_FOUND)
                return VerifyResult(
                    success=False,
                    error=OTPErrorCode.INVALID_OTP,
                    attempts_remaining=max(0, record.max_attempts - attempts),
                )

        return VerifyResult(success=False, error=OTPErrorCode.OTP_NOT_FOUND)

    async def resend(
        self, identity: str, purpose: OTPPurpose = OTPPurpose.LOGIN
    ) -> ResendResult:
        """
        Replace the active code unless the last one was sent too recently.

        Inside the throttle window nothing is changed. Otherwise the previous
        code becomes unusable immediately, even if it had not expired.

        Raises:
            OTPStoreError: If the store could not be read or written
        """
        canonical = self.normalizer.canonical(identity)
        store = self.stores.current()
        now = self.clock()
        throttle = self.config.otp_resend_throttle

        with self._tracked(store):
            record = await store.get(canonical)
            if record is not None:
                elapsed = now - record.last_sent_at
                if elapsed < throttle:
                    retry_after = math.ceil((throttle - elapsed).total_seconds())
                    return ResendResult(
                        success=False,
                        error=OTPErrorCode.TOO_FREQUENT,
                        retry_after=max(1, retry_after),
                    )

            code = await self._issue(store, canonical, purpose, now)

        logger.info(
            "OTP resent for %s (purpose=%s, store=%s)",
            mask_email(canonical),
            purpose.value,
            store.name,
        )
        return ResendResult(success=True, code=code)

    async def status(self, identity: str) -> OTPStatus:
        """
        Read-only snapshot of the active record for UI polling.

        Never changes attempts or expiry. An expired record that has not been
        swept yet is reported with ``expires_in_seconds == 0``.
        """
        store = self.stores.current()
        now = self.clock()

        with self._tracked(store):
            for candidate in self.normalizer.candidates(identity):
                record = await store.get(candidate)
                if record is None:
                    continue

                remaining = max(0.0, (record.expires_at - now).total_seconds())
                return OTPStatus(
                    exists=True,
                    purpose=record.purpose,
                    expires_in_seconds=math.ceil(remaining),
                    attempts=record.attempts,
                    max_attempts=record.max_attempts,
                    attempts_remaining=record.attempts_remaining,
                )

        return OTPStatus(exists=False)
