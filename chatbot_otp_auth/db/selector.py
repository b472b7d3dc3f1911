"""Selection between the durable OTP store and the in-memory fallback."""

import asyncio
import contextlib
import logging
from datetime import UTC, datetime

from chatbot_otp_auth.config import OTPAuthConfig
from chatbot_otp_auth.db.memory import MemoryOTPStore
from chatbot_otp_auth.db.protocols import OTPStore
from chatbot_otp_auth.exceptions import OTPStoreError

logger = logging.getLogger(__name__)


class OTPStoreSelector:
    """
    Choose which OTPStore serves each OTP operation.

    The durable store is preferred whenever it is marked available. Its
    availability is re-probed on a fixed interval by a background task and is
    also lowered after ``failover_threshold`` consecutive store errors. A flip
    only affects operations that start afterwards.

    Records are never copied between stores: a record lives in whichever store
    was current when it was written, and a lookup in the other store simply
    finds nothing.

    Example:
        ```python
        selector = OTPStoreSelector(durable=MongoOTPStore(db))

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            await selector.start()
            yield
            await selector.stop()
        ```
    """

    def __init__(
        self,
        durable: OTPStore | None = None,
        fallback: MemoryOTPStore | None = None,
        *,
        check_interval: float = 5.0,
        cleanup_interval: float = 300.0,
        failover_threshold: int = 3,
    ) -> None:
        """
        Initialize the selector.

        Args:
            durable: Store that survives restarts, if one is configured
            fallback: Process-local store, created when not given
            check_interval: Seconds between durable availability probes
            cleanup_interval: Seconds between expired-record sweeps
            failover_threshold: Consecutive durable errors before failing over
        """
        self.durable = durable
        self.fallback = fallback or MemoryOTPStore()
        self.check_interval = check_interval
        self.cleanup_interval = cleanup_interval
        self.failover_threshold = failover_threshold

        self._durable_up = False
        self._consecutive_failures = 0
        self._tasks: list[asyncio.Task[None]] = []

    @classmethod
    def from_config(
        cls,
        config: OTPAuthConfig,
        durable: OTPStore | None = None,
        fallback: MemoryOTPStore | None = None,
    ) -> "OTPStoreSelector":
        """Build a selector whose timings come from the auth configuration."""
        return cls(
            durable=durable,
            fallback=fallback,
            check_interval=config.store_check_interval.total_seconds(),
            cleanup_interval=config.otp_cleanup_interval.total_seconds(),
            failover_threshold=config.store_failover_threshold,
        )

    @property
    def durable_active(self) -> bool:
        return self.durable is not None and self._durable_up

    def current(self) -> OTPStore:
        """Return the store new operations should run against."""
        if self.durable is not None and self._durable_up:
            return self.durable
        return self.fallback

    async def refresh_availability(self) -> bool:
        """Probe the durable store and update the selection."""
        if self.durable is None:
            return False

        try:
            available = await self.durable.is_available()
        except Exception:  # noqa: BLE001
            logger.exception("OTP store availability probe raised")
            available = False

        self._set_durable_up(available)
        return available

    def record_success(self, store: OTPStore) -> None:
        if store is self.durable:
            self._consecutive_failures = 0

    def record_failure(self, store: OTPStore) -> None:
        """Count a durable store error and fail over once the threshold is hit."""
        if store is not self.durable:
            return

        self._consecutive_failures += 1
        if self._consecutive_failures >= self.failover_threshold and self._durable_up:
            logger.warning(
                "Durable OTP store %s failed %d times in a row, using memory fallback",
                store.name,
                self._consecutive_failures,
            )
            self._durable_up = False

    def _set_durable_up(self, available: bool) -> None:
        if available and not self._durable_up:
            logger.info("Durable OTP store %s is available", self.durable.name)  # type: ignore[union-attr]
            self._consecutive_failures = 0
        elif not available and self._durable_up:
            logger.warning(
                "Durable OTP store %s is unreachable, using memory fallback",
                self.durable.name,  # type: ignore[union-attr]
            )
        self._durable_up = available

    async def cleanup_expired(self, now: datetime | None = None) -> int:
        """Sweep expired records from the fallback and, if up, the durable store."""
        now = now or datetime.now(UTC)
        removed = await self.fallback.cleanup_expired(now)
        if self.durable_active:
            try:
                removed += await self.durable.cleanup_expired(now)  # type: ignore[union-attr]
            except OTPStoreError as e:
                logger.warning("Durable OTP cleanup failed: %s", e)
        return removed

    async def start(self) -> None:
        """Probe once, then launch the background probe and sweep loops."""
        if self._tasks:
            return
        await self.refresh_availability()
        self._tasks = [
            asyncio.create_task(self._probe_loop(), name="otp-store-probe"),
            asyncio.create_task(self._sweep_loop(), name="otp-store-sweep"),
        ]

    async def stop(self) -> None:
        """Cancel the background loops."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _probe_loop(self) -> None:
        if self.durable is None:
            return
        while True:
            await asyncio.sleep(self.check_interval)
            try:
                await self.refresh_availability()
            except Exception:  # noqa: BLE001
                logger.exception("OTP store availability check failed")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval)
            try:
                await self.cleanup_expired()
            except Exception:  # noqa: BLE001
                logger.exception("Expired OTP sweep failed")
