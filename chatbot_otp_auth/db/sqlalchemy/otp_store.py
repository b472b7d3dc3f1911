"""SQLAlchemy-backed durable OTP store."""

import contextlib
import logging
import typing
from collections.abc import AsyncIterator
from datetime import UTC, datetime

from sqlalchemy import delete, select, text, update
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatbot_otp_auth.db.models import OTPRecord
from chatbot_otp_auth.exceptions import OTPStoreError

logger = logging.getLogger(__name__)


class SQLAlchemyOTPStore:
    """
    Durable OTPStore on any async SQLAlchemy database.

    Rows are keyed by canonical email. Failed attempts are counted with a
    single ``UPDATE ... SET attempts = attempts + 1`` so concurrent wrong
    guesses cannot lose an increment. Writes use the dialect's native upsert
    where one exists, so overlapping sends for a new address do not collide on
    the primary key. Driver and connection errors surface as OTPStoreError.

    Example:
        ```python
        class OTPCode(BaseOTPCodeTable, Base):
            __tablename__ = "otp_codes"

        store = SQLAlchemyOTPStore(session_maker, OTPCode)
        ```
    """

    name = "sqlalchemy"

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        otp_model: type[typing.Any],
    ) -> None:
        """
        Initialize the store.

        Args:
            session_maker: Factory for async sessions
            otp_model: OTP table class inheriting from BaseOTPCodeTable
        """
        self.session_maker = session_maker
        self.otp_model = otp_model

    @contextlib.asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_maker() as session, session.begin():
                yield session
        except (SQLAlchemyError, OSError) as e:
            raise OTPStoreError(f"OTP store {operation} failed: {e}", self.name) from e

    def _to_record(self, row: typing.Any) -> OTPRecord:  # noqa: ANN401
        return OTPRecord(
            identity=row.email,
            code=row.code,
            purpose=row.purpose,
            attempts=row.attempts,
            max_attempts=row.max_attempts,
            expires_at=row.expires_at,
            last_sent_at=row.last_sent,
        )

    async def upsert(self, record: OTPRecord) -> None:
        values = {
            "code": record.code,
            "purpose": record.purpose.value,
            "attempts": record.attempts,
            "max_attempts": record.max_attempts,
            "expires_at": record.expires_at,
            "last_sent": record.last_sent_at,
        }
        model = self.otp_model
        async with self._transaction("upsert") as session:
            statement = self._native_upsert(
                session.get_bind().dialect.name, record.identity, values
            )
            if statement is not None:
                await session.execute(statement)
                return

            result = await session.execute(
                update(model).where(model.email == record.identity).values(**values)
            )
            if result.rowcount:
                return
            try:
                async with session.begin_nested():
                    session.add(model(email=record.identity, **values))
            except IntegrityError:
                # Lost the insert race to a concurrent send; last write wins.
                await session.execute(
                    update(model).where(model.email == record.identity).values(**values)
                )

    def _native_upsert(
        self, dialect: str, identity: str, values: dict[str, typing.Any]
    ) -> typing.Any:  # noqa: ANN401
        if dialect in ("postgresql", "sqlite"):
            insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
            return (
                insert(self.otp_model)
                .values(email=identity, **values)
                .on_conflict_do_update(index_elements=["email"], set_=values)
            )
        if dialect in ("mysql", "mariadb"):
            return (
                mysql.insert(self.otp_model)
                .values(email=identity, **values)
                .on_duplicate_key_update(**values)
            )
        return None

    async def get(self, identity: str) -> OTPRecord | None:
        async with self._transaction("get") as session:
            row = await session.get(self.otp_model, identity)
            return self._to_record(row) if row is not None else None

    async def increment_attempts(self, identity: str) -> int | None:
        model = self.otp_model
        async with self._transaction("increment") as session:
            result = await session.execute(
                update(model)
                .where(model.email == identity)
                .values(attempts=model.attempts + 1)
            )
            if result.rowcount == 0:
                return None
            return await session.scalar(
                select(model.attempts).where(model.email == identity)
            )

    async def delete(self, identity: str) -> None:
        async with self._transaction("delete") as session:
            await session.execute(
                delete(self.otp_model).where(self.otp_model.email == identity)
            )

    async def touch_last_sent(self, identity: str, at: datetime) -> None:
        async with self._transaction("touch") as session:
            await session.execute(
                update(self.otp_model)
                .where(self.otp_model.email == identity)
                .values(last_sent=at)
            )

    async def is_available(self) -> bool:
        try:
            async with self.session_maker() as session:
                await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.debug("SQL OTP store unreachable: %s", e)
            return False
        return True

    async def cleanup_expired(self, now: datetime | None = None) -> int:
        now = now or datetime.now(UTC)
        async with self._transaction("cleanup") as session:
            result = await session.execute(
                delete(self.otp_model).where(self.otp_model.expires_at < now)
            )
        count = result.rowcount or 0
        if count:
            logger.info("Cleaned up %d expired OTP rows", count)
        return count
