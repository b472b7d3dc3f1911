import typing
from datetime import UTC, datetime

from sqlalchemy import inspect, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatbot_otp_auth.types import WidgetUserProtocol


class SQLAlchemyUserDatabase[UserType: WidgetUserProtocol]:
    """
    SQLAlchemy implementation of the UserDatabase protocol.

    Each call runs in its own session from the given session maker, so one
    instance can be shared by the process-wide authentication gateway.
    The session maker should be created with ``expire_on_commit=False`` so
    returned users stay readable after their session closes.

    Example:
        ```python
        session_maker = async_sessionmaker(engine, expire_on_commit=False)
        users = SQLAlchemyUserDatabase(session_maker, User)
        ```
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        user_model: type[UserType],
    ) -> None:
        """
        Initialize the user adapter.

        Args:
            session_maker: Factory for async sessions
            user_model: User model class inheriting from BaseWidgetUserTable
        """
        self.session_maker = session_maker
        self.user_model = user_model

    async def get_by_email(self, email: str) -> UserType | None:
        """
        Retrieve user by email address.

        Args:
            email: Email address to search for

        Returns:
            User object if found, None otherwise
        """
        statement = select(self.user_model).where(self.user_model.email == email)  # type: ignore[arg-type]
        async with self.session_maker() as session:
            result = await session.execute(statement)
            return result.scalar_one_or_none()

    async def get_by_id(self, user_id: typing.Any) -> UserType | None:  # noqa: ANN401
        """
        Retrieve user by ID.

        Token subjects arrive as strings, so the ID is coerced to the
        primary key's Python type first.

        Args:
            user_id: User ID to search for

        Returns:
            User object if found, None otherwise
        """
        try:
            key_type = inspect(self.user_model).primary_key[0].type.python_type
            key = user_id if isinstance(user_id, key_type) else key_type(user_id)
        except NotImplementedError:
            key = user_id
        except (TypeError, ValueError):
            return None

        async with self.session_maker() as session:
            return await session.get(self.user_model, key)

    async def create_user(self, email: str, **kwargs: object) -> UserType:
        """
        Create a new user with the given email and additional fields.

        Args:
            email: Canonical email address
            **kwargs: Additional user fields

        Returns:
            Created user object
        """
        user = self.user_model(email=email, **kwargs)  # type: ignore[call-arg]
        async with self.session_maker() as session:
            session.add(user)
            await session.commit()
            await session.refresh(user)
        return user

    async def mark_email_verified(self, user: UserType) -> None:
        """Flag the user's address as verified."""
        await self._update(user, email_verified=True)
        user.email_verified = True

    async def record_login(self, user: UserType) -> None:
        """Stamp the time of a successful OTP login."""
        now = datetime.now(UTC)
        await self._update(user, last_login_at=now)
        user.last_login_at = now  # type: ignore[attr-defined]

    async def _update(self, user: UserType, **values: object) -> None:
        statement = (
            update(self.user_model)
            .where(self.user_model.id == user.id)  # type: ignore[attr-defined]
            .values(**values)
        )
        async with self.session_maker() as session:
            await session.execute(statement)
            await session.commit()
