"""Tests for the SQLAlchemy user adapter."""

from datetime import UTC, datetime

import pytest

from chatbot_otp_auth.db.protocols import UserDatabase
from chatbot_otp_auth.db.sqlalchemy.adapter import SQLAlchemyUserDatabase
from tests.conftest import User

# ============================================================================
# User Retrieval Tests
# ============================================================================


class TestUserRetrieval:
    """Test suite for user retrieval operations."""

    def test_satisfies_protocol(self, user_db: SQLAlchemyUserDatabase[User]) -> None:
        """The adapter should implement the UserDatabase protocol."""
        assert isinstance(user_db, UserDatabase)

    @pytest.mark.asyncio
    async def test_get_by_email_existing_user(
        self, user_db: SQLAlchemyUserDatabase[User], test_user: User
    ) -> None:
        """Should retrieve existing user by email."""
        user = await user_db.get_by_email("test@example.com")

        assert user is not None
        assert user.id == test_user.id
        assert user.name == "testuser"

    @pytest.mark.asyncio
    async def test_get_by_email_nonexistent_user(
        self, user_db: SQLAlchemyUserDatabase[User]
    ) -> None:
        """Should return None for non-existent email."""
        assert await user_db.get_by_email("nonexistent@example.com") is None

    @pytest.mark.asyncio
    async def test_get_by_id_existing_user(
        self, user_db: SQLAlchemyUserDatabase[User], test_user: User
    ) -> None:
        """Should retrieve existing user by ID."""
        user = await user_db.get_by_id(test_user.id)

        assert user is not None
        assert user.email == test_user.email

    @pytest.mark.asyncio
    async def test_get_by_id_from_token_subject(
        self, user_db: SQLAlchemyUserDatabase[User], test_user: User
    ) -> None:
        """String subjects should be coerced to the integer primary key."""
        user = await user_db.get_by_id(str(test_user.id))

        assert user is not None
        assert user.id == test_user.id

    @pytest.mark.asyncio
    async def test_get_by_id_nonexistent_user(
        self, user_db: SQLAlchemyUserDatabase[User]
    ) -> None:
        """Should return None for non-existent ID."""
        assert await user_db.get_by_id(99999) is None

    @pytest.mark.asyncio
    async def test_get_by_id_with_unparseable_id(
        self, user_db: SQLAlchemyUserDatabase[User]
    ) -> None:
        """Should return None when the ID cannot be a primary key."""
        assert await user_db.get_by_id("not-a-number") is None


# ============================================================================
# User Creation Tests
# ============================================================================


class TestUserCreation:
    """Test suite for user creation operations."""

    @pytest.mark.asyncio
    async def test_create_user_basic(self, user_db: SQLAlchemyUserDatabase[User]) -> None:
        """Should create a user with default flags."""
        user = await user_db.create_user(email="new@example.com")

        assert user.id is not None
        assert user.email == "new@example.com"
        assert user.email_verified is False
        assert user.last_login_at is None

    @pytest.mark.asyncio
    async def test_create_user_with_extra_fields(
        self, user_db: SQLAlchemyUserDatabase[User]
    ) -> None:
        """Should pass extra fields to the model."""
        user = await user_db.create_user(email="named@example.com", name="named")

        fetched = await user_db.get_by_email("named@example.com")
        assert fetched is not None
        assert fetched.name == "named"
        assert fetched.id == user.id


# ============================================================================
# User Update Tests
# ============================================================================


class TestUserUpdates:
    """Test suite for verification and login bookkeeping."""

    @pytest.mark.asyncio
    async def test_mark_email_verified(
        self, user_db: SQLAlchemyUserDatabase[User], test_user: User
    ) -> None:
        """Should persist the verified flag and update the instance."""
        await user_db.mark_email_verified(test_user)

        assert test_user.email_verified is True
        fetched = await user_db.get_by_id(test_user.id)
        assert fetched is not None
        assert fetched.email_verified is True

    @pytest.mark.asyncio
    async def test_record_login(
        self, user_db: SQLAlchemyUserDatabase[User], test_user: User
    ) -> None:
        """Should stamp an aware UTC login time."""
        before = datetime.now(UTC)

        await user_db.record_login(test_user)

        fetched = await user_db.get_by_id(test_user.id)
        assert fetched is not None
        assert fetched.last_login_at is not None
        assert fetched.last_login_at.tzinfo is not None
        assert fetched.last_login_at >= before.replace(microsecond=0)

    @pytest.mark.asyncio
    async def test_updates_only_touch_one_user(
        self, user_db: SQLAlchemyUserDatabase[User], test_user: User
    ) -> None:
        """Updates are keyed by primary key."""
        other = await user_db.create_user(email="other@example.com")

        await user_db.mark_email_verified(test_user)

        fetched = await user_db.get_by_id(other.id)
        assert fetched is not None
        assert fetched.email_verified is False
