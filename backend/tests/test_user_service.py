"""
Notely Backend - User Directory Tests
=======================================

What:  UserDirectory.upsert_by_external_id against a real SQLite database.

What we test:
    ✅ Distinct Google subjects create one user each
    ✅ Repeated upserts return the same id and never add rows
    ✅ Profile claims are first-write-wins
    ✅ Parallel first logins for one subject create exactly one user
    ✅ Storage failures surface as StorageError
    ✅ The plain-INSERT path for dialects without ON CONFLICT
    ✅ commit=False leaves the new user to the caller's transaction
"""

import asyncio
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from notely.exceptions import StorageError
from notely.models.user import User
from notely.services import user_service
from notely.services.user_service import user_directory


class TestUpsertByExternalId:

    @pytest.mark.asyncio
    async def test_creates_one_user_per_subject(self, db_session, count_rows):
        alice = await user_directory.upsert_by_external_id(db_session, "sub-alice", "Alice", "a@x.io")
        bob = await user_directory.upsert_by_external_id(db_session, "sub-bob", "Bob", "b@x.io")

        assert alice.id != bob.id
        assert alice.google_id == "sub-alice"
        assert alice.display_name == "Alice"
        assert alice.email == "a@x.io"
        assert await count_rows(User) == 2

    @pytest.mark.asyncio
    async def test_repeated_upsert_returns_same_user(self, db_session, count_rows):
        first = await user_directory.upsert_by_external_id(db_session, "sub-alice", "Alice", None)
        for _ in range(3):
            again = await user_directory.upsert_by_external_id(db_session, "sub-alice", "Alice", None)
            assert again.id == first.id

        assert await count_rows(User) == 1

    @pytest.mark.asyncio
    async def test_profile_is_not_overwritten_on_later_login(self, db_session):
        await user_directory.upsert_by_external_id(db_session, "sub-alice", "Alice", "old@x.io")

        later = await user_directory.upsert_by_external_id(
            db_session, "sub-alice", "Alice Renamed", "new@x.io"
        )

        assert later.display_name == "Alice"
        assert later.email == "old@x.io"

    @pytest.mark.asyncio
    async def test_missing_profile_claims_are_allowed(self, db_session):
        user = await user_directory.upsert_by_external_id(db_session, "sub-anon")
        assert user.display_name is None
        assert user.email is None

    @pytest.mark.asyncio
    async def test_concurrent_first_logins_create_one_user(self, session_factory, count_rows):
        """N parallel first logins for the same subject converge on one row."""

        async def first_login():
            async with session_factory() as session:
                user = await user_directory.upsert_by_external_id(
                    session, "sub-racer", "Racer", "racer@x.io"
                )
                return user.id

        ids = await asyncio.gather(*(first_login() for _ in range(10)))

        assert len(set(ids)) == 1
        assert await count_rows(User) == 1


class TestGetUser:

    @pytest.mark.asyncio
    async def test_get_existing_user(self, db_session, make_user):
        user = await make_user("sub-alice")
        found = await user_directory.get_user(db_session, user.id)
        assert found is not None
        assert found.id == user.id

    @pytest.mark.asyncio
    async def test_get_unknown_user_returns_none(self, db_session):
        assert await user_directory.get_user(db_session, uuid.uuid4()) is None


class TestStorageFailures:

    @pytest.mark.asyncio
    async def test_upsert_wraps_database_errors(self):
        db = AsyncMock()
        db.get_bind = MagicMock(return_value=MagicMock(dialect=MagicMock()))
        db.get_bind.return_value.dialect.name = "sqlite"
        db.execute = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("db down")))

        with pytest.raises(StorageError):
            await user_directory.upsert_by_external_id(db, "sub-alice", "Alice", None)
        db.rollback.assert_awaited()


class TestUpsertWithoutOnConflict:
    """Dialects without ON CONFLICT: plain INSERT, then re-read on IntegrityError."""

    @pytest.fixture(autouse=True)
    def plain_insert_only(self, monkeypatch):
        monkeypatch.setattr(user_service, "_UPSERT_DIALECTS", {})

    @pytest.mark.asyncio
    async def test_repeat_upsert_returns_first_user(self, db_session, count_rows):
        first = await user_directory.upsert_by_external_id(db_session, "sub-alice", "Alice", None)
        first_id = first.id
        again = await user_directory.upsert_by_external_id(
            db_session, "sub-alice", "Alice Renamed", "new@x.io"
        )

        assert again.id == first_id
        assert again.display_name == "Alice"
        assert again.email is None
        assert await count_rows(User) == 1

    @pytest.mark.asyncio
    async def test_concurrent_first_logins_create_one_user(self, session_factory, count_rows):
        async def first_login():
            async with session_factory() as session:
                user = await user_directory.upsert_by_external_id(
                    session, "sub-racer", "Racer", None
                )
                return user.id

        ids = await asyncio.gather(*(first_login() for _ in range(10)))

        assert len(set(ids)) == 1
        assert await count_rows(User) == 1


class TestUncommittedUpsert:

    @pytest.mark.asyncio
    async def test_rollback_discards_new_user(self, db_session, count_rows):
        await user_directory.upsert_by_external_id(
            db_session, "sub-alice", "Alice", None, commit=False
        )
        await db_session.rollback()

        assert await count_rows(User) == 0
