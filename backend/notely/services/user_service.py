"""
Notely Backend - User Directory
=================================

What:  Maps a Google subject identifier to a local User record.
How:   One atomic "insert if absent" statement followed by a read of the
       winning row. There is no check-then-create window: when two first
       logins for the same account race, the unique index on google_id lets
       exactly one INSERT through and both callers read back the same row.
Who:   Called by the OAuth callback route and by the auth gate.

Profile policy:
    display_name and email are written once, on creation. Later logins
    return the stored record unchanged even if Google reports new values.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notely.exceptions import StorageError
from notely.models.user import User

logger = logging.getLogger(__name__)

# Dialects whose INSERT supports ON CONFLICT DO NOTHING
_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class UserDirectory:
    """Owns User lifetime: lazy creation on first sight, never deletion."""

    async def upsert_by_external_id(
        self,
        db: AsyncSession,
        external_id: str,
        display_name: Optional[str] = None,
        email: Optional[str] = None,
        commit: bool = True,
    ) -> User:
        """
        Return the User for `external_id`, creating it if this is the first login.

        With commit=False the insert stays in the caller's open transaction, so
        a later failure in the same request rolls the new User back. It must
        then be the first write of that transaction: on dialects without
        ON CONFLICT a lost race rolls the whole transaction back.

        Raises:
            StorageError: The database could not be written or read
        """
        now = datetime.now(timezone.utc)
        values = {
            "id": uuid.uuid4(),
            "google_id": external_id,
            "display_name": display_name,
            "email": email,
            "created_at": now,
            "updated_at": now,
        }

        try:
            dialect = db.get_bind().dialect.name
            dialect_insert = _UPSERT_DIALECTS.get(dialect)

            if dialect_insert is not None:
                await db.execute(
                    dialect_insert(User)
                    .values(**values)
                    .on_conflict_do_nothing(index_elements=[User.google_id])
                )
            else:
                try:
                    await db.execute(insert(User).values(**values))
                except IntegrityError:
                    # Lost the race to a concurrent first login; the
                    # winner's row is read below.
                    await db.rollback()

            user = await self._get_by_external_id(db, external_id)
            if commit:
                await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error upserting user: %s", str(e), exc_info=True)
            raise StorageError(
                message="Could not complete sign-in. Please try again.",
                context={"error_type": type(e).__name__},
            )

        if user is None:
            # The row was inserted or already present; not finding it means
            # the store is inconsistent, not that the user is unknown.
            raise StorageError(context={"external_id": external_id})

        if user.id == values["id"]:
            logger.info("Created user %s for new Google account", user.id)
        return user

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
        try:
            result = await db.execute(select(User).where(User.id == user_id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error loading user %s: %s", user_id, str(e))
            raise StorageError(context={"user_id": str(user_id)})

    async def _get_by_external_id(self, db: AsyncSession, external_id: str) -> Optional[User]:
        # populate_existing: the identity map may hold a stale copy from
        # before the INSERT in this same session
        result = await db.execute(
            select(User)
            .where(User.google_id == external_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()


user_directory = UserDirectory()
