"""
Notely Backend - Note Service (Owner-Scoped Repository)
=========================================================

What:  List, add and remove notes, always scoped to the authenticated user.
How:   Every query carries `WHERE user_id = :caller`. There is no code path
       that reads or deletes a note by id alone.
Who:   Called by the /api/notes route handlers after the auth gate has
       resolved the caller.

Ordering:
    Listings are newest-first by created_at. Timestamps come from
    _next_timestamp(), a process-wide clock that never repeats or goes
    backwards, so sequential adds ("a", "b", "c") always list as [c, b, a].
    Notes created by different processes within the same microsecond are
    ordered by id.

Information hiding:
    remove_note() raises the same NotFoundError whether the id is malformed,
    unknown, or belongs to another user.
"""

import logging
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import delete, desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notely.exceptions import NotFoundError, StorageError, ValidationError
from notely.models.note import Note

logger = logging.getLogger(__name__)

_clock_lock = threading.Lock()
_last_timestamp: Optional[datetime] = None


def _next_timestamp() -> datetime:
    """Current UTC time, bumped by 1µs if it would not be later than the last one issued."""
    global _last_timestamp
    with _clock_lock:
        now = datetime.now(timezone.utc)
        if _last_timestamp is not None and now <= _last_timestamp:
            now = _last_timestamp + timedelta(microseconds=1)
        _last_timestamp = now
        return now


class NoteService:
    """
    Business logic layer for note operations.

    Responsibilities:
        - list_notes(): caller's notes, newest first
        - add_note(): validate, trim and persist
        - remove_note(): delete an owned note or raise NotFoundError

    Database errors are wrapped in StorageError (hides internal details).
    Writes commit before returning, so a successful call is durable by the
    time the route builds its response.
    """

    async def list_notes(self, db: AsyncSession, user_id: uuid.UUID) -> List[Note]:
        try:
            result = await db.execute(
                select(Note)
                .where(Note.user_id == user_id)
                .order_by(desc(Note.created_at), desc(Note.id))
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing notes: %s", str(e), exc_info=True)
            raise StorageError(
                message="Could not retrieve notes. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def add_note(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        raw_text: Optional[str],
    ) -> Note:
        """
        Create a note owned by `user_id`.

        Raises:
            ValidationError: text is missing or blank after trimming (→ 400)
            StorageError: insert failed (→ 500); nothing is persisted
        """
        text = (raw_text or "").strip()
        if not text:
            raise ValidationError(message="Empty note", field="text")

        now = _next_timestamp()
        note = Note(
            id=uuid.uuid4(),
            user_id=user_id,
            text=text,
            created_at=now,
            updated_at=now,
        )
        try:
            db.add(note)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error creating note: %s", str(e), exc_info=True)
            raise StorageError(
                message="Could not save the note. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info("Note %s created (%d chars)", note.id, len(text))
        return note

    async def remove_note(self, db: AsyncSession, user_id: uuid.UUID, note_id: str) -> None:
        """
        Delete the note only if the caller owns it.

        Raises:
            NotFoundError: no note with this id is owned by the caller (→ 404)
            StorageError: delete failed (→ 500)
        """
        try:
            parsed_id = uuid.UUID(str(note_id))
        except ValueError:
            raise NotFoundError(resource="note")

        try:
            result = await db.execute(
                delete(Note)
                .where(Note.id == parsed_id, Note.user_id == user_id)
                .execution_options(synchronize_session=False)
            )
            deleted = result.rowcount or 0
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error deleting note %s: %s", note_id, str(e))
            raise StorageError(
                message="Could not delete the note. Please try again.",
                context={"note_id": str(note_id)},
            )

        if deleted == 0:
            raise NotFoundError(resource="note", resource_id=str(parsed_id))
        logger.info("Note %s deleted", parsed_id)


note_service = NoteService()
