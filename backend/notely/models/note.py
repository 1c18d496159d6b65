"""
Notely Backend - Note SQLAlchemy Model
========================================

What:  ORM model representing the `notes` table.
Who:   Used by NoteService for owner-scoped list/add/remove and by Alembic.

Table Design:
    - UUID primary key: non-sequential, so ids cannot be enumerated
    - user_id: owning user, set once at creation and never reassigned
    - text: trimmed, non-empty content (TEXT, no length cap)
    - created_at / updated_at: UTC, timezone-aware

    Composite index (user_id, created_at DESC):
        Serves the only listing query, "this user's notes, newest first".
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notely.database import Base


class Note(Base):
    """
    One text memo owned by exactly one User.

    Lifecycle:
        1. Created by an authenticated add with non-empty trimmed text
        2. Listed only for its owner, newest first
        3. Deleted only by its owner
        4. Never edited in place
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    text: Mapped[str] = mapped_column(Text, nullable=False)

    # Set by NoteService from a monotonic clock, not a column default,
    # so that sequential adds always sort in insertion order.
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_notes_user_created_at", user_id, created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, user_id={self.user_id}, created_at='{self.created_at}')>"
