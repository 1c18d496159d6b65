"""
Notely Backend - User SQLAlchemy Model
========================================

What:  ORM model for the `users` table: one row per Google account.
How:   `google_id` carries a unique index, so the storage layer itself
       guarantees at most one local user per external identity.
Who:   Written by UserDirectory on the first OAuth callback; read by the
       auth gate on every authenticated request.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notely.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    A person authenticated through Google.

    Lifecycle:
        1. Created lazily on the first successful callback for an unseen
           Google subject
        2. Never updated by later logins (profile claims are first-write-wins)
        3. Never deleted by this service
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Stable subject identifier issued by Google ("sub" claim)
    google_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )

    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, google_id='{self.google_id}')>"
