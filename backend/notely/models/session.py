"""
Notely Backend - Session SQLAlchemy Model
===========================================

What:  ORM model for the `sessions` table backing browser logins.
How:   The primary key is the SHA-256 digest of the opaque token handed to
       the browser. The raw token is never written to the database.
Who:   Owned by SessionStore (create, resolve, destroy, purge).

Named AuthSession so it never shadows SQLAlchemy's own Session.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notely.database import Base


class AuthSession(Base):
    """
    A browser's authenticated connection to the service.

    A row whose expires_at has passed is treated as absent by every reader,
    whether or not it has been purged yet.
    """

    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<AuthSession(user_id={self.user_id}, expires_at='{self.expires_at}')>"
