"""
Notely Backend - ORM Models
=============================

Importing this package registers every table with Base.metadata, which
Alembic and the test suite rely on.
"""

from notely.models.note import Note
from notely.models.session import AuthSession
from notely.models.user import User

__all__ = ["AuthSession", "Note", "User"]
