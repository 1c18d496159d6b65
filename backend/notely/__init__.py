"""
Notely Backend - Application Package
======================================

Layout:

    ┌─────────────────────────────────────┐
    │    Routes (auth, notes, health)     │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  Dependencies (require_user gate)   │  ← cookie → session → user
    ├─────────────────────────────────────┤
    │  Services (users, sessions, notes,  │  ← business rules, owner scoping
    │            Google OAuth client)     │
    ├─────────────────────────────────────┤
    │  Models & Schemas                   │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │  Database                           │  ← lazily created async engine
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
