"""
Notely Backend - Auth Gate
============================

What:  The single authorization boundary in front of every /api/notes route.
How:   resolve_user() is an explicit three-stage lookup with no dependency
       on request state, so it can be exercised without an HTTP harness:

           cookie value ──verify signature──▶ session handle
           session handle ──SessionStore.resolve──▶ user id
           user id ──UserDirectory.get_user──▶ User

       A failure at any stage yields None, which the require_user dependency
       (notely.dependencies) turns into a 401.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from notely.models.user import User
from notely.services.session_service import session_store, unsign_token
from notely.services.user_service import user_directory


async def resolve_user(db: AsyncSession, cookie_value: Optional[str]) -> Optional[User]:
    token = unsign_token(cookie_value)
    if token is None:
        return None

    user_id = await session_store.resolve(db, token)
    if user_id is None:
        return None

    return await user_directory.get_user(db, user_id)
