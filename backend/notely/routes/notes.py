"""
Notely Backend - Notes Route Handlers
=======================================

What:  GET /api/notes, POST /api/notes, DELETE /api/notes/{note_id}.
How:   Each handler depends on require_user, so the auth gate runs first and
       an unauthenticated request never reaches NoteService. The resolved
       user's id is the only owner the service ever sees.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from notely.database import get_db_session
from notely.dependencies import require_user
from notely.models.user import User
from notely.schemas.note import (
    DeleteResponse,
    ErrorResponse,
    NoteCreateRequest,
    NoteResponse,
)
from notely.services.note_service import note_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Notes"])

_UNAUTHENTICATED = {401: {"description": "Not authenticated", "model": ErrorResponse}}


@router.get(
    "/notes",
    response_model=List[NoteResponse],
    responses={**_UNAUTHENTICATED, 500: {"description": "Server error", "model": ErrorResponse}},
    summary="List the caller's notes, newest first",
)
async def list_notes(
    response: Response,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[NoteResponse]:
    notes = await note_service.list_notes(db, user.id)
    # Per-user data; never let a shared cache keep it
    response.headers["Cache-Control"] = "private, no-store"
    return [NoteResponse.model_validate(note) for note in notes]


@router.post(
    "/notes",
    response_model=NoteResponse,
    responses={
        400: {"description": "Empty note text", "model": ErrorResponse},
        **_UNAUTHENTICATED,
    },
    summary="Create a note",
)
async def create_note(
    body: NoteCreateRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    note = await note_service.add_note(db, user.id, body.text)
    return NoteResponse.model_validate(note)


@router.delete(
    "/notes/{note_id}",
    response_model=DeleteResponse,
    responses={
        404: {"description": "No such note owned by the caller", "model": ErrorResponse},
        **_UNAUTHENTICATED,
    },
    summary="Delete one of the caller's notes",
)
async def delete_note(
    note_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> DeleteResponse:
    # note_id stays a plain string: a malformed id must get the same 404 as
    # someone else's note, not FastAPI's 422
    await note_service.remove_note(db, user.id, note_id)
    return DeleteResponse(success=True)
