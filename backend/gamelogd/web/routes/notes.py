"""
Game note routes - one note per user per game.
"""
from fastapi import APIRouter, Depends, Query

from gamelogd.web.schemas.auth import UserResponse, ErrorResponse
from gamelogd.web.schemas.note import NoteRequest, NoteResponse
from gamelogd.web.services.container import Services, get_services
from gamelogd.web.utils.auth_middleware import get_current_user

router = APIRouter(prefix="/api/user/notes", tags=["Notes"])


@router.get(
    "",
    response_model=NoteResponse,
    responses={401: {"model": ErrorResponse, "description": "Unauthorized"}}
)
def get_note(
    game_id: str = Query(..., alias="gameId", min_length=1, description="Game ID"),
    current_user: UserResponse = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    """Note for a game, `null` if the user has none."""
    return NoteResponse(note=services.notes.get_note(current_user.id, game_id))


@router.post(
    "",
    response_model=NoteResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid gameId or note"},
        401: {"model": ErrorResponse, "description": "Unauthorized"}
    }
)
def create_note(
    note_data: NoteRequest,
    current_user: UserResponse = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    """Create the note for a game, replacing any existing one."""
    note = services.notes.create_note(current_user.id, note_data.game_id, note_data.note)
    return NoteResponse(note=note)


@router.put(
    "/{note_id}",
    response_model=NoteResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid gameId or note"},
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        403: {"model": ErrorResponse, "description": "Note belongs to another user"},
        404: {"model": ErrorResponse, "description": "Note not found"}
    }
)
def update_note(
    note_id: str,
    note_data: NoteRequest,
    current_user: UserResponse = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    """Update the text of an existing note."""
    note = services.notes.update_note(current_user.id, note_id, note_data.game_id, note_data.note)
    return NoteResponse(note=note)
