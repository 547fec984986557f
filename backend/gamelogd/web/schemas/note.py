"""
Schemas for per-game user notes.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class NoteRequest(BaseModel):
    game_id: str = Field(..., min_length=1, description="Game ID")
    note: str = Field(..., description="Note text")

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class GameNote(BaseModel):
    id: str
    game_id: str
    user_id: str
    note: str
    created_at: datetime
    updated_at: datetime

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class NoteResponse(BaseModel):
    success: bool = True
    note: Optional[GameNote] = None
