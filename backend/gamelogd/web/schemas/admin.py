"""
Schemas for the admin database API.
"""
from typing import List
from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from gamelogd.web.schemas.auth import UserResponse


class DatabaseStatsResponse(BaseModel):
    total_users: int
    total_preferences: int
    total_notes: int

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class UserListResponse(BaseModel):
    users: List[UserResponse]


class MessageResponse(BaseModel):
    message: str
