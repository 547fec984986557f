"""
Schemas for the preference and rating endpoints.

UserPreferences itself is the response body of every preference mutation.
"""
from typing import Any
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from gamelogd.preferences.models import Game


class RateGameRequest(BaseModel):
    """
    Body of POST /api/user/games/rate.

    Attributes:
        game: Game being rated
        rating: 0.5 to 5 in half-star steps; 0 clears the rating
    """
    game: Game
    # Checked by parse_rating, uncoerced so true or "4.5" is rejected
    rating: Any = Field(..., description="Rating (0 clears the rating)")


class RemoveGameRequest(BaseModel):
    game_id: str = Field(..., min_length=1, description="Game ID")

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @field_validator("game_id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class RatingResponse(BaseModel):
    game_id: str
    rating: float = Field(..., description="0 if the game is not rated")

    class Config:
        alias_generator = to_camel
        populate_by_name = True
