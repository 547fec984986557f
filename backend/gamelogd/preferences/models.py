"""
Records kept in a user's preference document.

Field names are snake_case in Python and camelCase on the wire and in the
store. Game payloads may carry extra keys from the metadata provider; those
are kept as-is so a rated game round-trips unchanged.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class NamedRef(BaseModel):
    """Platform or genre reference."""
    id: Optional[int] = None
    name: str

    class Config:
        extra = "allow"


class Game(BaseModel):
    id: str = Field(..., min_length=1, description="Game id (metadata provider id or generated id)")
    title: str = Field(..., description="Game title")
    cover_image: Optional[str] = None
    platforms: Optional[List[NamedRef]] = None
    genres: Optional[List[NamedRef]] = None
    first_release_date: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("firstReleaseDate", "first_release_date"),
        serialization_alias="firstReleaseDate",
    )

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "allow"

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """IGDB ids arrive as numbers; the store keys games by string id."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class RatedGame(Game):
    rating: float = Field(..., description="Half-star rating, 0.5 to 5")
    date_rated: Optional[datetime] = None

    @field_validator("rating", mode="before")
    @classmethod
    def require_number(cls, v: Any) -> Any:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("rating must be a number")
        return v

    @field_validator("date_rated")
    @classmethod
    def normalize_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)


class GameRecommendation(Game):
    explanation: str = Field(..., description="Why this game matches the user's ratings")
    match_score: Optional[float] = Field(None, description="0-100 match score")


class UserPreferences(BaseModel):
    rated_games: List[RatedGame] = Field(default_factory=list)
    last_recommendation_refresh: Optional[datetime] = None
    cached_recommendations: Optional[List[GameRecommendation]] = None
    # Only written by the ratings-fingerprint freshness policy
    recommendation_fingerprint: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @field_validator("last_recommendation_refresh")
    @classmethod
    def normalize_refresh(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)

    def find(self, game_id: str) -> Optional[RatedGame]:
        for game in self.rated_games:
            if game.id == game_id:
                return game
        return None


def dump_model(model: BaseModel) -> Dict[str, Any]:
    """Serialize a record the way it is stored and sent over HTTP."""
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)
