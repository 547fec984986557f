"""
Schemas for POST /api/recommendations.
"""
from typing import List, Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from gamelogd.preferences.models import GameRecommendation, RatedGame


class RecommendationRequest(BaseModel):
    rated_games: List[RatedGame] = Field(default_factory=list, description="Games to base recommendations on")
    count: Optional[int] = Field(None, ge=1, le=20, description="Number of recommendations (default 5)")

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class RecommendationResponse(BaseModel):
    """
    Recommendations, or an empty list plus ``error`` on failure.

    Attributes:
        recommendations: Generated or cached recommendations
        cached: True if served from the 24h cache
        error: User-facing error message
    """
    recommendations: List[GameRecommendation] = Field(default_factory=list)
    cached: Optional[bool] = None
    error: Optional[str] = None
