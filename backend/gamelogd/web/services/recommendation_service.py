"""
Recommendation Service
======================

LLM-backed recommendation generator. Rated games are grouped by star value
into a prompt, and the model answers with structured output parsed into
GeneratedRecommendations.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional

import openai
from openai import OpenAI
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from gamelogd.preferences.errors import ConfigError, UpstreamError
from gamelogd.preferences.models import GameRecommendation, RatedGame
from gamelogd.preferences.recommendation_gate import RecommendationGenerator

logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = (
    "Recommendations are unavailable right now: the AI provider is not configured."
)
UPSTREAM_MESSAGE = "The recommendation service is not responding. Please try again later."

RATING_DESCRIPTIONS: Dict[float, str] = {
    5.0: "5-star games (absolutely loved)",
    4.5: "4.5-star games (almost loved)",
    4.0: "4-star games (really liked)",
    3.5: "3.5-star games (liked quite a bit)",
    3.0: "3-star games (enjoyed/neutral)",
    2.5: "2.5-star games (mixed feelings)",
    2.0: "2-star games (didn't love)",
    1.5: "1.5-star games (didn't really like)",
    1.0: "1-star games (disliked)",
    0.5: "0.5-star games (really disliked)",
}

SYSTEM_PROMPT = """You are a video game recommendation expert.
Recommend real, released video games based on a player's half-star ratings.
Never recommend a game the player has already rated."""


class GeneratedGame(BaseModel):
    id: str  # Unique string id per game
    title: str
    explanation: str  # Why it matches the player's rating patterns
    match_score: float = Field(..., description="0-100")

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class GeneratedRecommendations(BaseModel):
    recommendations: List[GeneratedGame]


def describe_ratings(rated_games: List[RatedGame]) -> List[str]:
    """One line per star value, highest first: '<label>: title, title'."""
    by_rating: Dict[float, List[str]] = defaultdict(list)
    for game in rated_games:
        by_rating[game.rating].append(game.title)

    lines = []
    for rating in sorted(by_rating, reverse=True):
        label = RATING_DESCRIPTIONS.get(rating, f"{rating:g}-star games")
        lines.append(f"{label}: {', '.join(by_rating[rating])}")
    return lines


def build_prompt(rated_games: List[RatedGame], count: int) -> str:
    ratings_text = "\n".join(describe_ratings(rated_games))

    return f"""Based on the following user game ratings, please recommend {count} video games that would best match their preferences.

User's rated games:
{ratings_text}

Analyze the patterns in the user's ratings using this half-star rating system:
- Games rated 4.5-5 stars: User absolutely loves these games
- Games rated 3.5-4 stars: User really likes these games
- Games rated 2.5-3 stars: User enjoys these games but they're neutral/okay
- Games rated 1.5-2 stars: User doesn't love these games
- Games rated 0.5-1 stars: User dislikes these games

Focus on recommending games that would likely receive 4+ star ratings from this user based on their demonstrated preferences.
Consider genres, themes, gameplay mechanics, art styles, difficulty levels, and other game elements.
Pay attention to the nuanced differences between similar ratings (e.g., 4 vs 4.5 stars shows stronger preference).

For each recommendation, provide a brief explanation of why it matches their rating patterns.
Assign a match score (0-100) based on how well it aligns with the user's demonstrated preferences.
The ID should be a unique string for each game."""


class OpenAIRecommendationGenerator(RecommendationGenerator):
    """Generates recommendations with the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        timeout: float = 30.0,
        client: Optional[OpenAI] = None
    ):
        """
        Args:
            api_key: OpenAI API key; without it every call raises ConfigError
            model: Chat model name
            timeout: Per-call timeout in seconds (no retries)
            client: Existing client (optional, built lazily from api_key)
        """
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def generate(self, rated_games: List[RatedGame], count: int) -> List[GameRecommendation]:
        if not self.is_configured:
            logger.error("OPENAI_API_KEY is not configured, cannot generate recommendations")
            raise ConfigError(NOT_CONFIGURED_MESSAGE)

        prompt = build_prompt(rated_games, count)
        logger.debug(f"Recommendation prompt:\n{prompt}")

        try:
            response = self._get_client().chat.completions.parse(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                response_format=GeneratedRecommendations,
            )
        except openai.OpenAIError as e:
            logger.error(f"OpenAI request failed: {e}", exc_info=True)
            raise UpstreamError(UPSTREAM_MESSAGE) from e

        message = response.choices[0].message
        if message.parsed is None:
            logger.error(f"OpenAI returned no structured output (refusal={getattr(message, 'refusal', None)!r})")
            raise UpstreamError(UPSTREAM_MESSAGE)

        recommendations = [
            GameRecommendation(
                id=item.id,
                title=item.title,
                explanation=item.explanation,
                match_score=item.match_score
            )
            for item in message.parsed.recommendations
        ]
        logger.info(f"OpenAI returned {len(recommendations)} recommendations (requested {count})")
        return recommendations
