"""
Recommendation Cache Gate
=========================

Generating recommendations costs an LLM call, so the last generated set is
cached in the user's preferences and reused while it is fresh.

Fresh means: a refresh timestamp exists, it is younger than the staleness
window (24h by default) and the cached list is non-empty. The decision is
made by a FreshnessPolicy:

- TimeWindowPolicy: time only. New ratings do not invalidate the cache.
- RatingsFingerprintPolicy: time window AND the rated-game set is unchanged
  since the cached list was generated.

A failed generation writes nothing, so the next request retries.
"""

import hashlib
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from gamelogd.preferences.concurrency import ConcurrencyStrategy, KeyedLockStrategy
from gamelogd.preferences.errors import GamelogError, UpstreamError
from gamelogd.preferences.models import GameRecommendation, RatedGame, UserPreferences, utcnow
from gamelogd.preferences.store import PreferenceStore

logger = logging.getLogger(__name__)

DEFAULT_STALENESS_WINDOW = timedelta(hours=24)
GENERATION_FAILED_MESSAGE = "Could not generate recommendations right now. Please try again later."


class RecommendationGenerator(ABC):
    """External recommendation engine."""

    @abstractmethod
    def generate(self, rated_games: List[RatedGame], count: int) -> List[GameRecommendation]:
        ...


class FreshnessPolicy(ABC):
    @abstractmethod
    def is_fresh(self, preferences: UserPreferences, rated_games: List[RatedGame], now: datetime) -> bool:
        ...

    def fingerprint(self, rated_games: List[RatedGame]) -> Optional[str]:
        """Value stored next to a newly generated list; None if unused."""
        return None


class TimeWindowPolicy(FreshnessPolicy):
    name = "time"

    def __init__(self, window: timedelta = DEFAULT_STALENESS_WINDOW):
        self.window = window

    def is_fresh(self, preferences: UserPreferences, rated_games: List[RatedGame], now: datetime) -> bool:
        last_refresh = preferences.last_recommendation_refresh
        if last_refresh is None or not preferences.cached_recommendations:
            return False
        return now - last_refresh < self.window


class RatingsFingerprintPolicy(TimeWindowPolicy):
    name = "ratings"

    def fingerprint(self, rated_games: List[RatedGame]) -> Optional[str]:
        pairs = sorted((g.id, g.rating) for g in rated_games)
        return hashlib.sha256(json.dumps(pairs).encode("utf-8")).hexdigest()

    def is_fresh(self, preferences: UserPreferences, rated_games: List[RatedGame], now: datetime) -> bool:
        if not super().is_fresh(preferences, rated_games, now):
            return False
        return preferences.recommendation_fingerprint == self.fingerprint(rated_games)


def build_policy(name: str, window: timedelta = DEFAULT_STALENESS_WINDOW) -> FreshnessPolicy:
    """Build the policy named by the RECOMMENDATION_INVALIDATION setting."""
    if name == TimeWindowPolicy.name:
        return TimeWindowPolicy(window)
    if name == RatingsFingerprintPolicy.name:
        return RatingsFingerprintPolicy(window)
    raise ValueError(f"Unknown recommendation invalidation policy: {name!r} (expected time or ratings)")


@dataclass
class RecommendationResult:
    recommendations: List[GameRecommendation] = field(default_factory=list)
    cached: bool = False
    degraded: bool = False
    warning: Optional[str] = None


class RecommendationCacheGate:
    """Returns cached recommendations while fresh, otherwise calls the generator."""

    def __init__(
        self,
        store: PreferenceStore,
        generator: RecommendationGenerator,
        strategy: Optional[ConcurrencyStrategy] = None,
        policy: Optional[FreshnessPolicy] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.store = store
        self.generator = generator
        self.strategy = strategy or KeyedLockStrategy(store)
        self.policy = policy or TimeWindowPolicy()
        self.clock = clock

    def recommend(self, user_id: str, rated_games: List[RatedGame], count: int) -> RecommendationResult:
        """
        Get recommendations for a user.

        Args:
            user_id: User ID
            rated_games: Non-empty rated games to base generation on
            count: Number of recommendations to ask the generator for

        Returns:
            RecommendationResult (cached=True if the generator was not called)

        Raises:
            UpstreamError / ConfigError: generation failed; nothing was written
        """
        now = self.clock()
        preferences = self.store.load(user_id)

        if self.policy.is_fresh(preferences, rated_games, now):
            logger.info(
                f"Serving {len(preferences.cached_recommendations)} cached recommendations "
                f"for user {user_id} (refreshed {preferences.last_recommendation_refresh.isoformat()})"
            )
            return RecommendationResult(recommendations=list(preferences.cached_recommendations), cached=True)

        logger.info(f"Generating {count} recommendations for user {user_id} from {len(rated_games)} rated games")
        try:
            recommendations = self.generator.generate(rated_games, count)
        except GamelogError:
            raise
        except Exception as e:
            logger.error(f"Recommendation generator failed for user {user_id}: {e}", exc_info=True)
            raise UpstreamError(GENERATION_FAILED_MESSAGE) from e

        fingerprint = self.policy.fingerprint(rated_games)

        def mutate(current: UserPreferences) -> UserPreferences:
            return current.model_copy(update={
                "cached_recommendations": recommendations,
                "last_recommendation_refresh": now,
                "recommendation_fingerprint": fingerprint,
            })

        # Applied to the latest document, not the one loaded above
        result = self.strategy.apply(user_id, mutate)
        return RecommendationResult(
            recommendations=recommendations,
            cached=False,
            degraded=result.degraded,
            warning=result.warning
        )
