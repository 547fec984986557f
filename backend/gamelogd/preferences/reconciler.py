"""
Rating Reconciler
=================

Keeps at most one rating per game in a user's preferences.

Clients send ``rating=0`` to clear a rating. Internally that is parsed into
the ``Clear`` variant so a numeric zero is never stored or compared.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from numbers import Real
from typing import Any, Callable, Dict, List, Optional, Union

from gamelogd.preferences.concurrency import ConcurrencyStrategy, KeyedLockStrategy
from gamelogd.preferences.errors import ValidationError
from gamelogd.preferences.models import Game, RatedGame, UserPreferences, dump_model, utcnow
from gamelogd.preferences.store import PreferenceStore, WriteResult

logger = logging.getLogger(__name__)

MAX_RATING = 5.0
RATING_ERROR = "Rating must be between 0 and 5 in half-star increments (0, 0.5, 1, 1.5, etc.)"


@dataclass(frozen=True)
class Rate:
    value: float


@dataclass(frozen=True)
class Clear:
    pass


RatingChange = Union[Rate, Clear]


def parse_rating(value: Any) -> RatingChange:
    """
    Validate a client rating.

    Raises:
        ValidationError: not a number, out of [0, 5], or not a half-star step
    """
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValidationError(RATING_ERROR)
    value = float(value)
    if not math.isfinite(value) or value < 0 or value > MAX_RATING or (value * 2) % 1 != 0:
        raise ValidationError(RATING_ERROR)
    if value == 0:
        return Clear()
    return Rate(value)


def without_game(rated_games: List[RatedGame], game_id: str) -> List[RatedGame]:
    return [g for g in rated_games if g.id != game_id]


def normalize_rated_games(rated_games: List[RatedGame]) -> List[RatedGame]:
    """
    Apply the storage invariants to a client-supplied list.

    Zero ratings are dropped and a repeated game id keeps its last entry,
    at the position of that last entry.
    """
    last_index: Dict[str, int] = {g.id: i for i, g in enumerate(rated_games)}
    normalized = []
    for i, game in enumerate(rated_games):
        if isinstance(parse_rating(game.rating), Clear):
            continue
        if last_index[game.id] == i:
            normalized.append(game)
    return normalized


class RatingReconciler:
    """rate / remove / rating_of / replace over the PreferenceStore."""

    def __init__(
        self,
        store: PreferenceStore,
        strategy: Optional[ConcurrencyStrategy] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.store = store
        self.strategy = strategy or KeyedLockStrategy(store)
        self.clock = clock

    def rate(self, user_id: str, game: Game, rating: Any) -> WriteResult:
        """
        Set the user's rating for ``game``; ``rating=0`` removes it.

        Re-applying the same (game, rating) converges to the same single entry.
        """
        change = parse_rating(rating)

        def mutate(preferences: UserPreferences) -> UserPreferences:
            rated_games = without_game(preferences.rated_games, game.id)
            if isinstance(change, Rate):
                rated_games.append(RatedGame.model_validate({
                    **dump_model(game),
                    "rating": change.value,
                    "dateRated": self.clock(),
                }))
            return preferences.model_copy(update={"rated_games": rated_games})

        result = self.strategy.apply(user_id, mutate)
        logger.info(f"User {user_id} rated game {game.id}: {change}")
        return result

    def remove(self, user_id: str, game_id: str) -> WriteResult:
        """Drop the user's rating for ``game_id``. Absent ratings are a no-op."""
        def mutate(preferences: UserPreferences) -> UserPreferences:
            return preferences.model_copy(
                update={"rated_games": without_game(preferences.rated_games, game_id)}
            )

        result = self.strategy.apply(user_id, mutate)
        logger.info(f"User {user_id} removed rating for game {game_id}")
        return result

    def rating_of(self, user_id: str, game_id: str) -> float:
        """0.0 when the user has not rated the game."""
        rated = self.store.load(user_id).find(game_id)
        return rated.rating if rated else 0.0

    def replace(self, user_id: str, preferences: UserPreferences) -> WriteResult:
        """Overwrite the whole document after enforcing the rating invariants."""
        normalized = preferences.model_copy(
            update={"rated_games": normalize_rated_games(preferences.rated_games)}
        )
        return self.strategy.apply(user_id, lambda _current: normalized)
