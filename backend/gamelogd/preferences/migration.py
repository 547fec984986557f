"""
Legacy preference migration
===========================

Before half-star ratings existed a user's preferences were two lists:
``{"likedGames": [...], "dislikedGames": [...]}``. Liked games become 4-star
ratings and disliked games 2-star ratings.

The legacy model never recorded when a game was liked, so every migrated
entry is stamped with the migration time.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List

from gamelogd.preferences.models import RatedGame, UserPreferences

logger = logging.getLogger(__name__)

LEGACY_KEYS = ("likedGames", "dislikedGames")
LIKED_RATING = 4.0
DISLIKED_RATING = 2.0


def is_legacy_record(record: Dict[str, Any]) -> bool:
    """A record is legacy when it has a liked/disliked list and no ratedGames."""
    return "ratedGames" not in record and any(key in record for key in LEGACY_KEYS)


def migrate_legacy_record(record: Dict[str, Any], now: datetime) -> UserPreferences:
    """
    Convert a legacy liked/disliked record into current preferences.

    Args:
        record: Raw stored record in the legacy shape
        now: Timestamp used as ``dateRated`` for every migrated entry

    Returns:
        UserPreferences with one RatedGame per distinct game id
    """
    rated: List[RatedGame] = []
    seen = set()

    for key, rating in (("likedGames", LIKED_RATING), ("dislikedGames", DISLIKED_RATING)):
        for game in record.get(key) or []:
            game_id = str(game.get("id", ""))
            # A game in both lists keeps its liked entry
            if game_id in seen:
                continue
            seen.add(game_id)
            rated.append(RatedGame.model_validate({**game, "rating": rating, "dateRated": now}))

    preferences = UserPreferences.model_validate(
        {k: v for k, v in record.items() if k not in LEGACY_KEYS}
    )
    preferences.rated_games = rated

    logger.info(
        f"Migrated legacy preferences: "
        f"liked={len(record.get('likedGames') or [])}, "
        f"disliked={len(record.get('dislikedGames') or [])}, rated={len(rated)}"
    )
    return preferences
