"""
Preference and rating routes.
"""
import logging
from fastapi import APIRouter, Depends, Response

from gamelogd.preferences.models import UserPreferences
from gamelogd.preferences.store import WriteResult
from gamelogd.web.schemas.auth import UserResponse, ErrorResponse
from gamelogd.web.schemas.preferences import RateGameRequest, RemoveGameRequest, RatingResponse
from gamelogd.web.services.container import Services, get_services
from gamelogd.web.utils.auth_middleware import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["Preferences"])

AUTH_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Unauthorized"},
    404: {"model": ErrorResponse, "description": "User not found"},
}


def _written(result: WriteResult, response: Response) -> UserPreferences:
    """Return the written preferences, flagging a fallback-store write in a Warning header."""
    if result.degraded:
        response.headers["Warning"] = f'199 gamelogd "{result.warning}"'
    return result.preferences


@router.get(
    "/preferences",
    response_model=UserPreferences,
    response_model_exclude_none=True,
    responses=AUTH_RESPONSES
)
def get_preferences(
    current_user: UserResponse = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    """
    Preferences of the current user. New users get `{"ratedGames": []}`.
    """
    return services.preference_store.load(current_user.id)


@router.put(
    "/preferences",
    response_model=UserPreferences,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse, "description": "Bad request"}, **AUTH_RESPONSES}
)
def replace_preferences(
    preferences: UserPreferences,
    response: Response,
    current_user: UserResponse = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    """
    Replace the whole preference document.

    Zero ratings are dropped and a repeated game id keeps its last entry.
    """
    result = services.reconciler.replace(current_user.id, preferences)
    return _written(result, response)


@router.post(
    "/games/rate",
    response_model=UserPreferences,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse, "description": "Invalid rating"}, **AUTH_RESPONSES}
)
def rate_game(
    rate_data: RateGameRequest,
    response: Response,
    current_user: UserResponse = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    """
    Rate a game.

    - **game**: game object (`id` and `title` required)
    - **rating**: 0.5 to 5 in half-star steps; `0` clears the rating
    """
    result = services.reconciler.rate(current_user.id, rate_data.game, rate_data.rating)
    return _written(result, response)


@router.delete(
    "/games/remove",
    response_model=UserPreferences,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse, "description": "Game ID is required"}, **AUTH_RESPONSES}
)
def remove_game(
    remove_data: RemoveGameRequest,
    response: Response,
    current_user: UserResponse = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    """
    Remove the rating for a game. Removing an unrated game is not an error.
    """
    result = services.reconciler.remove(current_user.id, remove_data.game_id)
    return _written(result, response)


@router.get(
    "/games/{game_id}/rating",
    response_model=RatingResponse,
    responses=AUTH_RESPONSES
)
def get_game_rating(
    game_id: str,
    current_user: UserResponse = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    """Rating of one game, `0` if unrated."""
    return RatingResponse(game_id=game_id, rating=services.reconciler.rating_of(current_user.id, game_id))
