"""
Recommendation API routes
=========================

POST /api/recommendations returns the cached recommendation set while it is
fresh (24h) and asks the LLM generator for a new one otherwise.

Handlers are plain functions: FastAPI runs them in its threadpool, so a slow
generation does not hold up other requests.
"""

import logging
from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from gamelogd.preferences.errors import ConfigError, GamelogError
from gamelogd.web.schemas.auth import UserResponse
from gamelogd.web.schemas.recommendation import RecommendationRequest, RecommendationResponse
from gamelogd.web.services.container import Services, get_services
from gamelogd.web.utils.auth_middleware import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recommendations", tags=["recommendations"])

NO_RATED_GAMES_MESSAGE = "Please provide at least one rated game for recommendations."


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=RecommendationResponse(error=message).model_dump(by_alias=True, exclude_none=True)
    )


@router.post(
    "",
    response_model=RecommendationResponse,
    response_model_exclude_none=True,
    summary="Get recommendations for user",
    description="""
    Recommendations for the current user. Cached results are returned for 24
    hours after the last successful generation.

    Requires authentication (user id from the JWT token).
    """
)
def get_recommendations(
    request_data: RecommendationRequest,
    response: Response,
    current_user: UserResponse = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    if not request_data.rated_games:
        return _error(400, NO_RATED_GAMES_MESSAGE)

    count = request_data.count or services.settings.recommendation_default_count

    try:
        result = services.recommendation_gate.recommend(current_user.id, request_data.rated_games, count)
    except ConfigError as e:
        logger.error(f"Recommendations unavailable for user {current_user.id}: {e.message}")
        return _error(e.status_code, e.message)
    except GamelogError as e:
        logger.warning(f"Recommendation request failed for user {current_user.id}: {e.message}")
        return _error(e.status_code, e.message)

    if result.degraded:
        response.headers["Warning"] = f'199 gamelogd "{result.warning}"'

    logger.info(
        f"Returning {len(result.recommendations)} recommendations to user {current_user.id} "
        f"(cached={result.cached})"
    )
    return RecommendationResponse(recommendations=result.recommendations, cached=result.cached)
