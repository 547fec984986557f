"""
Admin database routes. Authenticated with ADMIN_SECRET as bearer token.
"""
import logging
from typing import Optional, Union
from fastapi import APIRouter, Depends, HTTPException, Query, status

from gamelogd.web.schemas.admin import DatabaseStatsResponse, MessageResponse, UserListResponse
from gamelogd.web.schemas.auth import ErrorResponse
from gamelogd.web.services.container import Services, get_services
from gamelogd.web.utils.auth_middleware import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
    responses={401: {"model": ErrorResponse, "description": "Unauthorized"}}
)


@router.get(
    "/database",
    response_model=Union[DatabaseStatsResponse, UserListResponse],
    responses={400: {"model": ErrorResponse, "description": "Invalid action"}}
)
def get_database_info(
    action: Optional[str] = Query(None, description="stats | users"),
    services: Services = Depends(get_services)
):
    """
    - `?action=stats`: number of users, preference documents and notes
    - `?action=users`: all users (without password hashes)
    """
    if action == "stats":
        return services.admin.get_stats()
    if action == "users":
        return UserListResponse(users=services.admin.list_users())
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Invalid action. Use ?action=stats or ?action=users"
    )


@router.delete(
    "/database",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse, "description": "User not found"}}
)
def delete_user(
    user_id: str = Query(..., alias="userId", min_length=1, description="User to delete"),
    services: Services = Depends(get_services)
):
    """Delete a user with their preferences and notes."""
    if not services.admin.delete_user(user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return MessageResponse(message="User deleted successfully")
