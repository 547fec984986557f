"""
Authentication routes - register, login, current user.
"""
from fastapi import APIRouter, Depends, status

from gamelogd.web.utils.auth_middleware import get_current_user
from gamelogd.web.schemas.auth import (
    RegisterRequest,
    LoginRequest,
    AuthResponse,
    UserResponse,
    ErrorResponse
)
from gamelogd.web.services.container import Services, get_services

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post(
    "/register",
    response_model=AuthResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Bad request"},
        409: {"model": ErrorResponse, "description": "Email already registered"}
    }
)
def register(
    register_data: RegisterRequest,
    services: Services = Depends(get_services)
):
    """
    Register a new user.

    - **username**: at least 3 characters
    - **email**: valid email address
    - **password**: at least 8 characters with lowercase, uppercase and a digit
    - **confirmPassword**: must match password

    Returns an access token and the user.
    """
    user, token = services.auth.register(register_data)
    return AuthResponse(message="Registration successful", user=user, token=token)


@router.post(
    "/login",
    response_model=AuthResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse, "description": "Bad request"},
        401: {"model": ErrorResponse, "description": "Invalid email or password"}
    }
)
def login(
    login_data: LoginRequest,
    services: Services = Depends(get_services)
):
    """
    Log in with email and password.

    Returns an access token and the user.
    """
    user, token = services.auth.login(login_data)
    return AuthResponse(message="Login successful", user=user, token=token)


@router.get(
    "/me",
    response_model=AuthResponse,
    response_model_exclude_none=True,
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        404: {"model": ErrorResponse, "description": "User not found"}
    }
)
def get_current_user_info(
    current_user: UserResponse = Depends(get_current_user)
):
    """
    Current user.

    Requires a token in the header:
    ```
    Authorization: Bearer <token>
    ```
    """
    return AuthResponse(message="User authenticated", user=current_user)
