"""
Pydantic schemas for authentication.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class RegisterRequest(BaseModel):
    """Registration form."""
    username: str = Field(..., description="Username (at least 3 characters)")
    email: str = Field(..., description="Email")
    password: str = Field(..., description="Password")
    confirm_password: str = Field(..., description="Password again")

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class LoginRequest(BaseModel):
    email: str = Field(..., description="Email")
    password: str = Field(..., description="Password")


class UserResponse(BaseModel):
    """Public user record (never includes the password hash)."""
    id: str
    email: str
    username: str
    created_at: datetime

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class AuthResponse(BaseModel):
    """Response for register / login / me."""
    success: bool = True
    message: str
    user: Optional[UserResponse] = None
    token: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error body for every non-2xx response."""
    detail: str
