"""User-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import EmailStr, Field

from .common import ApiModel, Pagination


class RegisterRequest(ApiModel):
    """Schema for self-service account registration."""

    name: str = Field(..., min_length=2, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    department: str = Field(..., min_length=1, max_length=200)


class LoginRequest(ApiModel):
    """Schema for email/password login."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class UserResponse(ApiModel):
    """Account information returned by the API; never includes the password hash."""

    id: int
    name: str
    email: str
    department: str | None
    role: str
    created_at: datetime
    updated_at: datetime


class LoginResponse(ApiModel):
    """Response returned after successful login."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Token type")
    user: UserResponse


class UserUpdateRequest(ApiModel):
    """Admin edit of an account."""

    name: str = Field(..., min_length=2, max_length=200)
    email: EmailStr
    department: str = Field(..., min_length=1, max_length=200)
    role: Literal["USER", "ADMIN"] = "USER"


class UserListResponse(ApiModel):
    """Paginated account listing."""

    items: list[UserResponse]
    pagination: Pagination
