"""Pydantic request/response schemas."""

from app.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    ErrorResponse,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    ProfileUpdateRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    TokenVerification,
    UserProfile,
    UsersListResponse,
    VerifyTokenRequest,
)
from app.schemas.health import HealthResponse

__all__ = [
    "AuthResponse",
    "ChangePasswordRequest",
    "ErrorResponse",
    "HealthResponse",
    "LoginRequest",
    "LogoutRequest",
    "MessageResponse",
    "ProfileUpdateRequest",
    "RefreshRequest",
    "RegisterRequest",
    "TokenResponse",
    "TokenVerification",
    "UserProfile",
    "UsersListResponse",
    "VerifyTokenRequest",
]
