"""Request/response schemas for auth endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    """New account details. Field rules are enforced by the auth service so all failures are reported together."""

    username: str = Field(..., description="3-50 letters, digits or underscores")
    email: str = Field(..., description="Email address (case-insensitive, unique)")
    password: str = Field(..., description="Password meeting the configured policy")
    first_name: str = Field(..., description="First name")
    last_name: str = Field(..., description="Last name")


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: str = Field(..., min_length=1, max_length=255, description="Email address")
    password: str = Field(..., min_length=1, max_length=1024, description="Password")


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1, description="Refresh token from login or a previous refresh")


class LogoutRequest(BaseModel):
    """Optional body for logout; without a refresh token every session of the user ends."""

    refresh_token: str | None = Field(default=None, description="Refresh token of the session to end")


class VerifyTokenRequest(BaseModel):
    token: str = Field(..., min_length=1, description="Access token to check")


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, description="Current password")
    new_password: str = Field(..., description="New password meeting the configured policy")


class ProfileUpdateRequest(BaseModel):
    """Editable profile fields; omitted fields are left unchanged."""

    display_name: str | None = Field(default=None, max_length=100)
    bio: str | None = Field(default=None, max_length=1000)
    phone_number: str | None = Field(default=None, max_length=20)


class UserProfile(BaseModel):
    """Public view of a user (never includes the password hash)."""

    id: str
    username: str
    email: str
    display_name: str | None = None
    bio: str | None = None
    phone_number: str | None = None
    role: str
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    """Tokens returned by refresh; refresh_token is omitted when rotation is disabled."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str | None = Field(default=None, description="Replacement refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class AuthResponse(TokenResponse):
    """Result of register and login: the user plus a fresh token pair."""

    user: UserProfile


class MessageResponse(BaseModel):
    message: str


class TokenVerification(BaseModel):
    """Claims of a verified access token."""

    valid: bool = True
    user_id: str
    role: str
    expires_at: datetime


class UsersListResponse(BaseModel):
    """Response for GET /admin/users (admin only)."""

    users: list[UserProfile]
    total: int
    offset: int
    limit: int


class ErrorDetail(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    """Body of every failed auth request."""

    detail: str
    error: str
    errors: list[ErrorDetail] | None = None
