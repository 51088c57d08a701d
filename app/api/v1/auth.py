"""Auth endpoints and the dependencies that guard protected routes (get_current_user, require_role)."""

from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.models import Role
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
    VerifyTokenRequest,
)
from app.services.access import AccessGuard, Principal
from app.services.auth import AuthGateway
from app.services.tokens import TokenService

router = APIRouter()
security = HTTPBearer(auto_error=False)

UNAUTHORIZED_RESPONSE = {401: {"model": ErrorResponse, "description": "Missing, invalid or expired credentials"}}


def get_auth_gateway(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthGateway:
    """Dependency: an AuthGateway bound to this request's DB session."""
    return AuthGateway(db, settings)


def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str | None:
    """Dependency: the raw Bearer token, or None. The gateway decides whether that is acceptable."""
    return credentials.credentials if credentials is not None else None


def require_role(role: Role | None) -> Callable[..., Principal]:
    """
    Dependency factory: require a valid Bearer JWT whose role satisfies `role`.

    Raises 401 if the token is missing or invalid and 403 if the role is
    insufficient. Admins satisfy user-level requirements.
    """

    def _dependency(
        token: Annotated[str | None, Depends(get_bearer_token)],
        settings: Annotated[Settings, Depends(get_settings)],
    ) -> Principal:
        return AccessGuard(TokenService(settings)).authorize(token, role)

    return _dependency


get_current_user = require_role(None)
require_user = require_role(Role.USER)
require_admin = require_role(Role.ADMIN)


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def register(
    body: RegisterRequest,
    gateway: Annotated[AuthGateway, Depends(get_auth_gateway)],
) -> AuthResponse:
    """Create an account (role 'user') and return it with an access and refresh token."""
    return gateway.register(
        username=body.username,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
    )


@router.post("/login", response_model=AuthResponse, responses=UNAUTHORIZED_RESPONSE)
def login(
    body: LoginRequest,
    gateway: Annotated[AuthGateway, Depends(get_auth_gateway)],
) -> AuthResponse:
    """
    Authenticate with email and password; returns the user and a token pair.
    Include the access token in the Authorization header as: Bearer <access_token>
    """
    return gateway.login(body.email, body.password)


@router.post(
    "/refresh",
    response_model=TokenResponse,
    response_model_exclude_none=True,
    responses=UNAUTHORIZED_RESPONSE,
)
def refresh(
    body: RefreshRequest,
    gateway: Annotated[AuthGateway, Depends(get_auth_gateway)],
) -> TokenResponse:
    """Exchange a refresh token for a new access token (and a new refresh token when rotation is on)."""
    return gateway.refresh(body.refresh_token)


@router.post("/logout", response_model=MessageResponse, responses=UNAUTHORIZED_RESPONSE)
def logout(
    token: Annotated[str | None, Depends(get_bearer_token)],
    gateway: Annotated[AuthGateway, Depends(get_auth_gateway)],
    body: LogoutRequest | None = None,
) -> MessageResponse:
    """End one session (refresh_token in body) or all sessions of the caller."""
    gateway.logout(token, body.refresh_token if body else None)
    return MessageResponse(message="Logged out successfully")


@router.get("/profile", response_model=UserProfile, responses=UNAUTHORIZED_RESPONSE)
def get_profile(
    token: Annotated[str | None, Depends(get_bearer_token)],
    gateway: Annotated[AuthGateway, Depends(get_auth_gateway)],
) -> UserProfile:
    """Return the caller's profile."""
    return gateway.get_profile(token)


@router.put(
    "/profile",
    response_model=UserProfile,
    responses={**UNAUTHORIZED_RESPONSE, 400: {"model": ErrorResponse}},
)
def update_profile(
    body: ProfileUpdateRequest,
    token: Annotated[str | None, Depends(get_bearer_token)],
    gateway: Annotated[AuthGateway, Depends(get_auth_gateway)],
) -> UserProfile:
    """Update display name, bio or phone number. Only fields present in the body change."""
    return gateway.update_profile(token, body.model_dump(exclude_unset=True))


@router.post(
    "/change-password",
    response_model=MessageResponse,
    responses={**UNAUTHORIZED_RESPONSE, 400: {"model": ErrorResponse}},
)
def change_password(
    body: ChangePasswordRequest,
    token: Annotated[str | None, Depends(get_bearer_token)],
    gateway: Annotated[AuthGateway, Depends(get_auth_gateway)],
) -> MessageResponse:
    """Change the caller's password. Other sessions are logged out."""
    gateway.change_password(token, body.current_password, body.new_password)
    return MessageResponse(message="Password changed successfully")


@router.post("/verify", response_model=TokenVerification, responses=UNAUTHORIZED_RESPONSE)
def verify(
    body: VerifyTokenRequest,
    gateway: Annotated[AuthGateway, Depends(get_auth_gateway)],
) -> TokenVerification:
    """Check an access token for client-side validation."""
    return gateway.verify_token(body.token)
