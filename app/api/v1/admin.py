"""Admin-only user management endpoints. A role=user token gets 403."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.api.v1.auth import require_admin
from app.core.database import get_db
from app.models import Role
from app.schemas.auth import ErrorResponse, UserProfile, UsersListResponse
from app.services.access import Principal
from app.services.admin import UserAdmin

router = APIRouter()

FORBIDDEN_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Missing or invalid token"},
    403: {"model": ErrorResponse, "description": "Admin role required"},
}
NOT_FOUND_RESPONSES = {
    **FORBIDDEN_RESPONSES,
    404: {"model": ErrorResponse, "description": "User not found"},
}


def get_user_admin(db: Annotated[Session, Depends(get_db)]) -> UserAdmin:
    return UserAdmin(db)


@router.get("/users", response_model=UsersListResponse, responses=FORBIDDEN_RESPONSES)
def list_users(
    _admin: Annotated[Principal, Depends(require_admin)],
    admin_service: Annotated[UserAdmin, Depends(get_user_admin)],
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    role: Annotated[Role | None, Query(description="Only users with this role")] = None,
    search: Annotated[
        str | None,
        Query(max_length=100, description="Substring of username, email or display name"),
    ] = None,
) -> UsersListResponse:
    """List users (admin only), newest first."""
    return admin_service.list_users(offset=offset, limit=limit, role=role, search=search)


@router.get("/users/{user_id}", response_model=UserProfile, responses=NOT_FOUND_RESPONSES)
def get_user(
    user_id: str,
    _admin: Annotated[Principal, Depends(require_admin)],
    admin_service: Annotated[UserAdmin, Depends(get_user_admin)],
) -> UserProfile:
    """Return one user's profile (admin only)."""
    return admin_service.get_user(user_id)


@router.patch(
    "/users/{user_id}/deactivate",
    response_model=UserProfile,
    responses={**NOT_FOUND_RESPONSES, 400: {"model": ErrorResponse}},
)
def deactivate_user(
    user_id: str,
    admin: Annotated[Principal, Depends(require_admin)],
    admin_service: Annotated[UserAdmin, Depends(get_user_admin)],
) -> UserProfile:
    """Block login and refresh for a user and end all of their sessions."""
    return admin_service.set_active(admin, user_id, active=False)


@router.patch("/users/{user_id}/activate", response_model=UserProfile, responses=NOT_FOUND_RESPONSES)
def activate_user(
    user_id: str,
    admin: Annotated[Principal, Depends(require_admin)],
    admin_service: Annotated[UserAdmin, Depends(get_user_admin)],
) -> UserProfile:
    """Re-enable a deactivated user. Old sessions stay revoked."""
    return admin_service.set_active(admin, user_id, active=True)


@router.delete(
    "/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={**NOT_FOUND_RESPONSES, 400: {"model": ErrorResponse}},
)
def delete_user(
    user_id: str,
    admin: Annotated[Principal, Depends(require_admin)],
    admin_service: Annotated[UserAdmin, Depends(get_user_admin)],
) -> Response:
    """Delete a user and their sessions. Admins cannot delete themselves."""
    admin_service.delete_user(admin, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
