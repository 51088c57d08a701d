"""Admin user management: listing, lookup, activation and deletion of accounts."""

import logging

from sqlalchemy.orm import Session

from app.core.database import unit_of_work
from app.core.errors import FieldError, NotFoundError, ValidationError
from app.models import Role, User
from app.schemas.auth import UserProfile, UsersListResponse
from app.services.access import Principal
from app.services.sessions import RefreshTokenRegistry
from app.services.users import UserStore

logger = logging.getLogger(__name__)


class UserAdmin:
    """
    Account management on behalf of an authenticated admin.

    Role checks happen before this class is reached (require_admin); it only
    guards against an admin locking out or deleting their own account.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.users = UserStore(db)
        self.sessions = RefreshTokenRegistry(db)

    @unit_of_work
    def list_users(
        self,
        offset: int = 0,
        limit: int = 50,
        role: Role | None = None,
        search: str | None = None,
    ) -> UsersListResponse:
        users, total = self.users.list_users(offset=offset, limit=limit, role=role, search=search)
        return UsersListResponse(
            users=[UserProfile.model_validate(u) for u in users],
            total=total,
            offset=offset,
            limit=limit,
        )

    @unit_of_work
    def get_user(self, user_id: str) -> UserProfile:
        return UserProfile.model_validate(self._get_or_404(user_id))

    @unit_of_work
    def set_active(self, admin: Principal, user_id: str, active: bool) -> UserProfile:
        """
        Activate or deactivate an account. Deactivation also revokes every
        refresh token of the user, so no session outlives it.
        """
        if not active and admin.user_id == user_id:
            raise ValidationError(
                [FieldError("user_id", "Cannot deactivate yourself")], "Cannot deactivate yourself"
            )
        user = self._get_or_404(user_id)
        self.users.set_active(user, active)
        revoked = 0 if active else self.sessions.revoke_all(user.id)
        logger.info(
            "User %s by admin",
            "activated" if active else "deactivated",
            extra={"user_id": user.id, "admin_id": admin.user_id, "sessions_revoked": revoked},
        )
        return UserProfile.model_validate(user)

    @unit_of_work
    def delete_user(self, admin: Principal, user_id: str) -> None:
        if admin.user_id == user_id:
            raise ValidationError(
                [FieldError("user_id", "Cannot delete yourself")], "Cannot delete yourself"
            )
        user = self._get_or_404(user_id)
        self.users.delete(user)
        logger.info("User deleted by admin", extra={"user_id": user_id, "admin_id": admin.user_id})

    def _get_or_404(self, user_id: str) -> User:
        user = self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError()
        return user
