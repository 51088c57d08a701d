"""Auth gateway: register, login, refresh, logout, profile and password flows."""

import logging
from functools import lru_cache
from typing import TYPE_CHECKING, Any

from sqlalchemy.orm import Session

from app.core.database import unit_of_work
from app.core.errors import (
    FieldError,
    InvalidCredentialsError,
    TokenInvalidError,
    UnauthorizedError,
    UserExistsError,
    ValidationError,
)
from app.core.security import (
    PasswordHasher,
    email_errors,
    name_errors,
    password_policy_errors,
    username_errors,
)
from app.models import User
from app.schemas.auth import AuthResponse, TokenResponse, TokenVerification, UserProfile
from app.services.access import AccessGuard, Principal
from app.services.sessions import RefreshTokenRegistry
from app.services.tokens import TokenService
from app.services.users import PROFILE_FIELDS, UserStore

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

PROFILE_FIELD_MAX_LEN = {"display_name": 100, "bio": 1000, "phone_number": 20}


@lru_cache
def _dummy_hash(rounds: int) -> str:
    """A throwaway hash so unknown emails cost the same bcrypt work as wrong passwords."""
    return PasswordHasher(rounds).hash("not-a-real-password")


class AuthGateway:
    """
    Orchestrates identity flows over one database session.

    Every public method either commits its changes or raises an AuthError
    subclass; persistence errors never leave this class untranslated.
    """

    def __init__(
        self,
        db: Session,
        settings: "Settings",
        *,
        tokens: TokenService | None = None,
        hasher: PasswordHasher | None = None,
    ) -> None:
        self.db = db
        self.settings = settings
        self.users = UserStore(db)
        self.sessions = RefreshTokenRegistry(db)
        self.tokens = tokens or TokenService(settings)
        self.hasher = hasher or PasswordHasher(settings.BCRYPT_ROUNDS)
        self.guard = AccessGuard(self.tokens)

    # --------- Registration and login ----------

    @unit_of_work
    def register(
        self,
        *,
        username: str,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
    ) -> AuthResponse:
        """Create a user with role 'user' and log them in."""
        username = username.strip()
        errors = (
            username_errors(username)
            + email_errors(email.strip())
            + password_policy_errors(password, self.settings)
            + name_errors(first_name, "first_name", "First name")
            + name_errors(last_name, "last_name", "Last name")
        )
        if errors:
            raise ValidationError(errors)

        if self.users.exists(email, username):
            logger.info("Registration rejected: user exists", extra={"username": username})
            raise UserExistsError()

        user = self.users.create(
            email=email,
            username=username,
            password_hash=self.hasher.hash(password),
            display_name=f"{first_name.strip()} {last_name.strip()}",
        )
        response = self._start_session(user)
        logger.info("User registered", extra={"user_id": response.user.id})
        return response

    @unit_of_work
    def login(self, email: str, password: str) -> AuthResponse:
        """
        Verify credentials and issue a token pair.

        Unknown email, wrong password and deactivated account all raise the
        same InvalidCredentialsError.
        """
        user = self.users.get_by_email(email)
        if user is None:
            self.hasher.verify(password, _dummy_hash(self.hasher.rounds))
            logger.info("Login failed", extra={"reason": "unknown_email"})
            raise InvalidCredentialsError()
        if not self.hasher.verify(password, user.password_hash):
            logger.info("Login failed", extra={"reason": "bad_password", "user_id": user.id})
            raise InvalidCredentialsError()
        if not user.is_active:
            logger.info("Login failed", extra={"reason": "inactive", "user_id": user.id})
            raise InvalidCredentialsError()

        self.users.touch_last_login(user)
        response = self._start_session(user)
        logger.info("Login succeeded", extra={"user_id": response.user.id})
        return response

    # --------- Token lifecycle ----------

    @unit_of_work
    def refresh(self, refresh_token: str) -> TokenResponse:
        """
        Exchange a refresh token for a new access token.

        With REFRESH_TOKEN_ROTATION the presented token is consumed and a new
        refresh token is returned; presenting the old one again fails.
        """
        claims = self.tokens.decode_refresh(refresh_token)

        if not self.settings.REFRESH_TOKEN_ROTATION:
            if not self.sessions.is_active(claims.jti):
                raise TokenInvalidError("Refresh token has been revoked")
            user = self._active_user_or_none(claims.user_id)
            if user is None:
                raise TokenInvalidError("Unknown or inactive user")
            return TokenResponse(
                access_token=self.tokens.issue_access_token(user.id, user.role),
                expires_in=self._access_expires_in(),
            )

        issued = self.tokens.issue_refresh_token(claims.user_id)
        if not self.sessions.consume(claims.jti, replaced_by=issued.jti):
            logger.warning(
                "Refresh rejected: token revoked, rotated or expired",
                extra={"user_id": claims.user_id},
            )
            raise TokenInvalidError("Refresh token has been revoked or already used")

        user = self._active_user_or_none(claims.user_id)
        if user is None:
            raise TokenInvalidError("Unknown or inactive user")

        self.sessions.put(issued.jti, user.id, issued.expires_at)
        access_token = self.tokens.issue_access_token(user.id, user.role)
        logger.info("Refresh token rotated", extra={"user_id": claims.user_id})
        return TokenResponse(
            access_token=access_token,
            refresh_token=issued.token,
            expires_in=self._access_expires_in(),
        )

    @unit_of_work
    def logout(self, access_token: str | None, refresh_token: str | None = None) -> int:
        """
        End the session of `refresh_token`, or every session of the caller when
        it is omitted. Returns how many sessions were revoked; unusable refresh
        tokens are ignored so logout is idempotent.
        """
        principal = self.guard.authorize(access_token)
        if refresh_token:
            try:
                claims = self.tokens.decode_refresh(refresh_token, verify_exp=False)
            except TokenInvalidError:
                logger.info("Logout with unusable refresh token", extra={"user_id": principal.user_id})
                return 0
            revoked = 1 if self.sessions.revoke(claims.jti, user_id=principal.user_id) else 0
        else:
            revoked = self.sessions.revoke_all(principal.user_id)
        logger.info("Logout", extra={"user_id": principal.user_id, "sessions_revoked": revoked})
        return revoked

    def verify_token(self, token: str) -> TokenVerification:
        """Report the claims of a valid access token; raises TokenInvalidError/TokenExpiredError otherwise."""
        claims = self.tokens.verify_access(token)
        return TokenVerification(user_id=claims.user_id, role=claims.role, expires_at=claims.expires_at)

    # --------- Profile and password ----------

    @unit_of_work
    def get_profile(self, access_token: str | None) -> UserProfile:
        return UserProfile.model_validate(self._current_user(access_token))

    @unit_of_work
    def update_profile(self, access_token: str | None, fields: dict[str, Any]) -> UserProfile:
        """Update display_name, bio and/or phone_number; other keys are ignored."""
        user = self._current_user(access_token)
        updates = {k: v for k, v in fields.items() if k in PROFILE_FIELDS}
        if not updates:
            raise ValidationError(
                [FieldError("body", "No valid fields to update")], "No valid fields to update"
            )
        errors = [
            FieldError(name, f"Must be at most {PROFILE_FIELD_MAX_LEN[name]} characters")
            for name, value in updates.items()
            if value is not None and len(str(value)) > PROFILE_FIELD_MAX_LEN[name]
        ]
        if errors:
            raise ValidationError(errors)

        self.users.update_profile(user, updates)
        profile = UserProfile.model_validate(user)
        logger.info("Profile updated", extra={"user_id": user.id, "fields": sorted(updates)})
        return profile

    @unit_of_work
    def change_password(
        self, access_token: str | None, current_password: str, new_password: str
    ) -> int:
        """
        Replace the caller's password after re-checking the current one.

        With CHANGE_PASSWORD_REVOKES_SESSIONS every refresh token of the user is
        revoked, forcing other devices to log in again. Returns that count.
        """
        user = self._current_user(access_token)
        if not self.hasher.verify(current_password, user.password_hash):
            logger.info("Password change failed: wrong current password", extra={"user_id": user.id})
            raise InvalidCredentialsError("Current password is incorrect")

        errors = password_policy_errors(new_password, self.settings, field="new_password")
        if errors:
            raise ValidationError(errors)

        self.users.set_password_hash(user, self.hasher.hash(new_password))
        revoked = 0
        if self.settings.CHANGE_PASSWORD_REVOKES_SESSIONS:
            revoked = self.sessions.revoke_all(user.id)
        logger.info("Password changed", extra={"user_id": user.id, "sessions_revoked": revoked})
        return revoked

    # --------- Helpers ----------

    def _start_session(self, user: User) -> AuthResponse:
        """Issue and register a token pair for user. Does not commit."""
        refresh = self.tokens.issue_refresh_token(user.id)
        self.sessions.put(refresh.jti, user.id, refresh.expires_at)
        return AuthResponse(
            user=UserProfile.model_validate(user),
            access_token=self.tokens.issue_access_token(user.id, user.role),
            refresh_token=refresh.token,
            expires_in=self._access_expires_in(),
        )

    def _current_user(self, access_token: str | None) -> User:
        principal: Principal = self.guard.authorize(access_token)
        user = self._active_user_or_none(principal.user_id)
        if user is None:
            raise UnauthorizedError("User not found or inactive")
        return user

    def _active_user_or_none(self, user_id: str) -> User | None:
        user = self.users.get_by_id(user_id)
        if user is None or not user.is_active:
            return None
        return user

    def _access_expires_in(self) -> int:
        return int(self.tokens.access_ttl.total_seconds())
