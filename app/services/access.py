"""Access control guard: turns a bearer token into a principal and enforces role requirements."""

import logging
from dataclasses import dataclass

from app.core.errors import ForbiddenError, TokenExpiredError, TokenInvalidError, UnauthorizedError
from app.models import Role
from app.services.tokens import TokenService

logger = logging.getLogger(__name__)

# Higher rank satisfies every requirement at or below it.
ROLE_RANK = {Role.USER.value: 1, Role.ADMIN.value: 2}


@dataclass(frozen=True)
class Principal:
    """Identity proven by a verified access token."""

    user_id: str
    role: str


def role_satisfies(actual: str, required: Role | str | None) -> bool:
    """True when a holder of `actual` may access a route requiring `required` (None = any identity)."""
    if required is None:
        return True
    required_value = required.value if isinstance(required, Role) else required
    if required_value not in ROLE_RANK:
        raise ValueError(f"Unknown role requirement: {required_value!r}")
    return ROLE_RANK.get(actual, 0) >= ROLE_RANK[required_value]


class AccessGuard:
    """Stateless check: token signature and expiry via TokenService, then role."""

    def __init__(self, tokens: TokenService) -> None:
        self.tokens = tokens

    def authorize(self, token: str | None, required_role: Role | str | None = None) -> Principal:
        """
        Return the principal for `token`.

        Raises UnauthorizedError when the token is missing or fails verification,
        ForbiddenError when it is valid but its role is insufficient.
        """
        if not token:
            raise UnauthorizedError("Authentication required")
        try:
            claims = self.tokens.verify_access(token)
        except TokenExpiredError as e:
            raise UnauthorizedError("Token has expired") from e
        except TokenInvalidError as e:
            raise UnauthorizedError("Invalid or expired token") from e

        if not role_satisfies(claims.role, required_role):
            logger.info(
                "Access denied: insufficient role",
                extra={
                    "user_id": claims.user_id,
                    "role": claims.role,
                    "required_role": getattr(required_role, "value", required_role),
                },
            )
            raise ForbiddenError()
        return Principal(user_id=claims.user_id, role=claims.role)
