"""Token service: JWT access/refresh token issuance and verification, signing-key lookup."""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import jwt

from app.core.errors import TokenExpiredError, TokenInvalidError

if TYPE_CHECKING:
    from app.core.config import Settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# Claims every token we issue carries; anything missing is treated as forged.
REQUIRED_CLAIMS = ["exp", "iat", "sub", "jti"]


@dataclass(frozen=True)
class AccessClaims:
    """Verified contents of an access token."""

    user_id: str
    role: str
    expires_at: datetime
    jti: str


@dataclass(frozen=True)
class RefreshClaims:
    """Verified contents of a refresh token."""

    user_id: str
    jti: str
    expires_at: datetime


@dataclass(frozen=True)
class IssuedRefreshToken:
    token: str
    jti: str
    expires_at: datetime


class TokenService:
    """
    Issues and verifies signed JWTs.

    Tokens are signed with the active key (JWT_SECRET) and carry its id in the
    `kid` header. Verification also accepts keys listed in JWT_RETIRED_KEYS, so
    the active key can be rotated without logging everybody out.
    """

    def __init__(self, settings: "Settings") -> None:
        self.settings = settings
        self._active_kid = settings.JWT_KEY_ID
        self._keys: dict[str, str] = {
            kid: secret.get_secret_value() for kid, secret in settings.JWT_RETIRED_KEYS.items()
        }
        self._keys[self._active_kid] = settings.JWT_SECRET.get_secret_value()

    @property
    def access_ttl(self) -> timedelta:
        return timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    @property
    def refresh_ttl(self) -> timedelta:
        return timedelta(days=self.settings.REFRESH_TOKEN_EXPIRE_DAYS)

    def issue_access_token(self, user_id: str, role: str, now: datetime | None = None) -> str:
        """Create a short-lived access token with sub, role, and exp."""
        now = now or datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "role": role,
            "typ": ACCESS_TOKEN_TYPE,
            "iat": now,
            "exp": now + self.access_ttl,
            "iss": self.settings.JWT_ISSUER,
            "aud": self.settings.JWT_AUDIENCE,
            "jti": uuid.uuid4().hex,
        }
        return self._sign(payload)

    def issue_refresh_token(self, user_id: str, now: datetime | None = None) -> IssuedRefreshToken:
        """Create a refresh token. The caller must register its jti before handing it out."""
        now = now or datetime.now(UTC)
        jti = uuid.uuid4().hex
        expires_at = now + self.refresh_ttl
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "typ": REFRESH_TOKEN_TYPE,
            "iat": now,
            "exp": expires_at,
            "iss": self.settings.JWT_ISSUER,
            "aud": self.settings.JWT_AUDIENCE,
            "jti": jti,
        }
        return IssuedRefreshToken(token=self._sign(payload), jti=jti, expires_at=expires_at)

    def verify_access(self, token: str) -> AccessClaims:
        """
        Verify an access token and return its claims.

        Raises TokenExpiredError for a genuine but expired token and
        TokenInvalidError for anything else (malformed, bad signature, unknown
        key, wrong issuer/audience, or a refresh token presented as access).
        """
        payload = self._decode(token)
        if payload.get("typ") != ACCESS_TOKEN_TYPE:
            raise TokenInvalidError("Not an access token")
        role = payload.get("role")
        if not isinstance(role, str) or not role:
            raise TokenInvalidError("Invalid token payload")
        return AccessClaims(
            user_id=str(payload["sub"]),
            role=role,
            expires_at=datetime.fromtimestamp(int(payload["exp"]), UTC),
            jti=str(payload["jti"]),
        )

    def decode_refresh(self, token: str, verify_exp: bool = True) -> RefreshClaims:
        """
        Verify a refresh token's signature and claims.

        Every failure is reported as TokenInvalidError, including expiry, because
        callers of refresh only need to know the token is unusable. Logout passes
        verify_exp=False so an expired token can still be revoked.
        """
        try:
            payload = self._decode(token, verify_exp=verify_exp)
        except TokenExpiredError as e:
            raise TokenInvalidError("Refresh token has expired") from e
        if payload.get("typ") != REFRESH_TOKEN_TYPE:
            raise TokenInvalidError("Not a refresh token")
        return RefreshClaims(
            user_id=str(payload["sub"]),
            jti=str(payload["jti"]),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), UTC),
        )

    def _sign(self, payload: dict[str, Any]) -> str:
        return jwt.encode(
            payload,
            self._keys[self._active_kid],
            algorithm=self.settings.JWT_ALGORITHM,
            headers={"kid": self._active_kid},
        )

    def _decode(self, token: str, verify_exp: bool = True) -> dict[str, Any]:
        # Header first: garbage fails here without touching the claims.
        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError as e:
            raise TokenInvalidError("Malformed token") from e
        kid = header.get("kid")
        key = self._keys.get(kid) if isinstance(kid, str) else None
        if key is None:
            raise TokenInvalidError("Unknown signing key")
        # PyJWT checks the signature before any claim, so exp is never trusted unsigned.
        try:
            return jwt.decode(
                token,
                key,
                algorithms=[self.settings.JWT_ALGORITHM],
                audience=self.settings.JWT_AUDIENCE,
                issuer=self.settings.JWT_ISSUER,
                options={"require": REQUIRED_CLAIMS, "verify_exp": verify_exp},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError() from e
        except jwt.PyJWTError as e:
            raise TokenInvalidError() from e
