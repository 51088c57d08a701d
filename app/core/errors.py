"""Closed error taxonomy for the auth subsystem; each error knows its HTTP status."""

from dataclasses import dataclass
from enum import Enum


class AuthErrorCode(str, Enum):
    """Machine-readable error codes returned in the `error` field of failed responses."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    USER_EXISTS = "USER_EXISTS"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"


@dataclass(frozen=True)
class FieldError:
    """One failing input field."""

    field: str
    message: str


class AuthError(Exception):
    """Base class for every failure the auth subsystem reports to callers."""

    code: AuthErrorCode
    status_code: int
    default_message: str

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError):
    """One or more input fields failed validation."""

    code = AuthErrorCode.VALIDATION_ERROR
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: list[FieldError], message: str | None = None) -> None:
        self.errors = errors
        super().__init__(message)


class UserExistsError(AuthError):
    code = AuthErrorCode.USER_EXISTS
    status_code = 409
    default_message = "User with this email or username already exists"


class InvalidCredentialsError(AuthError):
    """Wrong email or password. Deliberately the same for both."""

    code = AuthErrorCode.INVALID_CREDENTIALS
    status_code = 401
    default_message = "Invalid email or password"


class TokenInvalidError(AuthError):
    code = AuthErrorCode.INVALID_TOKEN
    status_code = 401
    default_message = "Invalid token"


class TokenExpiredError(AuthError):
    code = AuthErrorCode.TOKEN_EXPIRED
    status_code = 401
    default_message = "Token has expired"


class UnauthorizedError(AuthError):
    code = AuthErrorCode.UNAUTHORIZED
    status_code = 401
    default_message = "Authentication required"


class ForbiddenError(AuthError):
    code = AuthErrorCode.FORBIDDEN
    status_code = 403
    default_message = "Insufficient role permissions"


class NotFoundError(AuthError):
    code = AuthErrorCode.NOT_FOUND
    status_code = 404
    default_message = "User not found"
