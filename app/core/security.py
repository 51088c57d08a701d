"""Password hashing and input validation rules for credentials."""

import re
from typing import TYPE_CHECKING

import bcrypt

from app.core.errors import FieldError

if TYPE_CHECKING:
    from app.core.config import Settings

# bcrypt ignores input past 72 bytes.
BCRYPT_MAX_BYTES = 72

# Username/email/name limits mirror the users table columns.
USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 50
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
EMAIL_MAX_LEN = 100
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NAME_MAX_LEN = 50

# Password character classes are ASCII only; Unicode letters and digits do not count.
UPPERCASE_PATTERN = re.compile(r"[A-Z]")
LOWERCASE_PATTERN = re.compile(r"[a-z]")
DIGIT_PATTERN = re.compile(r"[0-9]")


class PasswordHasher:
    """
    One-way bcrypt hashing. The digest embeds salt and cost factor, so
    verification needs nothing but the stored string.

    Input longer than 72 bytes is refused, never truncated: hash() raises
    ValueError and verify() returns False.
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def hash(self, plain_password: str) -> str:
        """Hash a plain-text password for storage. Do not store plain passwords."""
        pw_bytes = plain_password.encode("utf-8")
        if len(pw_bytes) > BCRYPT_MAX_BYTES:
            raise ValueError(f"Password exceeds {BCRYPT_MAX_BYTES} bytes")
        return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain_password: str, hashed: str) -> bool:
        """Verify a plain password against a stored hash. Malformed hashes and over-long input never verify."""
        pw_bytes = plain_password.encode("utf-8")
        if len(pw_bytes) > BCRYPT_MAX_BYTES:
            return False
        try:
            return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return False


def password_policy_errors(
    password: str, settings: "Settings", field: str = "password"
) -> list[FieldError]:
    """Return every password policy violation (empty list when the password is acceptable)."""
    errors: list[FieldError] = []
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        errors.append(
            FieldError(field, f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long")
        )
    if len(password) > settings.PASSWORD_MAX_LENGTH:
        errors.append(
            FieldError(field, f"Password must be at most {settings.PASSWORD_MAX_LENGTH} characters long")
        )
    elif len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        errors.append(
            FieldError(field, f"Password must be at most {BCRYPT_MAX_BYTES} bytes when UTF-8 encoded")
        )
    if settings.PASSWORD_REQUIRE_UPPERCASE and not UPPERCASE_PATTERN.search(password):
        errors.append(FieldError(field, "Password must contain at least one uppercase letter"))
    if settings.PASSWORD_REQUIRE_LOWERCASE and not LOWERCASE_PATTERN.search(password):
        errors.append(FieldError(field, "Password must contain at least one lowercase letter"))
    if settings.PASSWORD_REQUIRE_DIGIT and not DIGIT_PATTERN.search(password):
        errors.append(FieldError(field, "Password must contain at least one number"))
    return errors


def normalize_email(email: str) -> str:
    """Emails are unique case-insensitively; store and look them up lower-cased."""
    return email.strip().lower()


def username_errors(username: str) -> list[FieldError]:
    if not (USERNAME_MIN_LEN <= len(username) <= USERNAME_MAX_LEN):
        return [
            FieldError(
                "username",
                f"Username must be between {USERNAME_MIN_LEN} and {USERNAME_MAX_LEN} characters",
            )
        ]
    if not USERNAME_PATTERN.match(username):
        return [FieldError("username", "Username can only contain letters, numbers, and underscores")]
    return []


def email_errors(email: str) -> list[FieldError]:
    if len(email) > EMAIL_MAX_LEN or not EMAIL_PATTERN.match(email):
        return [FieldError("email", "Must be a valid email address")]
    return []


def name_errors(value: str, field: str, label: str) -> list[FieldError]:
    if not (1 <= len(value.strip()) <= NAME_MAX_LEN):
        return [
            FieldError(field, f"{label} is required and must be less than {NAME_MAX_LEN} characters")
        ]
    return []
