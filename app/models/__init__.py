"""SQLAlchemy ORM models."""

from app.models.base import Base
from app.models.refresh_token import RefreshToken
from app.models.user import Role, User

__all__ = ["Base", "RefreshToken", "Role", "User"]
