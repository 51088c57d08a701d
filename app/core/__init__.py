"""Core: settings, database sessions, error taxonomy and credential helpers."""

from app.core.config import Settings, get_settings, settings
from app.core.database import SessionLocal, get_db
from app.core.errors import AuthError, AuthErrorCode

__all__ = ["AuthError", "AuthErrorCode", "SessionLocal", "Settings", "get_db", "get_settings", "settings"]
