"""ORM model for issued refresh tokens (one row per session)."""

from sqlalchemy import Column, DateTime, ForeignKey, String, func
from sqlalchemy.orm import relationship

from app.models.base import Base


class RefreshToken(Base):
    """
    Registry entry for a refresh token, keyed by the token's jti claim.

    A row is usable while revoked_at is NULL and expires_at is in the future.
    replaced_by holds the jti issued when this token was rotated.
    """

    __tablename__ = "refresh_tokens"

    id = Column(String(64), primary_key=True)
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    replaced_by = Column(String(64), nullable=True)

    user = relationship("User", back_populates="refresh_tokens")
