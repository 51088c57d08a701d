"""Refresh-token registry: tracks issued refresh tokens so sessions can be revoked and rotated."""

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.models import RefreshToken

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


class RefreshTokenRegistry:
    """
    Refresh-token records keyed by jti, on an explicitly passed session.

    Expired rows are treated as absent on lookup (lazy expiry); run_session_sweep
    deletes them eagerly. Methods never commit; the caller owns the transaction.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def put(self, token_id: str, user_id: str, expires_at: datetime) -> RefreshToken:
        record = RefreshToken(id=token_id, user_id=user_id, expires_at=expires_at)
        self.db.add(record)
        self.db.flush()
        return record

    def get(self, token_id: str, now: datetime | None = None) -> RefreshToken | None:
        """Return the record for token_id, or None if unknown or expired. Revoked records are returned."""
        now = now or datetime.now(UTC)
        return (
            self.db.query(RefreshToken)
            .filter(RefreshToken.id == token_id, RefreshToken.expires_at > now)
            .first()
        )

    def is_active(self, token_id: str, now: datetime | None = None) -> bool:
        record = self.get(token_id, now)
        return record is not None and record.revoked_at is None

    def consume(self, token_id: str, replaced_by: str | None = None, now: datetime | None = None) -> bool:
        """
        Atomically mark a live token as used. Returns False if it was unknown,
        expired, or already revoked/rotated.

        This is a single conditional UPDATE: when the same token is presented
        twice concurrently, the database lets exactly one of them match.
        """
        now = now or datetime.now(UTC)
        result = self.db.execute(
            update(RefreshToken)
            .where(
                RefreshToken.id == token_id,
                RefreshToken.revoked_at.is_(None),
                RefreshToken.expires_at > now,
            )
            .values(revoked_at=now, replaced_by=replaced_by)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def revoke(self, token_id: str, user_id: str | None = None, now: datetime | None = None) -> bool:
        """Revoke one token (optionally only if owned by user_id). Idempotent; returns True if a row changed."""
        now = now or datetime.now(UTC)
        stmt = update(RefreshToken).where(
            RefreshToken.id == token_id,
            RefreshToken.revoked_at.is_(None),
        )
        if user_id is not None:
            stmt = stmt.where(RefreshToken.user_id == user_id)
        result = self.db.execute(
            stmt.values(revoked_at=now).execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def revoke_all(self, user_id: str, now: datetime | None = None) -> int:
        """Revoke every live token of a user. Returns how many were revoked."""
        now = now or datetime.now(UTC)
        result = self.db.execute(
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def active_count(self, user_id: str, now: datetime | None = None) -> int:
        now = now or datetime.now(UTC)
        return (
            self.db.query(RefreshToken)
            .filter(
                RefreshToken.user_id == user_id,
                RefreshToken.revoked_at.is_(None),
                RefreshToken.expires_at > now,
            )
            .count()
        )

    def count_expired(self, now: datetime | None = None) -> int:
        now = now or datetime.now(UTC)
        return self.db.query(RefreshToken).filter(RefreshToken.expires_at <= now).count()

    def purge_expired(self, now: datetime | None = None) -> int:
        """Delete records past their expiry. Returns the number deleted."""
        now = now or datetime.now(UTC)
        return (
            self.db.query(RefreshToken)
            .filter(RefreshToken.expires_at <= now)
            .delete(synchronize_session=False)
        )


def run_session_sweep(session: Session, settings: "Settings") -> int:
    """
    Delete expired refresh-token records. Idempotent: safe to run repeatedly.

    Returns the number of records deleted (0 when SESSION_SWEEP_ENABLED is false).
    """
    if not settings.SESSION_SWEEP_ENABLED:
        logger.info("Session sweep is disabled (SESSION_SWEEP_ENABLED=false); skipping.")
        return 0

    cutoff = datetime.now(UTC)
    deleted_count = RefreshTokenRegistry(session).purge_expired(cutoff)
    session.commit()

    if deleted_count > 0:
        logger.info(
            "Session sweep run: cutoff=%s, refresh_tokens_deleted=%s",
            cutoff.isoformat(),
            deleted_count,
        )
    return deleted_count
