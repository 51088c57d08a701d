"""
Purge refresh-token rows that have passed their expiry.

Expired tokens are already refused on lookup, so this only bounds the size of
the refresh_tokens table. Schedule it with cron or a Kubernetes CronJob:

  python -m app.sweep              # delete expired rows
  python -m app.sweep --dry-run    # only report how many would go
"""

import argparse
import logging
import sys
from datetime import UTC, datetime

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.services.sessions import RefreshTokenRegistry, run_session_sweep

logger = logging.getLogger("app.sweep")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Delete expired refresh tokens.")
    parser.add_argument(
        "--dry-run", action="store_true", help="Count expired tokens without deleting them"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    with SessionLocal() as db:
        try:
            if args.dry_run:
                expired = RefreshTokenRegistry(db).count_expired(datetime.now(UTC))
                logger.info("Dry run: %s expired refresh tokens would be deleted", expired)
            else:
                deleted = run_session_sweep(db, get_settings())
                logger.info("Refresh-token sweep finished, %s rows deleted", deleted)
        except Exception:
            logger.exception("Refresh-token sweep aborted")
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
