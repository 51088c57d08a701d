"""Database engine and session management (PostgreSQL, or SQLite for dev and tests)."""

from collections.abc import Callable, Generator
from functools import wraps
from typing import Any, TypeVar

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings

# Seconds a SQLite connection waits for a competing writer before giving up.
SQLITE_BUSY_TIMEOUT_SEC = 30


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL.

    PostgreSQL gets a pre-pinged connection pool. SQLite connections may be used
    from FastAPI's worker threads, and every transaction starts with
    BEGIN IMMEDIATE so concurrent writers queue on the file lock instead of
    failing mid-transaction with "database is locked".
    """
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True, echo=echo)

    engine = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT_SEC},
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record) -> None:
        # Let SQLAlchemy emit BEGIN itself (see _begin_immediate).
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


engine = create_db_engine(settings.DATABASE_URL, echo=settings.DEBUG)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

T = TypeVar("T")


def get_db() -> Generator[Session, None, None]:
    """Dependency that yields a DB session and closes it when done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_connected(db: Session) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


def unit_of_work(method: Callable[..., T]) -> Callable[..., T]:
    """Method decorator for services holding `self.db`: commit on return, roll back on raise."""

    @wraps(method)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
        try:
            result = method(self, *args, **kwargs)
        except Exception:
            self.db.rollback()
            raise
        self.db.commit()
        return result

    return wrapper
