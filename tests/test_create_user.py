"""Tests for app.scripts.create_user (bootstrap CLI for admin accounts)."""

import tempfile
import unittest
from unittest.mock import patch

from sqlalchemy.orm import sessionmaker

from app.core.config import Settings
from app.core.database import create_db_engine
from app.models import Base, User
from app.scripts import create_user


class TestCreateUserScript(unittest.TestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        engine = create_db_engine(f"sqlite:///{tmpdir.name}/cli.db")
        self.addCleanup(engine.dispose)
        Base.metadata.create_all(engine)
        self.session_factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
        settings = Settings(DATABASE_URL="sqlite://", BCRYPT_ROUNDS=4)
        for target, value in (
            ("app.scripts.create_user.SessionLocal", self.session_factory),
            ("app.scripts.create_user.get_settings", lambda: settings),
        ):
            patcher = patch(target, value)
            patcher.start()
            self.addCleanup(patcher.stop)

    def test_creates_admin(self) -> None:
        code = create_user.main(["Root@X.com", "root", "WeakPassword1", "admin", "--display-name", "Root"])
        self.assertEqual(code, 0)
        with self.session_factory() as db:
            user = db.query(User).one()
        self.assertEqual(user.email, "root@x.com")
        self.assertEqual(user.role, "admin")
        self.assertEqual(user.display_name, "Root")
        self.assertTrue(user.password_hash.startswith("$2b$04$"))

    def test_default_role_is_user(self) -> None:
        self.assertEqual(create_user.main(["u@x.com", "someone", "WeakPassword1"]), 0)
        with self.session_factory() as db:
            self.assertEqual(db.query(User).one().role, "user")

    def test_rejects_duplicate(self) -> None:
        self.assertEqual(create_user.main(["u@x.com", "someone", "WeakPassword1"]), 0)
        self.assertEqual(create_user.main(["U@x.com", "other", "WeakPassword1"]), 1)

    def test_rejects_weak_password(self) -> None:
        self.assertEqual(create_user.main(["u@x.com", "someone", "weak"]), 1)
        with self.session_factory() as db:
            self.assertEqual(db.query(User).count(), 0)


if __name__ == "__main__":
    unittest.main()
