"""Tests for app.services.admin.UserAdmin against a temporary SQLite database."""

import tempfile
import unittest

from sqlalchemy.orm import sessionmaker

from app.core.config import Settings
from app.core.database import create_db_engine
from app.core.errors import (
    InvalidCredentialsError,
    NotFoundError,
    TokenInvalidError,
    ValidationError,
)
from app.models import Base, RefreshToken, Role, User
from app.services.access import Principal
from app.services.admin import UserAdmin
from app.services.auth import AuthGateway

SECRET = "test-secret-0123456789abcdef0123456789abcdef"
PASSWORD = "WeakPassword1"


class AdminTestCase(unittest.TestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        engine = create_db_engine(f"sqlite:///{tmpdir.name}/admin.db")
        self.addCleanup(engine.dispose)
        Base.metadata.create_all(engine)
        self.session_factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
        self.settings = Settings(DATABASE_URL="sqlite://", JWT_SECRET=SECRET, BCRYPT_ROUNDS=4)
        self.alice = self.register("alice@x.com", "alice", "Alice", "Smith")
        self.bob = self.register("bob@example.org", "bob_builder", "Bob", "Jones")
        self.root = Principal(user_id="admin-id", role=Role.ADMIN.value)

    def gateway(self) -> AuthGateway:
        db = self.session_factory()
        self.addCleanup(db.close)
        return AuthGateway(db, self.settings)

    def admin(self) -> UserAdmin:
        db = self.session_factory()
        self.addCleanup(db.close)
        return UserAdmin(db)

    def register(self, email: str, username: str, first: str, last: str):
        return self.gateway().register(
            username=username, email=email, password=PASSWORD, first_name=first, last_name=last
        )


class TestListUsers(AdminTestCase):
    def test_lists_all_with_total(self) -> None:
        page = self.admin().list_users()
        self.assertEqual(page.total, 2)
        self.assertEqual({u.username for u in page.users}, {"alice", "bob_builder"})

    def test_search_matches_username_email_or_display_name(self) -> None:
        cases = (("ALI", {"alice"}), ("example.org", {"bob_builder"}), ("jones", {"bob_builder"}))
        for term, expected in cases:
            with self.subTest(term=term):
                page = self.admin().list_users(search=term)
                self.assertEqual({u.username for u in page.users}, expected)
                self.assertEqual(page.total, len(expected))

    def test_search_treats_wildcards_literally(self) -> None:
        self.assertEqual(self.admin().list_users(search="%").total, 0)

    def test_role_filter(self) -> None:
        with self.session_factory() as db:
            db.query(User).filter(User.username == "bob_builder").update(
                {User.role: Role.ADMIN.value}
            )
            db.commit()
        admins = self.admin().list_users(role=Role.ADMIN)
        self.assertEqual([u.username for u in admins.users], ["bob_builder"])
        self.assertEqual(self.admin().list_users(role=Role.USER).total, 1)

    def test_pagination(self) -> None:
        page = self.admin().list_users(offset=1, limit=1)
        self.assertEqual(len(page.users), 1)
        self.assertEqual(page.total, 2)


class TestGetUser(AdminTestCase):
    def test_found_and_missing(self) -> None:
        self.assertEqual(self.admin().get_user(self.alice.user.id).email, "alice@x.com")
        with self.assertRaises(NotFoundError) as ctx:
            self.admin().get_user("missing")
        self.assertEqual(ctx.exception.status_code, 404)


class TestSetActive(AdminTestCase):
    def test_deactivate_blocks_login_and_revokes_sessions(self) -> None:
        profile = self.admin().set_active(self.root, self.alice.user.id, active=False)
        self.assertFalse(profile.is_active)
        with self.assertRaises(InvalidCredentialsError):
            self.gateway().login("alice@x.com", PASSWORD)
        with self.assertRaises(TokenInvalidError):
            self.gateway().refresh(self.alice.refresh_token)
        with self.session_factory() as db:
            live = db.query(RefreshToken).filter(
                RefreshToken.user_id == self.alice.user.id, RefreshToken.revoked_at.is_(None)
            )
            self.assertEqual(live.count(), 0)

    def test_reactivate_allows_login_again(self) -> None:
        self.admin().set_active(self.root, self.alice.user.id, active=False)
        self.assertTrue(self.admin().set_active(self.root, self.alice.user.id, active=True).is_active)
        self.assertTrue(self.gateway().login("alice@x.com", PASSWORD).access_token)

    def test_cannot_deactivate_self(self) -> None:
        me = Principal(user_id=self.alice.user.id, role=Role.ADMIN.value)
        with self.assertRaises(ValidationError):
            self.admin().set_active(me, self.alice.user.id, active=False)

    def test_unknown_user(self) -> None:
        with self.assertRaises(NotFoundError):
            self.admin().set_active(self.root, "missing", active=False)


class TestDeleteUser(AdminTestCase):
    def test_delete_removes_user_and_sessions(self) -> None:
        self.admin().delete_user(self.root, self.alice.user.id)
        with self.session_factory() as db:
            self.assertIsNone(db.get(User, self.alice.user.id))
            self.assertEqual(
                db.query(RefreshToken).filter(RefreshToken.user_id == self.alice.user.id).count(), 0
            )
        with self.assertRaises(InvalidCredentialsError):
            self.gateway().login("alice@x.com", PASSWORD)

    def test_cannot_delete_self(self) -> None:
        me = Principal(user_id=self.alice.user.id, role=Role.ADMIN.value)
        with self.assertRaises(ValidationError) as ctx:
            self.admin().delete_user(me, self.alice.user.id)
        self.assertEqual(ctx.exception.status_code, 400)

    def test_unknown_user(self) -> None:
        with self.assertRaises(NotFoundError):
            self.admin().delete_user(self.root, "missing")


if __name__ == "__main__":
    unittest.main()
