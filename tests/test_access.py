"""Unit tests for app.services.access: the role model and the access control guard."""

import unittest
from datetime import UTC, datetime, timedelta

from app.core.config import Settings
from app.core.errors import ForbiddenError, UnauthorizedError
from app.models import Role
from app.services.access import AccessGuard, role_satisfies
from app.services.tokens import TokenService

SECRET = "test-secret-0123456789abcdef0123456789abcdef"


class TestRoleSatisfies(unittest.TestCase):
    """admin satisfies user-level checks; user never satisfies admin-level checks."""

    def test_matrix(self) -> None:
        self.assertTrue(role_satisfies("user", None))
        self.assertTrue(role_satisfies("user", Role.USER))
        self.assertTrue(role_satisfies("admin", Role.USER))
        self.assertTrue(role_satisfies("admin", "admin"))
        self.assertFalse(role_satisfies("user", Role.ADMIN))

    def test_unknown_actual_role_satisfies_nothing_but_none(self) -> None:
        self.assertTrue(role_satisfies("guest", None))
        self.assertFalse(role_satisfies("guest", Role.USER))

    def test_unknown_requirement_is_a_programming_error(self) -> None:
        with self.assertRaises(ValueError):
            role_satisfies("admin", "superuser")


class TestAccessGuard(unittest.TestCase):
    """authorize() maps token and role problems to Unauthorized (401) and Forbidden (403)."""

    def setUp(self) -> None:
        self.tokens = TokenService(Settings(DATABASE_URL="sqlite://", JWT_SECRET=SECRET))
        self.guard = AccessGuard(self.tokens)

    def test_missing_token(self) -> None:
        for token in (None, ""):
            with self.subTest(token=token):
                with self.assertRaises(UnauthorizedError):
                    self.guard.authorize(token)

    def test_garbled_token(self) -> None:
        with self.assertRaises(UnauthorizedError):
            self.guard.authorize("definitely.not.ajwt", Role.USER)

    def test_expired_token(self) -> None:
        token = self.tokens.issue_access_token(
            "u1", "admin", now=datetime.now(UTC) - timedelta(days=1)
        )
        with self.assertRaises(UnauthorizedError) as ctx:
            self.guard.authorize(token)
        self.assertIn("expired", ctx.exception.message)

    def test_user_on_admin_route_is_forbidden(self) -> None:
        token = self.tokens.issue_access_token("u1", "user")
        with self.assertRaises(ForbiddenError) as ctx:
            self.guard.authorize(token, Role.ADMIN)
        self.assertEqual(ctx.exception.status_code, 403)

    def test_admin_passes_user_and_admin_routes(self) -> None:
        token = self.tokens.issue_access_token("a1", "admin")
        for required in (None, Role.USER, Role.ADMIN):
            with self.subTest(required=required):
                principal = self.guard.authorize(token, required)
                self.assertEqual(principal.user_id, "a1")
                self.assertEqual(principal.role, "admin")

    def test_user_passes_user_route(self) -> None:
        principal = self.guard.authorize(self.tokens.issue_access_token("u1", "user"), Role.USER)
        self.assertEqual(principal.user_id, "u1")


if __name__ == "__main__":
    unittest.main()
