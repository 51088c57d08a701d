"""Unit tests for app.core.security: bcrypt hashing, password policy and field validators."""

import unittest

from app.core.config import Settings
from app.core.security import (
    PasswordHasher,
    email_errors,
    name_errors,
    normalize_email,
    password_policy_errors,
    username_errors,
)


def _settings(**overrides: object) -> Settings:
    values: dict[str, object] = {"DATABASE_URL": "sqlite://", "BCRYPT_ROUNDS": 4}
    values.update(overrides)
    return Settings(**values)


class TestPasswordHasher(unittest.TestCase):
    """PasswordHasher hashes one-way and verifies with only the stored digest."""

    def setUp(self) -> None:
        self.hasher = PasswordHasher(rounds=4)

    def test_hash_is_not_plaintext_and_embeds_cost(self) -> None:
        digest = self.hasher.hash("WeakPassword1")
        self.assertNotIn("WeakPassword1", digest)
        self.assertTrue(digest.startswith("$2b$04$"))

    def test_same_password_gets_different_salts(self) -> None:
        self.assertNotEqual(self.hasher.hash("WeakPassword1"), self.hasher.hash("WeakPassword1"))

    def test_verify_correct_and_wrong_password(self) -> None:
        digest = self.hasher.hash("WeakPassword1")
        self.assertTrue(self.hasher.verify("WeakPassword1", digest))
        self.assertFalse(self.hasher.verify("WeakPassword2", digest))

    def test_verify_with_other_cost_factor(self) -> None:
        digest = PasswordHasher(rounds=5).hash("WeakPassword1")
        self.assertTrue(self.hasher.verify("WeakPassword1", digest))

    def test_malformed_hash_does_not_verify(self) -> None:
        self.assertFalse(self.hasher.verify("WeakPassword1", "not-a-bcrypt-hash"))
        self.assertFalse(self.hasher.verify("WeakPassword1", ""))

    def test_input_past_72_bytes_is_refused_not_truncated(self) -> None:
        stored = "Aa1" + "x" * 69
        digest = self.hasher.hash(stored)
        self.assertTrue(self.hasher.verify(stored, digest))
        self.assertFalse(self.hasher.verify(stored + "totally-different", digest))
        with self.assertRaises(ValueError):
            self.hasher.hash(stored + "SECRET-TAIL-1")

    def test_multibyte_limit_counts_bytes(self) -> None:
        with self.assertRaises(ValueError):
            self.hasher.hash("é" * 37)


class TestPasswordPolicy(unittest.TestCase):
    """password_policy_errors lists every violated rule."""

    def test_accepts_compliant_password(self) -> None:
        self.assertEqual(password_policy_errors("WeakPassword1", _settings()), [])

    def test_too_short(self) -> None:
        errors = password_policy_errors("Ab1", _settings())
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].field, "password")
        self.assertIn("at least 8", errors[0].message)

    def test_reports_all_missing_character_classes(self) -> None:
        messages = [e.message for e in password_policy_errors("________", _settings())]
        self.assertEqual(len(messages), 3)
        self.assertTrue(any("uppercase" in m for m in messages))
        self.assertTrue(any("lowercase" in m for m in messages))
        self.assertTrue(any("number" in m for m in messages))

    def test_rules_are_configurable(self) -> None:
        settings = _settings(
            PASSWORD_REQUIRE_UPPERCASE=False,
            PASSWORD_REQUIRE_DIGIT=False,
            PASSWORD_MIN_LENGTH=6,
        )
        self.assertEqual(password_policy_errors("simple", settings), [])

    def test_custom_field_name(self) -> None:
        errors = password_policy_errors("short", _settings(), field="new_password")
        self.assertTrue(errors)
        self.assertTrue(all(e.field == "new_password" for e in errors))

    def test_rejects_passwords_bcrypt_would_truncate(self) -> None:
        self.assertEqual(password_policy_errors("Aa1" + "x" * 69, _settings()), [])
        too_long = password_policy_errors("Aa1" + "x" * 69 + "SECRET-TAIL-1", _settings())
        self.assertEqual(len(too_long), 1)
        self.assertIn("at most 72", too_long[0].message)
        # 38 characters, 73 bytes
        multibyte = password_policy_errors("Aa1" + "é" * 35, _settings())
        self.assertEqual(len(multibyte), 1)
        self.assertIn("bytes", multibyte[0].message)

    def test_max_length_cannot_exceed_bcrypt_limit(self) -> None:
        with self.assertRaises(ValueError):
            _settings(PASSWORD_MAX_LENGTH=128)

    def test_character_classes_are_ascii_only(self) -> None:
        messages = [e.message for e in password_policy_errors("ÄÖÜäöü١٢٣", _settings())]
        self.assertTrue(any("uppercase" in m for m in messages))
        self.assertTrue(any("lowercase" in m for m in messages))
        self.assertTrue(any("number" in m for m in messages))
        self.assertEqual(password_policy_errors("ÄbcdefgH9", _settings()), [])


class TestFieldValidators(unittest.TestCase):
    """Username, email and name validators mirror the users table limits."""

    def test_username(self) -> None:
        self.assertEqual(username_errors("jane_doe42"), [])
        self.assertEqual(len(username_errors("ab")), 1)
        self.assertEqual(len(username_errors("x" * 51)), 1)
        self.assertIn("letters, numbers", username_errors("jane doe")[0].message)

    def test_email(self) -> None:
        self.assertEqual(email_errors("a@x.com"), [])
        self.assertEqual(len(email_errors("not-an-email")), 1)
        self.assertEqual(len(email_errors("a b@x.com")), 1)

    def test_names(self) -> None:
        self.assertEqual(name_errors("Jane", "first_name", "First name"), [])
        self.assertEqual(name_errors("   ", "first_name", "First name")[0].field, "first_name")

    def test_normalize_email(self) -> None:
        self.assertEqual(normalize_email("  A@X.Com "), "a@x.com")


if __name__ == "__main__":
    unittest.main()
