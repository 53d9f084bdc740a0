"""Unit tests for imac.services.password_policy: rule order, messages and denylist."""

import unittest

from imac.services.password_policy import (
    COMMON_PASSWORDS,
    MSG_COMMON,
    MSG_NO_DIGIT,
    MSG_NO_LOWER,
    MSG_NO_SPECIAL,
    MSG_NO_UPPER,
    MSG_TOO_SHORT,
    validate_password,
)


class TestSingleRuleFailures(unittest.TestCase):
    """Each password below breaks exactly one rule; the message names that rule."""

    def test_too_short(self) -> None:
        result = validate_password("Ab1!xyz")
        self.assertFalse(result.ok)
        self.assertEqual(result.reason, MSG_TOO_SHORT)

    def test_missing_uppercase(self) -> None:
        result = validate_password("str0ng!pass")
        self.assertFalse(result.ok)
        self.assertEqual(result.reason, MSG_NO_UPPER)

    def test_missing_lowercase(self) -> None:
        result = validate_password("STR0NG!PASS")
        self.assertFalse(result.ok)
        self.assertEqual(result.reason, MSG_NO_LOWER)

    def test_missing_digit(self) -> None:
        result = validate_password("Strong!Pass")
        self.assertFalse(result.ok)
        self.assertEqual(result.reason, MSG_NO_DIGIT)

    def test_missing_special_character(self) -> None:
        result = validate_password("Str0ngPass")
        self.assertFalse(result.ok)
        self.assertEqual(result.reason, MSG_NO_SPECIAL)

    def test_messages_are_distinct(self) -> None:
        messages = {MSG_TOO_SHORT, MSG_NO_UPPER, MSG_NO_LOWER, MSG_NO_DIGIT, MSG_NO_SPECIAL, MSG_COMMON}
        self.assertEqual(len(messages), 6)


class TestRuleOrder(unittest.TestCase):
    """The first failing rule wins."""

    def test_length_checked_before_character_classes(self) -> None:
        self.assertEqual(validate_password("abc").reason, MSG_TOO_SHORT)

    def test_uppercase_checked_before_digit(self) -> None:
        self.assertEqual(validate_password("nouppernodigit").reason, MSG_NO_UPPER)

    def test_empty_password(self) -> None:
        self.assertEqual(validate_password("").reason, MSG_TOO_SHORT)


class TestDenylist(unittest.TestCase):
    def test_denylist_entries_are_lowercase(self) -> None:
        for pw in COMMON_PASSWORDS:
            self.assertEqual(pw, pw.lower())

    def test_common_password_fails_other_rules_first(self) -> None:
        # "password" is denylisted but is rejected for missing uppercase first.
        self.assertEqual(validate_password("password").reason, MSG_NO_UPPER)

    def test_denylist_is_case_insensitive(self) -> None:
        # Not reachable through the character rules for the stock list, so
        # check the comparison itself on a patched list.
        from imac.services import password_policy

        original = password_policy.COMMON_PASSWORDS
        try:
            password_policy.COMMON_PASSWORDS = frozenset({"summer!2024a"})
            result = validate_password("SUMMER!2024a")
        finally:
            password_policy.COMMON_PASSWORDS = original
        self.assertFalse(result.ok)
        self.assertEqual(result.reason, MSG_COMMON)


class TestValidPasswords(unittest.TestCase):
    def test_strong_password_accepted(self) -> None:
        result = validate_password("Str0ng!Pass")
        self.assertTrue(result.ok)
        self.assertIsNone(result.reason)

    def test_each_special_character_counts(self) -> None:
        for ch in "!@#$%^&*()_+-=[]{};':\"\\|,.<>/?":
            with self.subTest(ch=ch):
                self.assertTrue(validate_password(f"Abcdef1{ch}").ok)

    def test_space_is_not_a_special_character(self) -> None:
        self.assertEqual(validate_password("Abcdef1 x").reason, MSG_NO_SPECIAL)


if __name__ == "__main__":
    unittest.main()
