"""Unit tests for imac.services.token_issuer: claims, dual secrets, expiry and persistence."""

import unittest
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import jwt

from imac.models import Role
from imac.services.errors import TokenExpired, TokenInvalid
from imac.services.token_issuer import (
    issue_access_token,
    issue_refresh_token,
    verify_access_token,
    verify_refresh_token,
)
from tests.support import make_settings


def _user(user_id: int = 7, email: str = "alice@example.com", role: Role = Role.SUPERVISOR) -> MagicMock:
    user = MagicMock()
    user.id = user_id
    user.email = email
    user.role = role
    return user


class TestAccessToken(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = make_settings()
        self.now = datetime.now(UTC)

    def test_claims(self) -> None:
        token = issue_access_token(_user(), self.settings, self.now)
        claims = verify_access_token(token, self.settings)
        self.assertEqual(claims["sub"], "7")
        self.assertEqual(claims["email"], "alice@example.com")
        self.assertEqual(claims["role"], "SUPERVISOR")
        self.assertEqual(claims["iss"], "imac-api")
        self.assertEqual(claims["aud"], "imac-frontend")

    def test_expires_after_configured_minutes(self) -> None:
        token = issue_access_token(_user(), self.settings, self.now)
        claims = verify_access_token(token, self.settings)
        self.assertEqual(claims["exp"] - claims["iat"], 15 * 60)

    def test_expired_token_raises_token_expired(self) -> None:
        token = issue_access_token(_user(), self.settings, self.now - timedelta(minutes=16))
        with self.assertRaises(TokenExpired):
            verify_access_token(token, self.settings)

    def test_bad_signature_raises_token_invalid(self) -> None:
        other = make_settings(JWT_ACCESS_SECRET="x" * 40)
        token = issue_access_token(_user(), other, self.now)
        with self.assertRaises(TokenInvalid):
            verify_access_token(token, self.settings)

    def test_wrong_audience_raises_token_invalid(self) -> None:
        other = make_settings(JWT_AUDIENCE="someone-else")
        token = issue_access_token(_user(), other, self.now)
        with self.assertRaises(TokenInvalid):
            verify_access_token(token, self.settings)

    def test_wrong_issuer_raises_token_invalid(self) -> None:
        other = make_settings(JWT_ISSUER="another-api")
        token = issue_access_token(_user(), other, self.now)
        with self.assertRaises(TokenInvalid):
            verify_access_token(token, self.settings)

    def test_garbage_raises_token_invalid(self) -> None:
        with self.assertRaises(TokenInvalid):
            verify_access_token("not-a-jwt", self.settings)

    def test_two_tokens_in_same_second_differ(self) -> None:
        a = issue_access_token(_user(), self.settings, self.now)
        b = issue_access_token(_user(), self.settings, self.now)
        self.assertNotEqual(a, b)


class TestRefreshToken(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = make_settings()
        self.now = datetime.now(UTC)
        self.store = MagicMock()

    def test_persists_row_with_independent_expiry(self) -> None:
        token = issue_refresh_token(7, self.store, self.settings, self.now)
        self.store.create_refresh_token.assert_called_once_with(
            7, token, self.now + timedelta(days=7)
        )

    def test_signed_with_refresh_secret(self) -> None:
        token = issue_refresh_token(7, self.store, self.settings, self.now)
        claims = jwt.decode(
            token,
            self.settings.JWT_REFRESH_SECRET.get_secret_value(),
            algorithms=["HS256"],
            issuer="imac-api",
        )
        self.assertEqual(claims["sub"], "7")
        self.assertEqual(claims["exp"] - claims["iat"], 7 * 24 * 3600)
        with self.assertRaises(jwt.InvalidSignatureError):
            jwt.decode(
                token,
                self.settings.JWT_ACCESS_SECRET.get_secret_value(),
                algorithms=["HS256"],
                options={"verify_aud": False},
            )

    def test_refresh_token_is_not_an_access_token(self) -> None:
        token = issue_refresh_token(7, self.store, self.settings, self.now)
        with self.assertRaises(TokenInvalid):
            verify_access_token(token, self.settings)

    def test_access_token_is_not_a_refresh_token(self) -> None:
        token = issue_access_token(_user(), self.settings, self.now)
        with self.assertRaises(TokenInvalid):
            verify_refresh_token(token, self.settings)

    def test_verify_refresh_token_roundtrip(self) -> None:
        token = issue_refresh_token(3, self.store, self.settings, self.now)
        self.assertEqual(verify_refresh_token(token, self.settings)["sub"], "3")

    def test_expired_refresh_signature(self) -> None:
        token = issue_refresh_token(3, self.store, self.settings, self.now - timedelta(days=8))
        with self.assertRaises(TokenExpired):
            verify_refresh_token(token, self.settings)


if __name__ == "__main__":
    unittest.main()
