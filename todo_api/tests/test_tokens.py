import unittest
from datetime import datetime, timedelta, timezone

import jwt

from todo_api.errors import InvalidToken
from todo_api.tokens import Identity, TokenService

SECRET = "test-secret-0123456789abcdef0123456789"


class TokenServiceTests(unittest.TestCase):
    def setUp(self):
        self.tokens = TokenService(secret=SECRET)

    def test_issue_and_verify(self):
        token = self.tokens.issue("alice@example.com")
        identity = self.tokens.verify(token)
        self.assertIsInstance(identity, Identity)
        self.assertEqual(identity.email, "alice@example.com")
        self.assertIn("iat", identity.claims)
        self.assertEqual(identity.claims["exp"] - identity.claims["iat"], 24 * 3600)

    def test_expired_token_is_rejected(self):
        issued = datetime.now(timezone.utc) - timedelta(hours=25)
        token = self.tokens.issue("alice@example.com", now=issued)
        with self.assertRaises(InvalidToken):
            self.tokens.verify(token)

    def test_token_signed_with_other_secret_is_rejected(self):
        other = TokenService(secret="another-secret-0123456789abcdef01234")
        with self.assertRaises(InvalidToken):
            self.tokens.verify(other.issue("alice@example.com"))

    def test_tampered_payload_is_rejected(self):
        header, _, signature = self.tokens.issue("alice@example.com").split(".")
        forged_payload = jwt.encode(
            {"email": "mallory@example.com", "iat": 0, "exp": 4102444800},
            "guess",
            algorithm="HS256",
        ).split(".")[1]
        with self.assertRaises(InvalidToken):
            self.tokens.verify(f"{header}.{forged_payload}.{signature}")

    def test_malformed_token_is_rejected(self):
        with self.assertRaises(InvalidToken):
            self.tokens.verify("not-a-token")

    def test_token_without_email_is_rejected(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"iat": now, "exp": now + timedelta(hours=1)}, SECRET, algorithm="HS256"
        )
        with self.assertRaises(InvalidToken):
            self.tokens.verify(token)

    def test_issue_requires_email(self):
        with self.assertRaises(ValueError):
            self.tokens.issue("")

    def test_secret_is_required(self):
        with self.assertRaises(ValueError):
            TokenService(secret="")


if __name__ == "__main__":
    unittest.main()
