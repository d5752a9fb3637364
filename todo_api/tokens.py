"""
Signed session tokens.

Tokens are HS256 JWTs carrying the caller's email plus ``iat``/``exp``.
There is no server-side session table: the token is the session, and its
expiry (or a cleared cookie) is the only way it stops working.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import jwt

from todo_api.errors import InvalidToken


@dataclass(frozen=True)
class Identity:
    """The verified caller, as decoded from a session token."""

    email: str
    claims: dict = field(default_factory=dict, compare=False)


@dataclass
class TokenService:
    secret: str
    algorithm: str = "HS256"
    ttl: timedelta = timedelta(hours=24)

    def __post_init__(self):
        if not self.secret:
            raise ValueError("A signing secret is required for TokenService")

    def issue(self, email: str, *, now: datetime | None = None) -> str:
        if not email:
            raise ValueError("email claim is required")
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "email": email,
            "iat": issued_at,
            "exp": issued_at + self.ttl,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Identity:
        """
        Decode ``token`` and return the identity it carries.

        Raises InvalidToken for a bad signature, a malformed or expired token,
        or a payload without an email claim.
        """
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.PyJWTError as exc:
            raise InvalidToken() from exc

        email = claims.get("email")
        if not isinstance(email, str) or not email:
            raise InvalidToken()
        return Identity(email=email, claims=claims)
