"""Credential hashing and session token primitives."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, NewType, Protocol

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from quorum.core.errors import AuthError


UserID = NewType("UserID", int)

# bcrypt only looks at the first 72 bytes of the secret.
_BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """One-way salted bcrypt hashing for local credentials."""

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        self._dummy_digest: str | None = None

    @staticmethod
    def _encode(plaintext: str) -> bytes:
        return plaintext.encode("utf-8")[:_BCRYPT_MAX_BYTES]

    def hash(self, plaintext: str) -> str:
        """Return a bcrypt digest for ``plaintext``."""
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(self._encode(plaintext), salt).decode("ascii")

    def verify(self, plaintext: str, digest: str) -> bool:
        """Return True if ``plaintext`` matches ``digest``.

        Empty or malformed digests are a verification failure, not an error.
        """
        if not digest:
            return False
        try:
            return bcrypt.checkpw(self._encode(plaintext), digest.encode("ascii"))
        except (ValueError, UnicodeEncodeError):
            return False

    def burn(self, plaintext: str) -> None:
        """Spend one verification's worth of work against a throwaway digest.

        Used when no account matched so that response timing does not reveal
        whether the email is registered.
        """
        if self._dummy_digest is None:
            self._dummy_digest = self.hash("quorum-dummy-password")
        self.verify(plaintext, self._dummy_digest)


@dataclass(frozen=True)
class SessionClaims:
    """Identity facts carried by a session token."""

    user_id: UserID
    username: str
    email: str
    expires_at: datetime


class TokenSubject(Protocol):
    id: int
    username: str
    email: str


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TokenIssuer:
    """Sign and verify stateless, time-limited session tokens.

    Tokens are HMAC-signed JWTs with ``user_id``, ``username``, ``email``,
    ``iat`` and ``exp`` claims. They cannot be revoked server-side; logging
    out means the client discards the token.

    Expiry is checked with ``leeway`` seconds of tolerance for clock skew
    between the issuing and verifying hosts.
    """

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(hours=72),
        leeway: timedelta = timedelta(seconds=30),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret:
            raise ValueError("TokenIssuer requires a non-empty signing secret")
        self._secret = secret
        self.algorithm = algorithm
        self.ttl = ttl
        self.leeway = leeway
        self._clock = clock

    def issue(self, *, user_id: UserID, username: str, email: str) -> str:
        """Return a signed token for the given identity."""
        now = self._clock()
        expires_at = now + self.ttl
        to_encode: dict[str, Any] = {
            "user_id": int(user_id),
            "username": username,
            "email": email,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        encoded_jwt: str = jwt.encode(to_encode, self._secret, algorithm=self.algorithm)
        return encoded_jwt

    def issue_for(self, user: TokenSubject) -> str:
        """Return a token carrying ``user``'s current identity claims."""
        return self.issue(user_id=UserID(user.id), username=user.username, email=user.email)

    def verify(self, token: str) -> SessionClaims:
        """Decode ``token`` and return its claims.

        Raises:
            AuthError: on a bad signature, malformed structure, missing or
                ill-typed claims, or an expiry further in the past than the
                configured leeway.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"leeway": int(self.leeway.total_seconds())},
            )
        except ExpiredSignatureError as err:
            raise AuthError("Token has expired") from err
        except JWTError as err:
            raise AuthError("Could not validate credentials") from err

        user_id = payload.get("user_id")
        username = payload.get("username")
        email = payload.get("email")
        exp = payload.get("exp")
        if (
            not isinstance(user_id, int)
            or isinstance(user_id, bool)
            or not isinstance(username, str)
            or not isinstance(email, str)
            or not isinstance(exp, int | float)
        ):
            raise AuthError("Could not validate credentials")

        return SessionClaims(
            user_id=UserID(user_id),
            username=username,
            email=email,
            expires_at=datetime.fromtimestamp(exp, UTC),
        )
