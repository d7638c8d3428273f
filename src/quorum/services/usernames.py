"""Username derivation and collision resolution."""
from __future__ import annotations

from collections.abc import Iterator

from sqlalchemy import select
from sqlalchemy.orm import Session

from quorum.models.user import USERNAME_MAX_LENGTH, User

__all__ = ["UsernameAllocator", "derive_candidate"]

FALLBACK_USERNAME = "user"


def derive_candidate(email: str) -> str:
    """Return the part of ``email`` before the first ``@``.

    An email without ``@`` is returned whole.
    """
    local, sep, _ = email.partition("@")
    candidate = local if sep else email
    return candidate.strip() or FALLBACK_USERNAME


class UsernameAllocator:
    """Pick a free username by appending an increasing integer suffix.

    The check here is only a hint: two requests may both see a name as free.
    The unique constraint on ``users.username`` decides, and callers that
    lose the race continue searching from the suffix after the one they lost.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    @staticmethod
    def derive_candidate(email: str) -> str:
        """Return the username candidate for ``email``."""
        return derive_candidate(email)

    @staticmethod
    def candidates(base: str, start: int = 0) -> Iterator[str]:
        """Yield ``base``, ``base1``, ``base2``, ... beginning at ``start``.

        ``base`` is shortened as needed so every name fits the column.
        """
        counter = start
        while True:
            suffix = "" if counter == 0 else str(counter)
            yield base[: USERNAME_MAX_LENGTH - len(suffix)] + suffix
            counter += 1

    def is_taken(self, username: str) -> bool:
        """Return True if an account already uses ``username``."""
        stmt = select(User.id).where(User.username == username).limit(1)
        return self.db.execute(stmt).first() is not None

    def allocate_unique(self, candidate: str) -> str:
        """Return ``candidate`` if free, else the first free ``candidateN``.

        Terminates after at most ``len(existing usernames) + 1`` checks, since
        each taken name can block only one position in the sequence.
        """
        name, _ = self.allocate_from(candidate, 0)
        return name

    def allocate_from(self, candidate: str, start: int) -> tuple[str, int]:
        """Return the first free name at or after suffix ``start``, and its suffix.

        Callers that lost a name to a concurrent insert resume from the
        suffix after it.
        """
        for suffix, name in enumerate(self.candidates(candidate, start), start=start):
            if not self.is_taken(name):
                return name, suffix
        raise AssertionError("unreachable: candidate sequence is infinite")
