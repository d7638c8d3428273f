# tests/services/test_usernames.py
"""Tests for username derivation and collision resolution."""

from __future__ import annotations

from itertools import islice

import pytest

from quorum.models.user import USERNAME_MAX_LENGTH
from quorum.services.usernames import UsernameAllocator, derive_candidate


@pytest.mark.parametrize(
    ("email", "expected"),
    [
        ("bob@example.com", "bob"),
        ("first.last@mail.co", "first.last"),
        ("a@b@c", "a"),
        ("no-at-sign", "no-at-sign"),
        ("@example.com", "user"),
    ],
)
def test_derive_candidate(email: str, expected: str) -> None:
    assert derive_candidate(email) == expected


def test_candidates_sequence() -> None:
    assert list(islice(UsernameAllocator.candidates("bob"), 4)) == ["bob", "bob1", "bob2", "bob3"]
    assert next(UsernameAllocator.candidates("bob", start=5)) == "bob5"


def test_candidates_stay_within_column_length() -> None:
    base = "x" * USERNAME_MAX_LENGTH
    names = list(islice(UsernameAllocator.candidates(base), 12))

    assert names[0] == base
    assert all(len(name) <= USERNAME_MAX_LENGTH for name in names)
    assert names[11].endswith("11")
    assert len(set(names)) == len(names)


def test_allocate_free_name(db_session) -> None:
    assert UsernameAllocator(db_session).allocate_unique("bob") == "bob"


def test_allocate_skips_taken_names(db_session, make_user) -> None:
    make_user("bob")
    make_user("bob1")

    assert UsernameAllocator(db_session).allocate_unique("bob") == "bob2"


def test_allocate_from_start_offset(db_session, make_user) -> None:
    make_user("bob")

    assert UsernameAllocator(db_session).allocate_from("bob", 1) == ("bob1", 1)


def test_allocation_checks_at_most_one_more_than_existing(db_session, make_user) -> None:
    for name in ("carol", "carol1", "carol2"):
        make_user(name)
    allocator = UsernameAllocator(db_session)
    checked: list[str] = []
    real_is_taken = allocator.is_taken

    def counting_is_taken(name: str) -> bool:
        checked.append(name)
        return real_is_taken(name)

    allocator.is_taken = counting_is_taken  # type: ignore[method-assign]

    assert allocator.allocate_unique("carol") == "carol3"
    assert len(checked) == 4


def test_allocate_from_reports_suffix_past_taken_names(db_session, make_user) -> None:
    make_user("erin")
    make_user("erin2")

    assert UsernameAllocator(db_session).allocate_from("erin", 2) == ("erin3", 3)
