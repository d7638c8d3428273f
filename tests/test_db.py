# tests/test_db.py
"""Tests for engine construction, the session dependency and timestamps."""

from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy import text

from quorum.db.session import build_engine, get_db


def test_build_engine_allows_cross_thread_sqlite() -> None:
    engine = build_engine("sqlite://")
    try:
        with engine.connect() as connection:
            assert connection.execute(text("SELECT 1")).scalar_one() == 1
    finally:
        engine.dispose()


def test_get_db_rolls_back_and_reraises() -> None:
    dependency = get_db()
    session = next(dependency)
    session.execute(text("SELECT 1"))
    assert session.in_transaction()

    with pytest.raises(RuntimeError):
        dependency.throw(RuntimeError("handler failed"))

    assert not session.in_transaction()


def test_timestamps_are_set_on_insert(make_user) -> None:
    user = make_user("stamped")

    assert isinstance(user.created_at, datetime)
    assert isinstance(user.updated_at, datetime)
