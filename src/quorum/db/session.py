"""Engine and per-request session wiring."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from quorum.core.settings import settings


def build_engine(url: str, *, echo: bool = False) -> Engine:
    """Create the engine for ``url``.

    Handlers run on the threadpool, so SQLite connections must be usable
    from a thread other than the one that opened them.
    """
    connect_args: dict[str, Any] = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(url, pool_pre_ping=True, echo=echo, connect_args=connect_args)


engine = build_engine(settings.effective_database_url, echo=settings.sql_debug)

# Services commit explicitly; nothing is flushed behind their back.
SessionLocal = sessionmaker(autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session, rolled back if the handler raised."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
