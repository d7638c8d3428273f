# src/quorum/db/__init__.py
"""Database configuration and utilities."""

from .base import Base, TimestampMixin, utcnow
from .session import SessionLocal, get_db

__all__ = ["Base", "TimestampMixin", "utcnow", "get_db", "SessionLocal"]
