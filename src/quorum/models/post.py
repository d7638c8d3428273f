# src/quorum/models/post.py
"""SQLAlchemy model for posts.

Post text is managed elsewhere; this table exists here as a vote target and
for read models that carry derived vote counts.
"""

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from quorum.db.base import Base, TimestampMixin


class Post(TimestampMixin, Base):
    """Top-level forum post."""

    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
