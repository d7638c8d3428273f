# src/quorum/models/vote.py
"""Ledger rows recording one user's vote on one post or comment."""

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from quorum.db.base import Base, TimestampMixin

UPVOTE = 1
DOWNVOTE = -1


class Vote(TimestampMixin, Base):
    """Per-user vote on exactly one target.

    Aggregate scores are always counted from these rows; nothing is cached
    on the post or comment.
    """

    __tablename__ = "votes"
    __table_args__ = (
        CheckConstraint("vote_type IN (1, -1)", name="ck_votes_vote_type"),
        CheckConstraint(
            "(post_id IS NULL) <> (comment_id IS NULL)",
            name="ck_votes_single_target",
        ),
        # At most one row per (user, target). NULLs never collide, so each
        # constraint only binds rows of its own target kind.
        UniqueConstraint("user_id", "post_id", name="uq_votes_user_post"),
        UniqueConstraint("user_id", "comment_id", name="uq_votes_user_comment"),
        Index("ix_votes_post_id_vote_type", "post_id", "vote_type"),
        Index("ix_votes_comment_id_vote_type", "comment_id", "vote_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    post_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=True
    )
    comment_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True
    )

    # 1 = upvote, -1 = downvote.
    vote_type: Mapped[int] = mapped_column(SmallInteger, nullable=False)
