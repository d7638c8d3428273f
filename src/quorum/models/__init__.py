# src/quorum/models/__init__.py
"""SQLAlchemy models for the Quorum application."""

from .comment import Comment
from .post import Post
from .user import AuthProvider, User
from .vote import DOWNVOTE, UPVOTE, Vote

__all__ = [
    "AuthProvider", "User",
    "Post",
    "Comment",
    "Vote", "UPVOTE", "DOWNVOTE",
]
