"""Read models for posts and comments with derived vote counts."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class PostResponse(BaseModel):
    """A post with its ledger-derived vote counts."""

    id: int
    title: str
    body: str
    author_id: int
    upvotes: int
    downvotes: int
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class CommentResponse(BaseModel):
    """A comment with its ledger-derived vote counts."""

    id: int
    body: str
    post_id: int
    author_id: int
    parent_comment_id: int | None = None
    upvotes: int
    downvotes: int
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
