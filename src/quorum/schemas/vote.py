"""Vote-related Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, Field


class VoteCreate(BaseModel):
    """Schema for casting a vote on a post."""

    vote_type: Literal[-1, 1] = Field(..., description="1 for upvote, -1 for downvote")


class VoteResponse(BaseModel):
    """Outcome of a cast vote."""

    message: str = Field(..., description="Vote recorded, Vote updated or Vote removed")


class MyVoteResponse(BaseModel):
    """Caller's current vote on a target: 1, -1, or 0 for none."""

    direction: Literal[-1, 0, 1]
