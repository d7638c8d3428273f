# src/quorum/api/endpoints/comments.py
"""Comment voting endpoints; the direction is implied by the route."""

from __future__ import annotations

from fastapi import APIRouter

from quorum.api.dependencies import CurrentUserDep, VoteLedgerDep
from quorum.core.security import UserID
from quorum.models import DOWNVOTE, UPVOTE
from quorum.schemas.vote import VoteResponse
from quorum.services.votes import VoteTarget

router = APIRouter(prefix="/comments", tags=["comments"])


@router.post("/{comment_id}/upvote", response_model=VoteResponse)
def upvote_comment(
    comment_id: int,
    current_user: CurrentUserDep,
    ledger: VoteLedgerDep,
) -> VoteResponse:
    """Upvote a comment; upvoting again removes the vote."""
    outcome = ledger.cast_vote(UserID(current_user.id), VoteTarget.comment(comment_id), UPVOTE)
    return VoteResponse(message=outcome.value)


@router.post("/{comment_id}/downvote", response_model=VoteResponse)
def downvote_comment(
    comment_id: int,
    current_user: CurrentUserDep,
    ledger: VoteLedgerDep,
) -> VoteResponse:
    """Downvote a comment; downvoting again removes the vote."""
    outcome = ledger.cast_vote(UserID(current_user.id), VoteTarget.comment(comment_id), DOWNVOTE)
    return VoteResponse(message=outcome.value)
