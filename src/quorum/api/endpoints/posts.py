# src/quorum/api/endpoints/posts.py
"""Post read and voting endpoints."""

from __future__ import annotations

from fastapi import APIRouter
from sqlalchemy import select
from sqlalchemy.orm import Session

from quorum.api.dependencies import CurrentUserDep, SessionDep, VoteLedgerDep
from quorum.core.errors import NotFoundError
from quorum.core.security import UserID
from quorum.models import Comment, Post
from quorum.schemas.post import CommentResponse, PostResponse
from quorum.schemas.vote import MyVoteResponse, VoteCreate, VoteResponse
from quorum.services.votes import TargetKind, VoteTally, VoteTarget

router = APIRouter(prefix="/posts", tags=["posts"])


def _get_post_or_404(db: Session, post_id: int) -> Post:
    post = db.get(Post, post_id)
    if post is None:
        raise NotFoundError("Post not found")
    return post


@router.get("/{post_id}", response_model=PostResponse)
def get_post(post_id: int, db: SessionDep, ledger: VoteLedgerDep) -> PostResponse:
    """Return a post with its upvote and downvote counts."""
    post = _get_post_or_404(db, post_id)
    tally = ledger.tally(VoteTarget.post(post.id))
    return PostResponse(
        id=post.id,
        title=post.title,
        body=post.body,
        author_id=post.author_id,
        upvotes=tally.upvotes,
        downvotes=tally.downvotes,
        created_at=post.created_at,
    )


@router.get("/{post_id}/comments", response_model=list[CommentResponse])
def get_post_comments(
    post_id: int,
    db: SessionDep,
    ledger: VoteLedgerDep,
) -> list[CommentResponse]:
    """Return a post's comments, oldest first, with their vote counts."""
    _get_post_or_404(db, post_id)
    comments = db.execute(
        select(Comment)
        .where(Comment.post_id == post_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
    ).scalars().all()
    tallies = ledger.tally_many(TargetKind.COMMENT, (comment.id for comment in comments))
    responses = []
    for comment in comments:
        tally = tallies.get(comment.id, VoteTally())
        responses.append(
            CommentResponse(
                id=comment.id,
                body=comment.body,
                post_id=comment.post_id,
                author_id=comment.author_id,
                parent_comment_id=comment.parent_comment_id,
                upvotes=tally.upvotes,
                downvotes=tally.downvotes,
                created_at=comment.created_at,
            )
        )
    return responses


@router.post("/{post_id}/vote", response_model=VoteResponse)
def vote_post(
    post_id: int,
    vote_data: VoteCreate,
    current_user: CurrentUserDep,
    ledger: VoteLedgerDep,
) -> VoteResponse:
    """Upvote or downvote a post; repeating a vote removes it."""
    outcome = ledger.cast_vote(UserID(current_user.id), VoteTarget.post(post_id), vote_data.vote_type)
    return VoteResponse(message=outcome.value)


@router.get("/{post_id}/my-vote", response_model=MyVoteResponse)
def get_my_vote(
    post_id: int,
    current_user: CurrentUserDep,
    ledger: VoteLedgerDep,
) -> MyVoteResponse:
    """Get current user's vote on a specific post."""
    target = VoteTarget.post(post_id)
    ledger.ensure_target(target)
    return MyVoteResponse(direction=ledger.current_direction(UserID(current_user.id), target))
