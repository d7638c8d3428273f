"""Vote ledger: one vote per user per post or comment.

Casting the same direction twice removes the vote; casting the opposite
direction switches it. Counts are always derived from the ledger rows.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import InstrumentedAttribute, Session

from quorum.core.errors import ConstraintViolation, NotFoundError, TransientError, ValidationError
from quorum.core.security import UserID
from quorum.models import DOWNVOTE, UPVOTE, Comment, Post, Vote

logger = logging.getLogger(__name__)

NO_VOTE = 0


class TargetKind(str, enum.Enum):
    """Kinds of content a vote can point at."""

    POST = "post"
    COMMENT = "comment"


@dataclass(frozen=True)
class VoteTarget:
    """A post or comment identified by primary key."""

    kind: TargetKind
    id: int

    @classmethod
    def post(cls, post_id: int) -> VoteTarget:
        return cls(TargetKind.POST, post_id)

    @classmethod
    def comment(cls, comment_id: int) -> VoteTarget:
        return cls(TargetKind.COMMENT, comment_id)

    @property
    def column(self) -> InstrumentedAttribute[int | None]:
        """Ledger column holding this target's id."""
        return Vote.post_id if self.kind is TargetKind.POST else Vote.comment_id


class VoteOutcome(str, enum.Enum):
    """Result of a cast, phrased for API responses."""

    RECORDED = "Vote recorded"
    UPDATED = "Vote updated"
    REMOVED = "Vote removed"


@dataclass(frozen=True)
class VoteTally:
    """Upvote and downvote counts for one target."""

    upvotes: int = 0
    downvotes: int = 0

    @property
    def score(self) -> int:
        return self.upvotes - self.downvotes


def transition(current: int, direction: int) -> tuple[int, VoteOutcome]:
    """Return the next stored direction and the outcome of casting ``direction``.

    ``current`` is the stored vote (``NO_VOTE`` when there is none).
    """
    if current == NO_VOTE:
        return direction, VoteOutcome.RECORDED
    if current == direction:
        return NO_VOTE, VoteOutcome.REMOVED
    return direction, VoteOutcome.UPDATED


class VoteLedger:
    """Apply toggle/switch votes atomically and count them."""

    def __init__(self, db: Session, *, max_conflict_retries: int = 3) -> None:
        self.db = db
        self.max_conflict_retries = max_conflict_retries

    def cast_vote(self, voter_id: UserID, target: VoteTarget, direction: int) -> VoteOutcome:
        """Cast ``direction`` (+1 or -1) on ``target`` for ``voter_id``.

        The read and the write happen in one transaction with the existing
        row locked. If a concurrent request inserts the row first, the
        savepoint is rolled back and the transition is re-applied against
        the row that won.

        Raises:
            ValidationError: if ``direction`` is not +1 or -1.
            NotFoundError: if the target does not exist.
            TransientError: if conflicts persist past the retry budget.
        """
        if direction not in (UPVOTE, DOWNVOTE):
            raise ValidationError("Vote type must be -1 or 1")

        for attempt in range(1, self.max_conflict_retries + 1):
            self.ensure_target(target)
            try:
                outcome = self._apply(voter_id, target, direction)
            except ConstraintViolation:
                logger.info(
                    "Concurrent vote on %s %s by user_id=%s, re-reading (attempt %d)",
                    target.kind.value,
                    target.id,
                    voter_id,
                    attempt,
                )
                continue
            self.db.commit()
            return outcome

        self.db.rollback()
        logger.error(
            "Vote on %s %s by user_id=%s still conflicting after %d attempts",
            target.kind.value,
            target.id,
            voter_id,
            self.max_conflict_retries,
        )
        raise TransientError("Vote could not be recorded, please retry")

    def _find_vote(self, voter_id: UserID, target: VoteTarget) -> Vote | None:
        stmt = (
            select(Vote)
            .where(Vote.user_id == voter_id, target.column == target.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def _apply(self, voter_id: UserID, target: VoteTarget, direction: int) -> VoteOutcome:
        existing = self._find_vote(voter_id, target)
        current = existing.vote_type if existing is not None else NO_VOTE
        next_direction, outcome = transition(current, direction)

        if existing is None:
            vote = Vote(user_id=voter_id, vote_type=next_direction)
            setattr(vote, target.column.key, target.id)
            try:
                with self.db.begin_nested():
                    self.db.add(vote)
            except IntegrityError as err:
                raise ConstraintViolation(f"votes(user_id, {target.column.key})") from err
        elif next_direction == NO_VOTE:
            self.db.delete(existing)
            self.db.flush()
        else:
            existing.vote_type = next_direction
            self.db.flush()
        return outcome

    def ensure_target(self, target: VoteTarget) -> None:
        """Raise NotFoundError unless the post or comment exists."""
        model = Post if target.kind is TargetKind.POST else Comment
        if self.db.execute(select(model.id).where(model.id == target.id)).first() is None:
            raise NotFoundError(f"{target.kind.value.capitalize()} not found")

    def current_direction(self, voter_id: UserID, target: VoteTarget) -> int:
        """Return the voter's stored direction on ``target``, 0 if none."""
        vote_type = self.db.execute(
            select(Vote.vote_type).where(Vote.user_id == voter_id, target.column == target.id)
        ).scalar_one_or_none()
        return vote_type if vote_type is not None else NO_VOTE

    def tally(self, target: VoteTarget) -> VoteTally:
        """Count the ledger rows for ``target`` by vote type."""
        return self.tally_many(target.kind, [target.id]).get(target.id, VoteTally())

    def tally_many(self, kind: TargetKind, ids: Iterable[int]) -> dict[int, VoteTally]:
        """Count ledger rows for several targets of one kind in a single query.

        Targets without votes are absent from the result.
        """
        id_list = list(ids)
        if not id_list:
            return {}
        column = VoteTarget(kind, 0).column
        stmt = (
            select(
                column,
                func.coalesce(func.sum(case((Vote.vote_type == UPVOTE, 1), else_=0)), 0),
                func.coalesce(func.sum(case((Vote.vote_type == DOWNVOTE, 1), else_=0)), 0),
            )
            .where(column.in_(id_list))
            .group_by(column)
        )
        return {
            target_id: VoteTally(upvotes=int(up), downvotes=int(down))
            for target_id, up, down in self.db.execute(stmt)
        }
