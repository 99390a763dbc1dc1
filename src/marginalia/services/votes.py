"""Vote ledger operations and read-time aggregation."""
from __future__ import annotations

import logging
from collections.abc import Collection
from enum import IntEnum

from sqlalchemy import case, delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from marginalia.db.time import utcnow
from marginalia.models import Answer, Vote
from marginalia.services.errors import InvariantViolationError, NotFoundError, ReplyVoteError

logger = logging.getLogger(__name__)


class VoteValue(IntEnum):
    """Signed vote value; ``NONE`` means no stored vote."""

    DOWN = -1
    NONE = 0
    UP = 1


def aggregate_votes(db: Session, answer_id: int) -> tuple[int, int]:
    """Return ``(upvotes, downvotes)`` for an answer, counted from the ledger."""
    return aggregate_votes_for(db, [answer_id]).get(answer_id, (0, 0))


def aggregate_votes_for(db: Session, answer_ids: Collection[int]) -> dict[int, tuple[int, int]]:
    """Return vote counts for several answers in one grouped query.

    Answers without votes are absent from the mapping.
    """
    if not answer_ids:
        return {}

    rows = db.execute(
        select(
            Vote.answer_id,
            func.count(case((Vote.value == VoteValue.UP, 1))),
            func.count(case((Vote.value == VoteValue.DOWN, 1))),
        )
        .where(Vote.answer_id.in_(answer_ids))
        .group_by(Vote.answer_id)
    ).all()
    return {answer_id: (int(up), int(down)) for answer_id, up, down in rows}


def get_user_vote(db: Session, answer_id: int, user_id: int | None) -> VoteValue:
    """Return the caller's stored vote, or ``NONE`` when there is none."""
    return get_user_votes(db, [answer_id], user_id).get(answer_id, VoteValue.NONE)


def get_user_votes(
    db: Session,
    answer_ids: Collection[int],
    user_id: int | None,
) -> dict[int, VoteValue]:
    """Return the caller's votes on several answers; unauthenticated callers have none."""
    if user_id is None or not answer_ids:
        return {}

    rows = db.execute(
        select(Vote.answer_id, Vote.value).where(
            Vote.answer_id.in_(answer_ids),
            Vote.user_id == user_id,
        )
    ).all()
    return {answer_id: VoteValue(value) for answer_id, value in rows}


def get_vote(db: Session, answer_id: int, user_id: int) -> Vote:
    """Return the stored vote row for ``(answer, user)``."""
    vote = db.get(Vote, (answer_id, user_id))
    if vote is None:
        raise NotFoundError("the referenced vote does not exist")
    return vote


def _upsert_vote_statement(db: Session, answer_id: int, user_id: int, value: int):
    dialect = db.get_bind().dialect.name
    insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
    stmt = insert(Vote).values(answer_id=answer_id, user_id=user_id, value=value)
    return stmt.on_conflict_do_update(
        index_elements=[Vote.answer_id, Vote.user_id],
        set_={"value": stmt.excluded.value, "updated_at": utcnow()},
    )


def set_vote(db: Session, answer_id: int, user_id: int, value: int) -> Vote | None:
    """Cast, change or retract the caller's vote on a root answer.

    Args:
        db: Database session.
        answer_id: Target answer; must not be a reply.
        user_id: Voting user.
        value: ``1`` or ``-1`` to upsert the vote, ``0`` to retract it.

    Returns:
        The stored vote, or None after a retraction.

    Raises:
        NotFoundError: If the answer does not exist, or a retraction finds no vote.
        ReplyVoteError: If the answer is a reply.
        InvariantViolationError: If ``value`` is not one of 1, 0, -1.
    """
    answer = db.get(Answer, answer_id)
    if answer is None:
        raise NotFoundError("the referenced answer does not exist")
    if answer.is_reply:
        raise ReplyVoteError("only root answers can be voted")

    try:
        vote_value = VoteValue(value)
    except ValueError as err:
        raise InvariantViolationError("the vote value must be either 1, -1 or 0") from err

    if vote_value is VoteValue.NONE:
        result = db.execute(
            delete(Vote).where(Vote.answer_id == answer_id, Vote.user_id == user_id)
        )
        if result.rowcount == 0:
            db.rollback()
            raise NotFoundError("no vote found to delete")
        db.commit()
        logger.debug("User %d retracted vote on answer %d", user_id, answer_id)
        return None

    db.execute(_upsert_vote_statement(db, answer_id, user_id, int(vote_value)))
    db.commit()
    return db.get(Vote, (answer_id, user_id), populate_existing=True)
