# src/marginalia/models/vote.py
"""Models capturing votes on root answers."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Integer, SmallInteger
from sqlalchemy.orm import Mapped, mapped_column

from marginalia.db.session import Base
from marginalia.db.time import utcnow


class Vote(Base):
    """Per-user vote on an answer.

    Counts are never stored on the answer; they are aggregated from this
    ledger at read time. A retracted vote is a deleted row.
    """

    __tablename__ = "votes"
    __table_args__ = (
        CheckConstraint("value IN (1, -1)", name="ck_votes_value"),
        Index("ix_votes_answer_id", "answer_id"),
    )

    answer_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("answers.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id"),
        primary_key=True,
    )

    # Composite primary key prevents duplicate votes from the same user.

    # 1 = upvote, -1 = downvote.
    value: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
