# src/marginalia/models/answer.py
"""SQLAlchemy models for answers, replies and their edit history."""

from __future__ import annotations

from datetime import datetime
from enum import IntEnum
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, SmallInteger, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marginalia.db.session import Base
from marginalia.db.time import utcnow

if TYPE_CHECKING:
    from .question import Question
    from .user import User


class AnswerState(IntEnum):
    """Visibility state of an answer; both deleted states are terminal."""

    VISIBLE = 0
    DELETED_BY_USER = 1
    DELETED_BY_ADMIN = 2


class Answer(Base):
    """A node in a question's reply tree.

    Root answers have ``parent_id = NULL``; replies point at another answer
    of the same question. Content is not stored here: the current text is
    the newest :class:`AnswerVersion` row.
    """

    __tablename__ = "answers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    parent_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("answers.id"),
        nullable=True,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id"),
        nullable=False,
    )
    anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # 0 = visible, 1 = deleted by its author, 2 = deleted by an administrator.
    state: Mapped[int] = mapped_column(
        SmallInteger,
        nullable=False,
        default=AnswerState.VISIBLE,
    )
    edited_by_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

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
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    question: Mapped[Question] = relationship("Question", back_populates="answers")
    user: Mapped[User] = relationship("User")
    versions: Mapped[list[AnswerVersion]] = relationship(
        "AnswerVersion",
        back_populates="answer",
        cascade="all, delete-orphan",
        order_by="AnswerVersion.id",
    )

    @property
    def is_visible(self) -> bool:
        """Return True while the answer has not been deleted."""
        return self.state == AnswerState.VISIBLE

    @property
    def is_reply(self) -> bool:
        """Return True if the answer is nested under another answer."""
        return self.parent_id is not None


class AnswerVersion(Base):
    """Immutable snapshot of an answer's content; the newest row is current."""

    __tablename__ = "answer_versions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    answer_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("answers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    editor_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("users.id"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    answer: Mapped[Answer] = relationship("Answer", back_populates="versions")
