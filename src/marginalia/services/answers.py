"""Answer lifecycle: creation, edits, deletion and edit history.

Deletion and edits are guarded by a conditional ``UPDATE ... WHERE state =
VISIBLE`` so two concurrent requests cannot both move the same answer out
of the visible state.
"""
from __future__ import annotations

import html
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marginalia.core.security import Principal
from marginalia.db.time import utcnow
from marginalia.models import Answer, AnswerState, AnswerVersion, Question
from marginalia.schemas.answer import AnswerCreate
from marginalia.services.errors import (
    AlreadyDeletedError,
    DeletedContentError,
    NotFoundError,
    ParentMismatchError,
    PermissionDeniedError,
)
from marginalia.services.users import get_or_create_user

logger = logging.getLogger(__name__)


def get_answer(db: Session, answer_id: int) -> Answer:
    """Return an answer by id, whatever its state."""
    answer = db.get(Answer, answer_id)
    if answer is None:
        raise NotFoundError("the referenced answer does not exist")
    return answer


def _check_author_or_admin(answer: Answer, principal: Principal) -> None:
    if answer.user_id != principal.id and not principal.is_admin:
        raise PermissionDeniedError("you are not allowed to modify this answer")


def create_answer(db: Session, principal: Principal, payload: AnswerCreate) -> Answer:
    """Post a root answer or a reply together with its first version.

    Raises:
        NotFoundError: If the question or the parent answer does not exist.
        ParentMismatchError: If the parent belongs to another question.
    """
    user = get_or_create_user(db, principal.id, principal.username)

    question = db.get(Question, payload.question)
    if question is None or question.deleted_at is not None:
        raise NotFoundError("the referenced question does not exist")

    if payload.parent is not None:
        parent = db.get(Answer, payload.parent)
        if parent is None:
            raise NotFoundError("the referenced parent answer does not exist")
        if parent.question_id != question.id:
            raise ParentMismatchError("the parent answer belongs to a different question")

    answer = Answer(
        question_id=question.id,
        parent_id=payload.parent,
        user_id=user.id,
        anonymous=payload.anonymous,
        state=AnswerState.VISIBLE,
    )
    answer.versions.append(
        AnswerVersion(content=html.escape(payload.content), editor_id=user.id)
    )
    db.add(answer)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(answer)
    logger.debug("User %d posted answer %d on question %d", user.id, answer.id, question.id)
    return answer


def edit_answer(db: Session, answer_id: int, principal: Principal, content: str) -> Answer:
    """Append a new version of a visible answer.

    Only the author or an admin may edit. An edit by an admin who is not the
    author marks the answer as edited by an administrator.

    Raises:
        NotFoundError: If the answer does not exist.
        PermissionDeniedError: If the caller is neither author nor admin.
        DeletedContentError: If the answer is no longer visible.
    """
    answer = get_answer(db, answer_id)
    _check_author_or_admin(answer, principal)
    if not answer.is_visible:
        raise DeletedContentError("cannot modify deleted content")

    editor = get_or_create_user(db, principal.id, principal.username)
    by_other = answer.user_id != editor.id

    result = db.execute(
        update(Answer)
        .where(Answer.id == answer_id, Answer.state == AnswerState.VISIBLE)
        .values(edited_by_admin=by_other, updated_at=utcnow())
    )
    if result.rowcount == 0:
        db.rollback()
        raise DeletedContentError("cannot modify deleted content")

    db.add(AnswerVersion(answer_id=answer_id, content=html.escape(content), editor_id=editor.id))
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(answer)
    if by_other:
        logger.info("Admin %d edited answer %d of user %d", editor.id, answer_id, answer.user_id)
    return answer


def delete_answer(db: Session, answer_id: int, principal: Principal) -> Answer:
    """Move a visible answer to its terminal deleted state.

    The author's deletion yields ``DELETED_BY_USER``; an admin deleting
    someone else's answer yields ``DELETED_BY_ADMIN``.

    Raises:
        NotFoundError: If the answer does not exist.
        PermissionDeniedError: If the caller is neither author nor admin.
        AlreadyDeletedError: If the answer is not visible any more.
    """
    answer = get_answer(db, answer_id)
    _check_author_or_admin(answer, principal)

    if answer.user_id == principal.id:
        target = AnswerState.DELETED_BY_USER
    else:
        target = AnswerState.DELETED_BY_ADMIN

    now = utcnow()
    result = db.execute(
        update(Answer)
        .where(Answer.id == answer_id, Answer.state == AnswerState.VISIBLE)
        .values(state=target, deleted_at=now, updated_at=now)
    )
    if result.rowcount == 0:
        db.rollback()
        raise AlreadyDeletedError("the answer has already been deleted")
    db.commit()
    db.refresh(answer)
    logger.info("Answer %d deleted by %d (%s)", answer_id, principal.id, target.name)
    return answer


def list_versions(db: Session, answer_id: int, principal: Principal) -> list[AnswerVersion]:
    """Return an answer's edit history, oldest first."""
    answer = get_answer(db, answer_id)
    _check_author_or_admin(answer, principal)
    if not answer.is_visible:
        raise DeletedContentError("deleted content has no history")
    return list(
        db.scalars(
            select(AnswerVersion)
            .where(AnswerVersion.answer_id == answer_id)
            .order_by(AnswerVersion.id)
        )
    )
