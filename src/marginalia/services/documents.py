"""Documents and the questions anchored to them."""
from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marginalia.core.security import Principal
from marginalia.db.time import utcnow
from marginalia.models import Answer, AnswerState, Question
from marginalia.schemas.question import Coord, QuestionView
from marginalia.services.errors import NotFoundError
from marginalia.services.users import get_or_create_user

logger = logging.getLogger(__name__)


def create_document_questions(
    db: Session,
    principal: Principal,
    document: str,
    coords: list[Coord],
) -> list[Question]:
    """Create one question per coordinate range of ``document``."""
    user = get_or_create_user(db, principal.id, principal.username)
    questions = [
        Question(document=document, start=coord.start, end=coord.end, user_id=user.id)
        for coord in coords
    ]
    db.add_all(questions)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    for question in questions:
        db.refresh(question)
    logger.info("User %d created %d questions on %s", user.id, len(questions), document)
    return questions


def list_document_questions(db: Session, document: str) -> list[Question]:
    """Return the live questions of ``document`` in creation order."""
    questions = list(
        db.scalars(
            select(Question)
            .where(Question.document == document, Question.deleted_at.is_(None))
            .order_by(Question.id)
        )
    )
    if not questions:
        raise NotFoundError("no questions found for this document")
    return questions


def get_question(db: Session, question_id: int) -> Question:
    """Return a question that has not been removed."""
    question = db.get(Question, question_id)
    if question is None or question.deleted_at is not None:
        raise NotFoundError("the referenced question does not exist")
    return question


def delete_question(db: Session, question_id: int) -> Question:
    """Remove a question and mark its visible answers as deleted by an admin."""
    question = get_question(db, question_id)
    now = utcnow()
    question.deleted_at = now
    db.execute(
        update(Answer)
        .where(Answer.question_id == question_id, Answer.state == AnswerState.VISIBLE)
        .values(state=AnswerState.DELETED_BY_ADMIN, deleted_at=now, updated_at=now)
    )
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    logger.info("Question %d removed", question_id)
    return question


def question_summary(question: Question) -> QuestionView:
    """Return a question's view without its answer tree."""
    return QuestionView(
        id=question.id,
        created_at=question.created_at,
        updated_at=question.updated_at,
        document=question.document,
        start=question.start,
        end=question.end,
    )
