# src/marginalia/api/v1/endpoints/questions.py
"""Question endpoints for the Marginalia API."""

from fastapi import APIRouter, status

from marginalia.api.v1.dependencies import MemberDep, OptionalPrincipalDep, SessionDep
from marginalia.core.settings import settings
from marginalia.schemas.question import QuestionView
from marginalia.services.documents import delete_question, get_question
from marginalia.services.tree import render_question

router = APIRouter(prefix="/questions", tags=["questions"])


@router.get("/{question_id}", response_model=QuestionView)
async def read_question(
    question_id: int,
    principal: OptionalPrincipalDep,
    db: SessionDep,
) -> QuestionView:
    """Return a question with its answers and their replies."""
    question = get_question(db, question_id)
    return render_question(db, question, principal, settings.question_replies_depth)


@router.delete("/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_question(
    question_id: int,
    principal: MemberDep,
    db: SessionDep,
) -> None:
    """Remove a question; its answers are marked as deleted by an admin."""
    delete_question(db, question_id)
