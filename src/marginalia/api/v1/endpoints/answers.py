# src/marginalia/api/v1/endpoints/answers.py
"""Answer-related endpoints for the Marginalia API."""

from fastapi import APIRouter, status

from marginalia.api.v1.dependencies import (
    ActivePrincipalDep,
    OptionalPrincipalDep,
    PrincipalDep,
    SessionDep,
)
from marginalia.core.settings import settings
from marginalia.schemas.answer import AnswerCreate, AnswerUpdate, AnswerVersionView, AnswerView
from marginalia.services import answers as answer_service
from marginalia.services.tree import render_answer, render_replies

router = APIRouter(prefix="/answers", tags=["answers"])


@router.post("", response_model=AnswerView, status_code=status.HTTP_201_CREATED)
async def create_answer(
    payload: AnswerCreate,
    principal: ActivePrincipalDep,
    db: SessionDep,
) -> AnswerView:
    """Answer a question, or reply to an answer when ``parent`` is set."""
    answer = answer_service.create_answer(db, principal, payload)
    return render_answer(db, answer, principal)


@router.patch("/{answer_id}", response_model=AnswerView)
async def edit_answer(
    answer_id: int,
    payload: AnswerUpdate,
    principal: ActivePrincipalDep,
    db: SessionDep,
) -> AnswerView:
    """Replace an answer's content, keeping the previous text in its history."""
    answer = answer_service.edit_answer(db, answer_id, principal, payload.content)
    return render_answer(db, answer, principal)


@router.delete("/{answer_id}", response_model=AnswerView)
async def delete_answer(
    answer_id: int,
    principal: ActivePrincipalDep,
    db: SessionDep,
) -> AnswerView:
    """Delete an answer; the author and admins only."""
    answer = answer_service.delete_answer(db, answer_id, principal)
    return render_answer(db, answer, principal)


@router.get("/{answer_id}/replies", response_model=list[AnswerView])
async def get_replies(
    answer_id: int,
    principal: OptionalPrincipalDep,
    db: SessionDep,
) -> list[AnswerView]:
    """Return the replies of an answer."""
    answer = answer_service.get_answer(db, answer_id)
    return render_replies(db, answer, principal, settings.answer_replies_depth)


@router.get("/{answer_id}/versions", response_model=list[AnswerVersionView])
async def get_versions(
    answer_id: int,
    principal: PrincipalDep,
    db: SessionDep,
) -> list[AnswerVersionView]:
    versions = answer_service.list_versions(db, answer_id, principal)
    return [AnswerVersionView.model_validate(version) for version in versions]
