# src/marginalia/api/v1/endpoints/documents.py
"""Document endpoints for the Marginalia API."""

from fastapi import APIRouter, status

from marginalia.api.v1.dependencies import MemberDep, SessionDep
from marginalia.schemas.question import DocumentCreate, DocumentView
from marginalia.services.documents import (
    create_document_questions,
    list_document_questions,
    question_summary,
)

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("", response_model=DocumentView, status_code=status.HTTP_201_CREATED)
async def create_document(
    payload: DocumentCreate,
    principal: MemberDep,
    db: SessionDep,
) -> DocumentView:
    """Create the questions of a document from a list of ranges."""
    questions = create_document_questions(db, principal, payload.id, payload.coords)
    return DocumentView(
        id=payload.id,
        questions=[question_summary(question) for question in questions],
    )


@router.get("/{document_id}", response_model=DocumentView)
async def read_document(document_id: str, db: SessionDep) -> DocumentView:
    questions = list_document_questions(db, document_id)
    return DocumentView(
        id=document_id,
        questions=[question_summary(question) for question in questions],
    )
