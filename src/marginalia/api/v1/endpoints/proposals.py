# src/marginalia/api/v1/endpoints/proposals.py
"""Question proposal endpoints for the Marginalia API."""

from fastapi import APIRouter, status

from marginalia.api.v1.dependencies import (
    ActivePrincipalDep,
    AdminDep,
    MemberDep,
    SessionDep,
)
from marginalia.models import User
from marginalia.schemas.proposal import (
    DocumentProposalView,
    ProposalCreate,
    ProposalUpdate,
    ProposalView,
)
from marginalia.schemas.question import QuestionView
from marginalia.services import proposals as proposal_service
from marginalia.services.documents import question_summary

router = APIRouter(prefix="/proposals", tags=["proposals"])


@router.post("", response_model=list[ProposalView], status_code=status.HTTP_201_CREATED)
async def create_proposals(
    payload: ProposalCreate,
    principal: ActivePrincipalDep,
    db: SessionDep,
) -> list[ProposalView]:
    """Propose one or more questions on a document."""
    proposals = proposal_service.create_proposals(db, principal, payload)
    owner = db.get(User, principal.id)
    return [proposal_service.to_view(proposal, owner) for proposal in proposals]


@router.get("", response_model=list[DocumentProposalView])
async def list_proposals(principal: MemberDep, db: SessionDep) -> list[DocumentProposalView]:
    """List every pending proposal grouped by document."""
    return proposal_service.list_proposals_grouped(db)


@router.get("/documents/{document_id}", response_model=list[ProposalView])
async def list_document_proposals(
    document_id: str,
    principal: AdminDep,
    db: SessionDep,
) -> list[ProposalView]:
    return proposal_service.list_document_proposals(db, document_id)


@router.delete("/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document_proposals(
    document_id: str,
    principal: AdminDep,
    db: SessionDep,
) -> None:
    """Reject every proposal of a document."""
    proposal_service.delete_document_proposals(db, document_id)


@router.get("/{proposal_id}", response_model=ProposalView)
async def read_proposal(proposal_id: int, principal: MemberDep, db: SessionDep) -> ProposalView:
    return proposal_service.get_proposal_view(db, proposal_id)


@router.patch("/{proposal_id}", response_model=ProposalView)
async def update_proposal(
    proposal_id: int,
    payload: ProposalUpdate,
    principal: MemberDep,
    db: SessionDep,
) -> ProposalView:
    """Move a proposal to another range of its document."""
    proposal_service.update_proposal(db, proposal_id, payload.coords)
    return proposal_service.get_proposal_view(db, proposal_id)


@router.delete("/{proposal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_proposal(proposal_id: int, principal: MemberDep, db: SessionDep) -> None:
    """Reject a proposal."""
    proposal_service.delete_proposal(db, proposal_id)


@router.post(
    "/{proposal_id}/approve",
    response_model=QuestionView,
    status_code=status.HTTP_201_CREATED,
)
async def approve_proposal(
    proposal_id: int,
    principal: MemberDep,
    db: SessionDep,
) -> QuestionView:
    """Turn a proposal into a question."""
    question = proposal_service.approve_proposal(db, proposal_id)
    return question_summary(question)
