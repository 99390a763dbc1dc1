"""Question proposals and their promotion to questions."""
from __future__ import annotations

import logging
from itertools import groupby

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marginalia.core.security import Principal
from marginalia.models import Proposal, Question, User
from marginalia.schemas.proposal import DocumentProposalView, ProposalCreate, ProposalView
from marginalia.schemas.question import Coord
from marginalia.services.errors import NotFoundError
from marginalia.services.users import get_or_create_user, public_avatar_url

logger = logging.getLogger(__name__)


def to_view(proposal: Proposal, owner: User | None) -> ProposalView:
    """Build the API representation of a proposal."""
    return ProposalView(
        id=proposal.id,
        created_at=proposal.created_at,
        updated_at=proposal.updated_at,
        document=proposal.document,
        document_path=proposal.document_path,
        start=proposal.start,
        end=proposal.end,
        username=owner.username if owner else "",
        user_avatar_url=public_avatar_url(proposal.user_id),
    )


def _with_owners(db: Session, stmt) -> list[ProposalView]:
    rows = db.execute(stmt.outerjoin(User, User.id == Proposal.user_id)).all()
    return [to_view(proposal, owner) for proposal, owner in rows]


def create_proposals(db: Session, principal: Principal, payload: ProposalCreate) -> list[Proposal]:
    """Store one proposal per coordinate range of the payload's document."""
    user = get_or_create_user(db, principal.id, principal.username)
    proposals = [
        Proposal(
            document=payload.id,
            document_path=payload.document_path,
            start=coord.start,
            end=coord.end,
            user_id=user.id,
        )
        for coord in payload.coords
    ]
    db.add_all(proposals)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    for proposal in proposals:
        db.refresh(proposal)
    logger.info("User %d proposed %d questions on %s", user.id, len(proposals), payload.id)
    return proposals


def list_proposals_grouped(db: Session) -> list[DocumentProposalView]:
    """Return every proposal, grouped by document."""
    views = _with_owners(
        db, select(Proposal, User).order_by(Proposal.document, Proposal.id)
    )
    grouped = []
    for document, items in groupby(views, key=lambda view: view.document):
        items = list(items)
        grouped.append(
            DocumentProposalView(
                id=document,
                document_path=items[0].document_path,
                questions=items,
            )
        )
    return grouped


def get_proposal(db: Session, proposal_id: int) -> Proposal:
    proposal = db.get(Proposal, proposal_id)
    if proposal is None:
        raise NotFoundError("the referenced proposal does not exist")
    return proposal


def get_proposal_view(db: Session, proposal_id: int) -> ProposalView:
    proposal = get_proposal(db, proposal_id)
    return to_view(proposal, db.get(User, proposal.user_id))


def update_proposal(db: Session, proposal_id: int, coords: Coord) -> Proposal:
    """Move a proposal to a new coordinate range."""
    proposal = get_proposal(db, proposal_id)
    proposal.start = coords.start
    proposal.end = coords.end
    db.commit()
    db.refresh(proposal)
    return proposal


def delete_proposal(db: Session, proposal_id: int) -> None:
    proposal = get_proposal(db, proposal_id)
    db.delete(proposal)
    db.commit()
    logger.info("Proposal %d rejected", proposal_id)


def list_document_proposals(db: Session, document: str) -> list[ProposalView]:
    """Return the proposals of one document in creation order."""
    views = _with_owners(
        db,
        select(Proposal, User).where(Proposal.document == document).order_by(Proposal.id),
    )
    if not views:
        raise NotFoundError("no proposals found for this document")
    return views


def delete_document_proposals(db: Session, document: str) -> int:
    """Delete every proposal of ``document`` and return how many were removed."""
    result = db.execute(delete(Proposal).where(Proposal.document == document))
    if result.rowcount == 0:
        db.rollback()
        raise NotFoundError("no proposals found for this document")
    db.commit()
    logger.info("Removed %d proposals of %s", result.rowcount, document)
    return result.rowcount


def _question_from_proposal(proposal: Proposal) -> Question:
    return Question(
        document=proposal.document,
        start=proposal.start,
        end=proposal.end,
        user_id=proposal.user_id,
    )


def approve_proposal(db: Session, proposal_id: int) -> Question:
    """Replace a proposal with the question it describes.

    The proposal is deleted and the question inserted in one transaction:
    on any database failure both changes are rolled back and the proposal
    stays in place.
    """
    proposal = get_proposal(db, proposal_id)
    try:
        db.delete(proposal)
        db.flush()
        question = _question_from_proposal(proposal)
        db.add(question)
        db.flush()
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Approval of proposal %d rolled back", proposal_id)
        raise
    db.refresh(question)
    logger.info("Proposal %d approved as question %d", proposal_id, question.id)
    return question
