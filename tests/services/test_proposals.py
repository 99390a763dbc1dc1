# mypy: ignore-errors
# tests/services/test_proposals.py
"""Tests for question proposals and their approval."""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from marginalia.core.security import Principal
from marginalia.models import Proposal, Question
from marginalia.schemas.proposal import ProposalCreate
from marginalia.schemas.question import Coord
from marginalia.services import proposals as proposal_service
from marginalia.services.errors import NotFoundError

ALICE = Principal(id=1001, username="alice")


@pytest.fixture()
def proposals(db_session):
    payload = ProposalCreate(
        id="doc-a",
        document_path="papers/a.pdf",
        coords=[Coord(start=0, end=5), Coord(start=10, end=20)],
    )
    return proposal_service.create_proposals(db_session, ALICE, payload)


def test_create_batch(db_session, proposals) -> None:
    """One proposal is stored per range, owned by the proposer."""
    assert [(p.start, p.end) for p in proposals] == [(0, 5), (10, 20)]
    assert all(p.user_id == ALICE.id for p in proposals)


def test_list_grouped_by_document(db_session, proposals) -> None:
    proposal_service.create_proposals(
        db_session, ALICE, ProposalCreate(id="doc-b", coords=[Coord(start=1, end=2)])
    )

    grouped = proposal_service.list_proposals_grouped(db_session)

    assert [group.id for group in grouped] == ["doc-a", "doc-b"]
    assert len(grouped[0].questions) == 2
    assert grouped[0].document_path == "papers/a.pdf"
    assert grouped[0].questions[0].username == "alice"


def test_update_coordinates(db_session, proposals) -> None:
    updated = proposal_service.update_proposal(db_session, proposals[0].id, Coord(start=3, end=4))

    assert (updated.start, updated.end) == (3, 4)


def test_delete_by_document(db_session, proposals) -> None:
    """Removing a document's proposals reports how many were removed."""
    assert proposal_service.delete_document_proposals(db_session, "doc-a") == 2

    with pytest.raises(NotFoundError):
        proposal_service.list_document_proposals(db_session, "doc-a")
    with pytest.raises(NotFoundError):
        proposal_service.delete_document_proposals(db_session, "doc-a")


def test_approve_moves_proposal_to_question(db_session, proposals) -> None:
    """After approval only the question exists."""
    proposal = proposals[0]

    question = proposal_service.approve_proposal(db_session, proposal.id)

    assert db_session.get(Proposal, proposal.id) is None
    stored = db_session.get(Question, question.id)
    assert (stored.document, stored.start, stored.end) == ("doc-a", 0, 5)
    assert stored.user_id == ALICE.id
    assert db_session.query(Proposal).count() == 1


def test_interrupted_approval_keeps_the_proposal(db_session, proposals, mocker) -> None:
    """A failure after the delete rolls everything back."""
    proposal_id = proposals[0].id
    mocker.patch.object(
        proposal_service,
        "_question_from_proposal",
        side_effect=SQLAlchemyError("connection lost"),
    )

    with pytest.raises(SQLAlchemyError):
        proposal_service.approve_proposal(db_session, proposal_id)

    db_session.expire_all()
    survivor = db_session.get(Proposal, proposal_id)
    assert survivor is not None
    assert (survivor.start, survivor.end) == (0, 5)
    assert db_session.query(Question).count() == 0


def test_approve_unknown_proposal(db_session) -> None:
    with pytest.raises(NotFoundError):
        proposal_service.approve_proposal(db_session, 12345)
