# mypy: ignore-errors
# tests/services/test_votes.py
"""Tests for the vote ledger and its aggregation."""

import pytest

from marginalia.models import Vote
from marginalia.services.errors import InvariantViolationError, NotFoundError, ReplyVoteError
from marginalia.services.votes import (
    VoteValue,
    aggregate_votes,
    aggregate_votes_for,
    get_user_vote,
    get_vote,
    set_vote,
)


@pytest.fixture()
def root_answer(make_answer, question, alice):
    return make_answer(question, alice)


def test_upvote_is_counted(db_session, root_answer, bob) -> None:
    """An upvote is stored and shows up in the aggregate."""
    vote = set_vote(db_session, root_answer.id, bob.id, 1)

    assert vote.value == 1
    assert aggregate_votes(db_session, root_answer.id) == (1, 0)
    assert get_user_vote(db_session, root_answer.id, bob.id) is VoteValue.UP


def test_changing_a_vote_updates_the_same_row(db_session, root_answer, bob) -> None:
    """Voting again replaces the previous value instead of adding a row."""
    set_vote(db_session, root_answer.id, bob.id, 1)
    vote = set_vote(db_session, root_answer.id, bob.id, -1)

    assert vote.value == -1
    assert db_session.query(Vote).count() == 1
    assert aggregate_votes(db_session, root_answer.id) == (0, 1)


def test_retracting_a_vote_removes_its_contribution(db_session, root_answer, alice, bob) -> None:
    """After voting and retracting, the user has no vote and is not counted."""
    set_vote(db_session, root_answer.id, alice.id, 1)
    set_vote(db_session, root_answer.id, bob.id, 1)

    assert set_vote(db_session, root_answer.id, bob.id, 0) is None

    assert get_user_vote(db_session, root_answer.id, bob.id) is VoteValue.NONE
    assert aggregate_votes(db_session, root_answer.id) == (1, 0)
    with pytest.raises(NotFoundError):
        get_vote(db_session, root_answer.id, bob.id)


def test_retracting_without_a_vote_is_not_found(db_session, root_answer, bob) -> None:
    """There is nothing to retract when no vote was cast."""
    with pytest.raises(NotFoundError) as excinfo:
        set_vote(db_session, root_answer.id, bob.id, 0)

    assert excinfo.value.detail == "no vote found to delete"


@pytest.mark.parametrize("value", [1, 0, -1])
def test_replies_cannot_be_voted(db_session, make_answer, question, root_answer, bob, value) -> None:
    """Every vote value on a reply is an invariant violation."""
    reply = make_answer(question, bob, parent=root_answer)

    with pytest.raises(ReplyVoteError):
        set_vote(db_session, reply.id, bob.id, value)

    assert db_session.query(Vote).count() == 0


def test_vote_on_missing_answer(db_session, bob) -> None:
    """Voting on an unknown answer is a not-found error."""
    with pytest.raises(NotFoundError):
        set_vote(db_session, 999, bob.id, 1)


def test_out_of_range_vote_value(db_session, root_answer, bob) -> None:
    """Only 1, 0 and -1 are accepted."""
    with pytest.raises(InvariantViolationError):
        set_vote(db_session, root_answer.id, bob.id, 2)


def test_aggregate_for_several_answers(db_session, make_answer, question, alice, bob) -> None:
    """Counts are grouped per answer; answers without votes are absent."""
    first = make_answer(question, alice)
    second = make_answer(question, alice)
    third = make_answer(question, alice)
    set_vote(db_session, first.id, alice.id, 1)
    set_vote(db_session, first.id, bob.id, -1)
    set_vote(db_session, second.id, bob.id, 1)

    counts = aggregate_votes_for(db_session, [first.id, second.id, third.id])

    assert counts == {first.id: (1, 1), second.id: (1, 0)}


def test_anonymous_viewer_has_no_vote(db_session, root_answer, bob) -> None:
    """An unauthenticated viewer never has a stored vote."""
    set_vote(db_session, root_answer.id, bob.id, 1)

    assert get_user_vote(db_session, root_answer.id, None) is VoteValue.NONE
