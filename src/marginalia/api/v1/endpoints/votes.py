# src/marginalia/api/v1/endpoints/votes.py
"""Vote-related endpoints for the Marginalia API."""

from fastapi import APIRouter

from marginalia.api.v1.dependencies import ActivePrincipalDep, PrincipalDep, SessionDep
from marginalia.schemas.vote import VoteRequest, VoteResponse
from marginalia.services.users import get_or_create_user
from marginalia.services.votes import VoteValue, get_vote, set_vote

router = APIRouter(prefix="/answers", tags=["votes"])


@router.post("/{answer_id}/vote", response_model=VoteResponse)
async def cast_vote(
    answer_id: int,
    payload: VoteRequest,
    principal: ActivePrincipalDep,
    db: SessionDep,
) -> VoteResponse:
    """Upvote (1), downvote (-1) or retract (0) a vote on a root answer."""
    user = get_or_create_user(db, principal.id, principal.username)
    vote = set_vote(db, answer_id, user.id, payload.vote)
    if vote is None:
        return VoteResponse(answer=answer_id, user=user.username, vote=VoteValue.NONE)
    return VoteResponse(
        answer=vote.answer_id,
        user=user.username,
        vote=vote.value,
        created_at=vote.created_at,
        updated_at=vote.updated_at,
    )


@router.get("/{answer_id}/vote", response_model=VoteResponse)
async def get_my_vote(
    answer_id: int,
    principal: PrincipalDep,
    db: SessionDep,
) -> VoteResponse:
    """Return the caller's vote on an answer."""
    vote = get_vote(db, answer_id, principal.id)
    return VoteResponse(
        answer=vote.answer_id,
        user=principal.username,
        vote=vote.value,
        created_at=vote.created_at,
        updated_at=vote.updated_at,
    )
