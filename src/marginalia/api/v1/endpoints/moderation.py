# src/marginalia/api/v1/endpoints/moderation.py
"""Moderation endpoints: reports, bans and the activity log."""

from fastapi import APIRouter, Query, status

from marginalia.api.v1.dependencies import ActivePrincipalDep, AdminDep, SessionDep
from marginalia.schemas.moderation import (
    BannedUserView,
    BanRequest,
    LogEntry,
    ReportCreate,
    ReportView,
)
from marginalia.services import moderation as moderation_service
from marginalia.services.users import list_banned_users, public_avatar_url, set_banned

router = APIRouter(tags=["moderation"])


@router.post(
    "/answers/{answer_id}/report",
    response_model=ReportView,
    status_code=status.HTTP_201_CREATED,
)
async def report_answer(
    answer_id: int,
    payload: ReportCreate,
    principal: ActivePrincipalDep,
    db: SessionDep,
) -> ReportView:
    """Report an answer to the moderators."""
    report = moderation_service.create_report(db, principal, answer_id, payload.cause)
    return ReportView(
        id=report.id,
        created_at=report.created_at,
        answer_id=report.answer_id,
        cause=report.cause,
        username=principal.username,
        user_avatar_url=public_avatar_url(principal.id),
    )


@router.get("/reports", response_model=list[ReportView])
async def list_reports(principal: AdminDep, db: SessionDep) -> list[ReportView]:
    return moderation_service.list_reports(db)


@router.delete("/reports/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report(report_id: int, principal: AdminDep, db: SessionDep) -> None:
    """Dismiss a report."""
    moderation_service.delete_report(db, report_id)


@router.get("/bans", response_model=list[BannedUserView])
async def list_bans(principal: AdminDep, db: SessionDep) -> list[BannedUserView]:
    """List banned users, most recent first."""
    return [
        BannedUserView(
            id=user.id,
            username=user.username,
            user_avatar_url=public_avatar_url(user.id),
            banned_at=user.banned_at,
        )
        for user in list_banned_users(db)
    ]


@router.post("/bans", response_model=BannedUserView)
async def update_ban(payload: BanRequest, principal: AdminDep, db: SessionDep) -> BannedUserView:
    """Ban or unban a user by username."""
    user = set_banned(db, payload.username, payload.ban)
    return BannedUserView(
        id=user.id,
        username=user.username,
        user_avatar_url=public_avatar_url(user.id),
        banned_at=user.banned_at,
    )


@router.get("/logs", response_model=list[LogEntry])
async def read_logs(
    principal: AdminDep,
    db: SessionDep,
    limit: int | None = Query(None, ge=1, le=1000),
) -> list[LogEntry]:
    """Return the moderation timeline, newest first."""
    return moderation_service.moderation_log(db, limit)
