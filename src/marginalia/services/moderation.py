"""Reports and the moderation timeline."""
from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from marginalia.core.security import Principal
from marginalia.models import Answer, AnswerState, AnswerVersion, Image, Report, User
from marginalia.schemas.moderation import LogEntry, ReportView
from marginalia.services.errors import NotFoundError
from marginalia.services.users import get_or_create_user, public_avatar_url

logger = logging.getLogger(__name__)

# Actions performed by the service itself are attributed to this user id.
SYSTEM_USER_ID = 0
SYSTEM_NAME = "system"
ADMINISTRATOR_NAME = "administrator"


def create_report(db: Session, principal: Principal, answer_id: int, cause: str) -> Report:
    """Flag an answer for moderator review."""
    user = get_or_create_user(db, principal.id, principal.username)
    if db.get(Answer, answer_id) is None:
        raise NotFoundError("the referenced answer does not exist")

    report = Report(answer_id=answer_id, user_id=user.id, cause=cause)
    db.add(report)
    db.commit()
    db.refresh(report)
    logger.info("User %d reported answer %d", user.id, answer_id)
    return report


def list_reports(db: Session) -> list[ReportView]:
    """Return all open reports, newest first, with the reporter's identity."""
    rows = db.execute(
        select(Report, User)
        .join(User, User.id == Report.user_id)
        .order_by(Report.created_at.desc(), Report.id.desc())
    ).all()
    return [
        ReportView(
            id=report.id,
            created_at=report.created_at,
            answer_id=report.answer_id,
            cause=report.cause,
            username=user.username,
            user_avatar_url=public_avatar_url(user.id),
        )
        for report, user in rows
    ]


def delete_report(db: Session, report_id: int) -> None:
    report = db.get(Report, report_id)
    if report is None:
        raise NotFoundError("report not found")
    db.delete(report)
    db.commit()


class _Names:
    """Resolves user ids to display names for the timeline."""

    def __init__(self, db: Session) -> None:
        self.users = {user.id: user for user in db.scalars(select(User))}

    def entry(self, user_id: int | None, *, override: str | None = None) -> tuple[str, str]:
        if override is not None:
            return override, public_avatar_url(SYSTEM_USER_ID)
        if user_id is None or user_id == SYSTEM_USER_ID:
            return SYSTEM_NAME, public_avatar_url(SYSTEM_USER_ID)
        user = self.users.get(user_id)
        name = user.username if user is not None else str(user_id)
        return name, public_avatar_url(user_id)


def moderation_log(db: Session, limit: int | None = None) -> list[LogEntry]:
    """Build the moderation timeline from entity timestamps, newest first.

    Events: users, answers and images created; answers deleted (by their
    author or by an administrator); answer content modified, which is every
    version after an answer's first.
    """
    names = _Names(db)
    entries: list[LogEntry] = []

    def add(timestamp, action, item_type, item_id, user_id, override=None):
        username, avatar = names.entry(user_id, override=override)
        entries.append(
            LogEntry(
                timestamp=timestamp,
                action=action,
                item_type=item_type,
                item_id=str(item_id),
                username=username,
                user_avatar_url=avatar,
            )
        )

    for user in names.users.values():
        add(user.created_at, "created", "user", user.id, user.id)

    for image in db.scalars(select(Image)):
        add(image.created_at, "created", "image", image.id, image.user_id)

    for answer in db.scalars(select(Answer)):
        add(answer.created_at, "created", "answer", answer.id, answer.user_id)
        if answer.deleted_at is not None:
            override = ADMINISTRATOR_NAME if answer.state == AnswerState.DELETED_BY_ADMIN else None
            add(answer.deleted_at, "deleted", "answer", answer.id, answer.user_id, override)

    first_versions = select(func.min(AnswerVersion.id)).group_by(AnswerVersion.answer_id)
    for version in db.scalars(
        select(AnswerVersion).where(AnswerVersion.id.not_in(first_versions))
    ):
        add(version.created_at, "modified", "answer-content", version.answer_id, version.editor_id)

    entries.sort(key=lambda entry: entry.timestamp, reverse=True)
    if limit is not None:
        entries = entries[:limit]
    return entries
