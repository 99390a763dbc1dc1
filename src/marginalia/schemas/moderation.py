# src/marginalia/schemas/moderation.py
"""Moderation-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class ReportCreate(BaseModel):
    """Schema for reporting an answer."""

    cause: str = Field(..., min_length=1, max_length=2000, description="Why the answer is abusive")


class ReportView(BaseModel):
    """Report information returned to moderators."""

    id: int
    created_at: datetime
    answer_id: int
    cause: str
    username: str
    user_avatar_url: str


class BanRequest(BaseModel):
    """Schema for banning or unbanning a user."""

    username: str = Field(..., min_length=1)
    ban: bool


class BannedUserView(BaseModel):
    """Banned user as listed to moderators."""

    id: int
    username: str
    user_avatar_url: str
    banned_at: datetime | None


class LogEntry(BaseModel):
    """One event of the moderation timeline."""

    timestamp: datetime
    action: str = Field(..., description="created, modified or deleted")
    item_type: str = Field(..., description="answer, answer-content, image or user")
    item_id: str
    username: str
    user_avatar_url: str
