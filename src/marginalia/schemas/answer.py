# src/marginalia/schemas/answer.py
"""Answer-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class AnswerCreate(BaseModel):
    """Schema for posting an answer or a reply."""

    question: int = Field(..., description="Question the answer belongs to")
    parent: int | None = Field(None, description="Parent answer ID for replies")
    content: str = Field(..., min_length=1, max_length=20000, description="Markdown content")
    anonymous: bool = Field(False, description="Post under the user's alias")


class AnswerUpdate(BaseModel):
    """Schema for editing an answer's content."""

    content: str = Field(..., min_length=1, max_length=20000, description="New markdown content")


class AnswerView(BaseModel):
    """Rendered answer node as returned to clients.

    Identity and content are already resolved for the viewer: deleted nodes
    carry ``[deleted]`` placeholders and anonymous nodes carry the alias.
    """

    id: int
    created_at: datetime
    updated_at: datetime

    question: int
    parent: int | None

    user: str
    user_avatar_url: str
    content: str
    upvotes: int = 0
    downvotes: int = 0
    state: int
    edited_by_admin: bool = False

    can_i_delete: bool = False
    i_voted: int = Field(0, description="Viewer's vote: 1, -1, or 0 for none")

    reply_count: int = Field(0, description="Number of direct replies, rendered or not")
    replies: list[AnswerView] = Field(default_factory=list)


class AnswerVersionView(BaseModel):
    """One entry of an answer's edit history."""

    id: int
    answer_id: int
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
