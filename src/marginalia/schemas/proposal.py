# src/marginalia/schemas/proposal.py
"""Proposal-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from .question import Coord


class ProposalCreate(BaseModel):
    """Schema for proposing questions on a document."""

    id: str = Field(..., min_length=1, description="Document identifier")
    document_path: str | None = Field(None, description="Path of the document, for listings")
    coords: list[Coord] = Field(..., min_length=1)


class ProposalUpdate(BaseModel):
    """Schema for moving a proposal's range."""

    coords: Coord


class ProposalView(BaseModel):
    """Proposal information returned by the API."""

    id: int
    created_at: datetime
    updated_at: datetime

    document: str
    document_path: str | None = None
    start: int
    end: int

    username: str
    user_avatar_url: str


class DocumentProposalView(BaseModel):
    """Proposals grouped by document."""

    id: str
    document_path: str | None = None
    questions: list[ProposalView]
