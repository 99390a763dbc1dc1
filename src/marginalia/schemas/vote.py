# src/marginalia/schemas/vote.py
"""Vote-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class VoteRequest(BaseModel):
    """Schema for casting or retracting a vote."""

    vote: Literal[-1, 0, 1] = Field(..., description="1 upvote, -1 downvote, 0 retract")


class VoteResponse(BaseModel):
    """Schema for vote information returned by the API."""

    answer: int
    user: str
    vote: int
    created_at: datetime | None = None
    updated_at: datetime | None = None
