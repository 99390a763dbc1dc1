# src/marginalia/schemas/question.py
"""Question and document Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from .answer import AnswerView


class Coord(BaseModel):
    """Start/end offsets of a range inside a document."""

    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> Coord:
        if self.end < self.start:
            raise ValueError("end must not precede start")
        return self


class DocumentCreate(BaseModel):
    """Schema for creating the question set of a document."""

    id: str = Field(..., min_length=1, description="Document identifier")
    coords: list[Coord] = Field(..., min_length=1)


class QuestionView(BaseModel):
    """Question with its rendered answer tree."""

    id: int
    created_at: datetime
    updated_at: datetime

    document: str
    start: int
    end: int
    answers: list[AnswerView] | None = None


class DocumentView(BaseModel):
    """All questions anchored to one document."""

    id: str
    questions: list[QuestionView]
