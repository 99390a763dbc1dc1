# src/marginalia/models/__init__.py
"""SQLAlchemy models for the Marginalia application."""

from .answer import Answer, AnswerState, AnswerVersion
from .image import Image
from .proposal import Proposal
from .question import Question
from .report import Report
from .user import User
from .vote import Vote

__all__ = [
    "Answer", "AnswerState", "AnswerVersion",
    "Image",
    "Proposal",
    "Question",
    "Report",
    "User",
    "Vote",
]
