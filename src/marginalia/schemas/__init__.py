"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .answer import AnswerCreate, AnswerUpdate, AnswerVersionView, AnswerView
from .image import ImageResponse
from .moderation import BannedUserView, BanRequest, LogEntry, ReportCreate, ReportView
from .proposal import DocumentProposalView, ProposalCreate, ProposalUpdate, ProposalView
from .question import Coord, DocumentCreate, DocumentView, QuestionView
from .vote import VoteRequest, VoteResponse

__all__ = [
    "AnswerCreate", "AnswerUpdate", "AnswerVersionView", "AnswerView",
    "ImageResponse",
    "BannedUserView", "BanRequest", "LogEntry", "ReportCreate", "ReportView",
    "DocumentProposalView", "ProposalCreate", "ProposalUpdate", "ProposalView",
    "Coord", "DocumentCreate", "DocumentView", "QuestionView",
    "VoteRequest", "VoteResponse",
]
