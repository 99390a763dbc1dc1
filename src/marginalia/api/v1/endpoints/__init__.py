# src/marginalia/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .answers import router as answers_router
from .documents import router as documents_router
from .images import router as images_router
from .moderation import router as moderation_router
from .proposals import router as proposals_router
from .questions import router as questions_router
from .votes import router as votes_router

__all__ = [
    "answers_router",
    "documents_router",
    "images_router",
    "moderation_router",
    "proposals_router",
    "questions_router",
    "votes_router",
]
