# src/marginalia/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    answers_router,
    documents_router,
    images_router,
    moderation_router,
    proposals_router,
    questions_router,
    votes_router,
)

__all__ = [
    "answers_router",
    "documents_router",
    "images_router",
    "moderation_router",
    "proposals_router",
    "questions_router",
    "votes_router",
]
