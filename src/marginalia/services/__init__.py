# src/marginalia/services/__init__.py
"""Domain services for the Marginalia forum."""

from .errors import ForumError
from .images import ImageLimits, ImageReaper
from .tree import AnswerRenderer, AnswerTree
from .users import AliasAllocator

__all__ = [
    "AliasAllocator",
    "AnswerRenderer",
    "AnswerTree",
    "ForumError",
    "ImageLimits",
    "ImageReaper",
]
