# src/marginalia/models/image.py
"""Metadata rows for uploaded images."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from marginalia.db.session import Base
from marginalia.db.time import utcnow


class Image(Base):
    """Uploaded image tracked for quota accounting and garbage collection.

    The bytes live on disk under the configured images path, in a file named
    after :attr:`id`.
    """

    __tablename__ = "images"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        index=True,
    )
