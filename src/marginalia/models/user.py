# src/marginalia/models/user.py
"""SQLAlchemy model for forum identities."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from marginalia.db.session import Base
from marginalia.db.time import utcnow


class User(Base):
    """Identity keyed by the id assigned by the external authentication service.

    Rows are created lazily on a user's first interaction and are never
    removed; moderation acts on them through the ban flag only.
    """

    __tablename__ = "users"

    # Not autoincrement: the id is the authentication provider's numeric id.
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    username: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    # Pseudonym shown on anonymous posts, formatted as <name>_<n>.
    alias: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    banned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    banned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
