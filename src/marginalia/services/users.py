"""User identities: lazy creation, pseudonym allocation, bans and avatars."""
from __future__ import annotations

import logging
import re
import secrets
from collections.abc import Callable, Sequence
from typing import Final

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marginalia.core.settings import settings
from marginalia.db.time import utcnow
from marginalia.models import User
from marginalia.services.errors import AliasExhaustedError, BannedUserError, NotFoundError

__all__ = [
    "NAME_POOL",
    "DELETED_AVATAR_URL",
    "AliasAllocator",
    "anonymous_avatar_url",
    "public_avatar_url",
    "get_user",
    "get_or_create_user",
    "get_user_by_username",
    "ensure_not_banned",
    "set_banned",
    "list_banned_users",
]

logger = logging.getLogger(__name__)

NAME_POOL: Final[tuple[str, ...]] = (
    "Wyatt", "Vivian", "Maria", "Alexander", "Luis",
    "Aidan", "Mason", "Aiden", "Mackenzie", "Adrian",
    "Oliver", "Andrea", "Amaya", "Nolan", "Riley",
    "Robert", "Ryker", "Sara", "Ryan", "Sawyer",
)

DELETED_AVATAR_URL: Final[str] = "https://api.dicebear.com/9.x/shapes/svg?seed=deleted"


def public_avatar_url(user_id: int) -> str:
    """Return the identity provider's avatar for a numeric user id."""
    return f"https://avatars.githubusercontent.com/u/{user_id}?v=4"


def anonymous_avatar_url(alias: str) -> str:
    """Return a placeholder avatar seeded deterministically by ``alias``."""
    return f"https://api.dicebear.com/9.x/thumbs/svg?seed={alias}"


class AliasAllocator:
    """Generates pseudonyms of the form ``<name>_<n>``.

    A base name is drawn from the pool with a cryptographically secure index,
    then ``n`` continues from the latest alias allocated for that name, the
    one with the highest suffix. The read is not locked, so callers must
    treat a uniqueness violation on insert as a reason to draw again.
    """

    def __init__(
        self,
        names: Sequence[str] = NAME_POOL,
        *,
        max_attempts: int | None = None,
        randbelow: Callable[[int], int] = secrets.randbelow,
    ) -> None:
        if not names:
            raise ValueError("alias name pool must not be empty")
        self.names = tuple(names)
        self.max_attempts = max(1, max_attempts or settings.alias_max_attempts)
        self._randbelow = randbelow

    def pick_name(self) -> str:
        return self.names[self._randbelow(len(self.names))]

    def propose(self, db: Session) -> str:
        """Return a candidate alias that is free as of this read."""
        name = self.pick_name()
        last_alias = db.scalars(
            select(User.alias)
            .where(User.alias.like(f"{name}\\_%", escape="\\"))
            .order_by(func.length(User.alias).desc(), User.alias.desc())
            .limit(1)
        ).first()

        next_num = 1
        if last_alias is not None:
            match = re.fullmatch(rf"{re.escape(name)}_(\d+)", last_alias)
            if match:
                next_num = int(match.group(1)) + 1
        return f"{name}_{next_num}"


def get_user(db: Session, user_id: int) -> User | None:
    """Return a single user by primary key."""
    return db.get(User, user_id)


def get_user_by_username(db: Session, username: str) -> User | None:
    """Return the user registered under ``username``, if any."""
    return db.scalars(select(User).where(User.username == username).limit(1)).first()


def get_or_create_user(
    db: Session,
    user_id: int,
    username: str,
    allocator: AliasAllocator | None = None,
) -> User:
    """Return the user for ``user_id``, creating it with a fresh alias if needed.

    Existing rows are returned unchanged. Creation commits immediately, so
    this must run before any other pending work in the session.

    Raises:
        AliasExhaustedError: If every attempt collided with an existing alias.
    """
    user = db.get(User, user_id)
    if user is not None:
        return user

    allocator = allocator or AliasAllocator()
    for attempt in range(1, allocator.max_attempts + 1):
        alias = allocator.propose(db)
        user = User(id=user_id, username=username, alias=alias)
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            # A concurrent first request for the same user may have won.
            existing = db.get(User, user_id)
            if existing is not None:
                return existing
            logger.info("Alias %s already taken, retrying (attempt %d)", alias, attempt)
            continue
        logger.info("Created user %d with alias %s", user_id, alias)
        return user

    logger.error(
        "Could not allocate a unique alias for user %d after %d attempts",
        user_id,
        allocator.max_attempts,
    )
    raise AliasExhaustedError("could not allocate a unique alias")


def ensure_not_banned(db: Session, user_id: int) -> None:
    """Reject banned users; users never seen before are let through."""
    user = db.get(User, user_id)
    if user is not None and user.banned:
        raise BannedUserError("you are banned from using this service")


def set_banned(db: Session, username: str, banned: bool) -> User:
    """Ban or unban the user registered under ``username``."""
    user = get_user_by_username(db, username)
    if user is None:
        raise NotFoundError("user not found")

    user.banned = banned
    user.banned_at = utcnow() if banned else None
    db.commit()
    db.refresh(user)
    logger.info("User %s %s", username, "banned" if banned else "unbanned")
    return user


def list_banned_users(db: Session) -> list[User]:
    """Return banned users, most recently banned first."""
    return list(
        db.scalars(
            select(User).where(User.banned.is_(True)).order_by(User.banned_at.desc())
        )
    )
