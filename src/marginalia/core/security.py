"""Identity handed to the service by the external authentication provider.

The provider signs a JWT for each user; this module verifies it and turns
its claims into a :class:`Principal`. The service never authenticates users
itself.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum

from jose import JWTError, jwt

from marginalia.core.settings import settings


class Role(str, Enum):
    """Roles recognised by the authentication provider."""

    USER = "user"
    MEMBER = "member"
    ADMIN = "admin"


@dataclass(frozen=True)
class Principal:
    """The caller of a request, as vouched for by the authentication service."""

    id: int
    username: str
    role: Role = Role.USER
    avatar_url: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_member(self) -> bool:
        """Members and admins may curate documents, questions and proposals."""
        return self.role in (Role.MEMBER, Role.ADMIN)


class InvalidTokenError(ValueError):
    """Raised when a bearer token cannot be turned into a principal."""


def decode_access_token(token: str) -> Principal:
    """Verify a bearer token and return the principal it names.

    Args:
        token: Encoded JWT issued by the authentication service.

    Returns:
        The principal described by the token claims.

    Raises:
        InvalidTokenError: If the signature, expiry or claims are invalid.
    """
    try:
        payload = jwt.decode(
            token,
            settings.auth_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as err:
        raise InvalidTokenError("Could not validate credentials") from err

    subject = payload.get("sub")
    username = payload.get("username")
    if subject is None or not username:
        raise InvalidTokenError("Could not validate credentials")

    try:
        user_id = int(subject)
        role = Role(payload.get("role", Role.USER.value))
    except ValueError as err:
        raise InvalidTokenError("Could not validate credentials") from err

    return Principal(
        id=user_id,
        username=str(username),
        role=role,
        avatar_url=payload.get("avatar_url"),
    )


def create_access_token(
    user_id: int,
    username: str,
    role: Role | str = Role.USER,
    avatar_url: str | None = None,
) -> str:
    """Create a token in the format the authentication service issues."""
    to_encode: dict[str, object] = {
        "sub": str(user_id),
        "username": username,
        "role": Role(role).value,
    }
    if avatar_url:
        to_encode["avatar_url"] = avatar_url
    to_encode["exp"] = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.auth_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt
