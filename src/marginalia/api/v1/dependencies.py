"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from marginalia.core.security import InvalidTokenError, Principal, decode_access_token
from marginalia.core.settings import settings
from marginalia.db.session import get_db
from marginalia.services.images import ImageLimits
from marginalia.services.users import ensure_not_banned

# HTTP Bearer scheme; missing credentials are handled per dependency
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]

CredentialsDep = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_optional_principal(credentials: CredentialsDep) -> Principal | None:
    """Return the caller if a bearer token was sent, None for anonymous viewers.

    Raises:
        HTTPException: If a token was sent but is invalid
    """
    if credentials is None:
        return None
    try:
        return decode_access_token(credentials.credentials)
    except InvalidTokenError as err:
        raise _unauthorized() from err


OptionalPrincipalDep = Annotated[Principal | None, Depends(get_optional_principal)]


def get_principal(principal: OptionalPrincipalDep) -> Principal:
    """Require an authenticated caller."""
    if principal is None:
        raise _unauthorized()
    return principal


PrincipalDep = Annotated[Principal, Depends(get_principal)]


def get_active_principal(principal: PrincipalDep, db: SessionDep) -> Principal:
    """Require an authenticated caller who has not been banned.

    Users the service has never seen are not banned.
    """
    ensure_not_banned(db, principal.id)
    return principal


ActivePrincipalDep = Annotated[Principal, Depends(get_active_principal)]


def require_member(principal: ActivePrincipalDep) -> Principal:
    """Require a member or an admin."""
    if not principal.is_member:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="members only",
        )
    return principal


MemberDep = Annotated[Principal, Depends(require_member)]


def require_admin(principal: ActivePrincipalDep) -> Principal:
    """Require an admin."""
    if not principal.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="admins only",
        )
    return principal


AdminDep = Annotated[Principal, Depends(require_admin)]


def get_image_limits() -> ImageLimits:
    """Return the upload limits configured for this process."""
    return ImageLimits(
        max_image_size=settings.max_image_size,
        max_total_size=settings.max_total_image_size,
        max_images=settings.max_images_per_user,
    )


ImageLimitsDep = Annotated[ImageLimits, Depends(get_image_limits)]


def get_images_path() -> str:
    """Return the directory holding uploaded image files."""
    return settings.images_path


ImagesPathDep = Annotated[str, Depends(get_images_path)]
