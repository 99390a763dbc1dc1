"""Image uploads and the background sweep of unused images.

Image bytes live in a flat directory, one file per image named after its
UUID. The database row only carries the metadata needed for quotas and
garbage collection.
"""
from __future__ import annotations

import asyncio
import logging
import re
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marginalia.core.security import Principal
from marginalia.db.session import SessionLocal
from marginalia.db.time import utcnow
from marginalia.models import Image
from marginalia.services.errors import (
    InvariantViolationError,
    NotFoundError,
    QuotaExceededError,
)
from marginalia.services.tree import latest_contents
from marginalia.services.users import get_or_create_user

logger = logging.getLogger(__name__)

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
JPEG_MAGIC = b"\xff\xd8\xff"


@dataclass(frozen=True)
class ImageLimits:
    """Per-file and per-user upload limits, in bytes and images."""

    max_image_size: int
    max_total_size: int
    max_images: int


def detect_image_type(data: bytes) -> str | None:
    """Return the MIME type implied by the file's magic bytes, if supported."""
    if data.startswith(PNG_MAGIC):
        return "image/png"
    if data.startswith(JPEG_MAGIC):
        return "image/jpeg"
    return None


def image_url(image_id: str, base_url: str) -> str:
    """Return the public URL under which an image is served."""
    return f"{base_url.rstrip('/')}/api/v1/images/{image_id}"


def store_image(
    db: Session,
    principal: Principal,
    data: bytes,
    content_type: str | None,
    images_path: str | Path,
    limits: ImageLimits,
) -> Image:
    """Validate an upload, write it to disk and record it.

    Raises:
        QuotaExceededError: If the file is too large or the user is over quota.
        InvariantViolationError: If the file is not a PNG or JPEG image, or
            its declared type does not match its contents.
    """
    size = len(data)
    if size > limits.max_image_size:
        raise QuotaExceededError("the image exceeds the maximum allowed size")

    detected = detect_image_type(data)
    if detected is None:
        raise InvariantViolationError("only PNG and JPEG images are supported")
    if content_type is not None and content_type != detected:
        raise InvariantViolationError("the declared content type does not match the file")

    user = get_or_create_user(db, principal.id, principal.username)
    count, total = db.execute(
        select(func.count(Image.id), func.coalesce(func.sum(Image.size), 0)).where(
            Image.user_id == user.id
        )
    ).one()
    if count >= limits.max_images:
        raise QuotaExceededError("you have reached the maximum number of images")
    if total + size > limits.max_total_size:
        raise QuotaExceededError("you have reached the maximum total size of images")

    image_id = str(uuid.uuid4())
    directory = Path(images_path)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / image_id
    path.write_bytes(data)

    image = Image(id=image_id, user_id=user.id, size=size)
    db.add(image)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        path.unlink(missing_ok=True)
        raise
    db.refresh(image)
    logger.info("User %d uploaded image %s (%d bytes)", user.id, image_id, size)
    return image


def image_file_path(image_id: str, images_path: str | Path) -> Path:
    """Return the on-disk path of a stored image.

    Raises:
        InvariantViolationError: If ``image_id`` is not a UUID.
        NotFoundError: If no such file exists.
    """
    try:
        canonical = str(uuid.UUID(image_id))
    except ValueError as err:
        raise InvariantViolationError("the image id is not valid") from err

    path = Path(images_path) / canonical
    if not path.is_file():
        raise NotFoundError("image not found")
    return path


def reference_pattern(image_id: str) -> re.Pattern[str]:
    """Match a Markdown image whose URL points at ``image_id``."""
    return re.compile(rf"!\[[^\]]*\]\(\s*[^)\s]*/images/{re.escape(image_id)}")


def sweep_unused_images(
    db: Session,
    images_path: str | Path,
    retention_seconds: float,
    now: datetime | None = None,
) -> list[str]:
    """Delete images older than the retention window that current content no longer uses.

    Only the latest version of each answer is consulted. Failures on a single
    image are logged and the sweep moves on.

    Returns:
        Ids of the images that were removed.
    """
    cutoff = (now or utcnow()) - timedelta(seconds=retention_seconds)
    candidates = list(db.scalars(select(Image).where(Image.created_at < cutoff)))
    if not candidates:
        return []

    contents = list(latest_contents(db).values())
    removed: list[str] = []
    for image in candidates:
        pattern = reference_pattern(image.id)
        if any(pattern.search(content) for content in contents):
            continue

        try:
            (Path(images_path) / image.id).unlink()
        except FileNotFoundError:
            pass
        except OSError:
            logger.exception("Could not remove the file of image %s", image.id)
            continue

        try:
            db.delete(image)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Could not remove image %s from the database", image.id)
            continue

        logger.info("Removed unused image %s", image.id)
        removed.append(image.id)
    return removed


class ImageReaper:
    """Periodically removes uploaded images that no answer references any more.

    Each sweep runs in a worker thread with its own database session, so a
    slow sweep never blocks request handling.
    """

    def __init__(
        self,
        images_path: str | Path,
        *,
        interval_seconds: float,
        retention_seconds: float,
        session_factory: Callable[[], Session] = SessionLocal,
    ) -> None:
        self.images_path = images_path
        self.interval_seconds = max(0.1, float(interval_seconds))
        self.retention_seconds = retention_seconds
        self._session_factory = session_factory
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if not self.running:
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background sweep loop and wait for it to finish."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    def sweep_once(self) -> list[str]:
        with self._session_factory() as db:
            return sweep_unused_images(db, self.images_path, self.retention_seconds)

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
            except TimeoutError:
                pass
            else:
                return

            try:
                removed = await asyncio.to_thread(self.sweep_once)
            except Exception:
                logger.exception("ImageReaper sweep failed")
                continue
            logger.info("ImageReaper removed %d unused images", len(removed))
