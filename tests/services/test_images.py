# mypy: ignore-errors
# tests/services/test_images.py
"""Tests for image uploads and the unused-image reaper."""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from marginalia.core.security import Principal
from marginalia.db.time import utcnow
from marginalia.models import Image
from marginalia.services.errors import (
    InvariantViolationError,
    NotFoundError,
    QuotaExceededError,
)
from marginalia.services.images import (
    ImageLimits,
    ImageReaper,
    image_file_path,
    image_url,
    store_image,
    sweep_unused_images,
)

ALICE = Principal(id=1001, username="alice")
PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 32
LIMITS = ImageLimits(max_image_size=1024, max_total_size=100, max_images=2)
DAY = 24 * 60 * 60
IMAGE_ID = "6f1c7d4e-3b7a-4c55-9b1e-2a9f6f0d8c11"


def _image(db, image_id, user, images_dir, age_hours=48):
    (images_dir / image_id).write_bytes(PNG)
    image = Image(
        id=image_id,
        user_id=user.id,
        size=len(PNG),
        created_at=utcnow() - timedelta(hours=age_hours),
    )
    db.add(image)
    db.commit()
    return image


def test_store_png(db_session, images_dir) -> None:
    """A valid upload is written to disk and recorded."""
    image = store_image(db_session, ALICE, PNG, "image/png", images_dir, LIMITS)

    assert (images_dir / image.id).read_bytes() == PNG
    assert db_session.get(Image, image.id).size == len(PNG)
    assert image_file_path(image.id, images_dir) == images_dir / image.id


def test_reject_unsupported_type(db_session, images_dir) -> None:
    with pytest.raises(InvariantViolationError):
        store_image(db_session, ALICE, b"GIF89a" + b"\x00" * 10, "image/gif", images_dir, LIMITS)


def test_reject_mismatched_declared_type(db_session, images_dir) -> None:
    with pytest.raises(InvariantViolationError):
        store_image(db_session, ALICE, JPEG, "image/png", images_dir, LIMITS)


def test_per_file_size_limit(db_session, images_dir) -> None:
    limits = ImageLimits(max_image_size=10, max_total_size=1000, max_images=5)

    with pytest.raises(QuotaExceededError) as excinfo:
        store_image(db_session, ALICE, PNG, "image/png", images_dir, limits)

    assert "size" in excinfo.value.detail
    assert list(images_dir.iterdir()) == []


def test_per_user_count_quota(db_session, images_dir) -> None:
    limits = ImageLimits(max_image_size=1024, max_total_size=10_000, max_images=2)
    store_image(db_session, ALICE, PNG, "image/png", images_dir, limits)
    store_image(db_session, ALICE, JPEG, "image/jpeg", images_dir, limits)

    with pytest.raises(QuotaExceededError) as excinfo:
        store_image(db_session, ALICE, PNG, "image/png", images_dir, limits)

    assert excinfo.value.detail == "you have reached the maximum number of images"


def test_per_user_total_size_quota(db_session, images_dir) -> None:
    limits = ImageLimits(max_image_size=1024, max_total_size=len(PNG) + 10, max_images=10)
    store_image(db_session, ALICE, PNG, "image/png", images_dir, limits)

    with pytest.raises(QuotaExceededError) as excinfo:
        store_image(db_session, ALICE, JPEG, "image/jpeg", images_dir, limits)

    assert excinfo.value.detail == "you have reached the maximum total size of images"


def test_file_is_removed_when_the_row_cannot_be_written(db_session, images_dir, mocker) -> None:
    store_image(db_session, ALICE, PNG, "image/png", images_dir, LIMITS)  # creates the user
    mocker.patch.object(db_session, "commit", side_effect=SQLAlchemyError("disk full"))

    with pytest.raises(SQLAlchemyError):
        store_image(db_session, ALICE, JPEG, "image/jpeg", images_dir, LIMITS)

    assert len(list(images_dir.iterdir())) == 1


def test_image_path_requires_a_uuid(images_dir) -> None:
    with pytest.raises(InvariantViolationError):
        image_file_path("../etc/passwd", images_dir)
    with pytest.raises(NotFoundError):
        image_file_path("6f1c7d4e-3b7a-4c55-9b1e-2a9f6f0d8c11", images_dir)


def test_reaper_keeps_images_in_latest_content(
    db_session, question, make_answer, alice, images_dir
) -> None:
    """An old image referenced by the latest version survives a sweep."""
    _image(db_session, "abc123", alice, images_dir)
    make_answer(question, alice, content="see ![x](https://host/images/abc123)")

    removed = sweep_unused_images(db_session, images_dir, DAY)

    assert removed == []
    assert db_session.get(Image, "abc123") is not None
    assert (images_dir / "abc123").exists()


@pytest.mark.parametrize(
    "link",
    [
        image_url(IMAGE_ID, "http://localhost:8000"),
        image_url(IMAGE_ID, "https://forum.example.org"),
        f"/api/v1/images/{IMAGE_ID}",
    ],
)
def test_reaper_keeps_images_linked_by_any_url(
    db_session, question, make_answer, alice, images_dir, link
) -> None:
    """Links handed out by the upload endpoint keep the image alive, whatever the scheme."""
    _image(db_session, IMAGE_ID, alice, images_dir)
    make_answer(question, alice, content=f"diagram: ![figure 2]({link}) above")

    assert sweep_unused_images(db_session, images_dir, DAY) == []
    assert (images_dir / IMAGE_ID).exists()


def test_reaper_deletes_images_only_in_superseded_versions(
    db_session, question, make_answer, add_version, alice, images_dir
) -> None:
    """An old image referenced only by an older version is removed."""
    _image(db_session, "abc123", alice, images_dir)
    answer = make_answer(question, alice, content="see ![x](https://host/images/abc123)")
    add_version(answer, "image removed")

    removed = sweep_unused_images(db_session, images_dir, DAY)

    assert removed == ["abc123"]
    assert db_session.get(Image, "abc123") is None
    assert not (images_dir / "abc123").exists()


def test_reaper_respects_the_retention_window(db_session, alice, images_dir) -> None:
    """Fresh images are kept even when nothing references them."""
    _image(db_session, "fresh", alice, images_dir, age_hours=1)

    assert sweep_unused_images(db_session, images_dir, DAY) == []
    assert db_session.get(Image, "fresh") is not None


def test_reaper_tolerates_missing_files(db_session, alice, images_dir) -> None:
    """A row whose file is already gone is still removed."""
    _image(db_session, "gone", alice, images_dir)
    (images_dir / "gone").unlink()

    assert sweep_unused_images(db_session, images_dir, DAY) == ["gone"]
    assert db_session.get(Image, "gone") is None


def test_reaper_skips_images_it_cannot_remove(db_session, alice, images_dir, mocker) -> None:
    """A failing file removal is logged and the sweep carries on."""
    _image(db_session, "stuck", alice, images_dir)
    _image(db_session, "loose", alice, images_dir)
    real_unlink = type(images_dir).unlink

    def unlink(path, *args, **kwargs):
        if path.name == "stuck":
            raise PermissionError("read-only")
        return real_unlink(path, *args, **kwargs)

    mocker.patch.object(type(images_dir), "unlink", unlink)

    assert sweep_unused_images(db_session, images_dir, DAY) == ["loose"]
    assert db_session.get(Image, "stuck") is not None


@pytest.mark.asyncio
async def test_reaper_worker_sweeps_on_its_interval(
    db_session, session_factory, alice, images_dir
) -> None:
    """The worker sweeps in the background and stops cleanly."""
    _image(db_session, "old", alice, images_dir)
    reaper = ImageReaper(
        images_dir,
        interval_seconds=0.1,
        retention_seconds=DAY,
        session_factory=session_factory,
    )

    await reaper.start()
    assert reaper.running
    for _ in range(50):
        if not (images_dir / "old").exists():
            break
        await asyncio.sleep(0.05)
    await reaper.stop()

    assert not reaper.running
    assert not (images_dir / "old").exists()


@pytest.mark.asyncio
async def test_reaper_worker_survives_a_failing_sweep(images_dir, mocker) -> None:
    """An unexpected error is logged and the next interval sweeps again."""
    reaper = ImageReaper(images_dir, interval_seconds=0.1, retention_seconds=DAY)
    sweep = mocker.patch.object(
        reaper, "sweep_once", side_effect=[RuntimeError("disk vanished"), [], [], [], []]
    )

    await reaper.start()
    for _ in range(50):
        if sweep.call_count >= 2:
            break
        await asyncio.sleep(0.05)

    assert reaper.running
    await reaper.stop()
    assert sweep.call_count >= 2
