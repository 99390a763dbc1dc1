# src/marginalia/api/v1/endpoints/images.py
"""Image upload and download endpoints for the Marginalia API."""

from fastapi import APIRouter, File, UploadFile, status
from fastapi.responses import FileResponse

from marginalia.api.v1.dependencies import (
    ActivePrincipalDep,
    ImageLimitsDep,
    ImagesPathDep,
    SessionDep,
)
from marginalia.core.settings import settings
from marginalia.schemas.image import ImageResponse
from marginalia.services.images import (
    detect_image_type,
    image_file_path,
    image_url,
    store_image,
)

router = APIRouter(prefix="/images", tags=["images"])


@router.post("", response_model=ImageResponse, status_code=status.HTTP_201_CREATED)
async def upload_image(
    principal: ActivePrincipalDep,
    db: SessionDep,
    images_path: ImagesPathDep,
    limits: ImageLimitsDep,
    file: UploadFile = File(...),
) -> ImageResponse:
    """Upload a PNG or JPEG image to embed in answers."""
    # One byte over the limit is enough to reject the upload.
    data = await file.read(limits.max_image_size + 1)
    image = store_image(db, principal, data, file.content_type, images_path, limits)
    return ImageResponse(id=image.id, url=image_url(image.id, settings.public_base_url))


@router.get("/{image_id}")
async def read_image(image_id: str, images_path: ImagesPathDep) -> FileResponse:
    """Serve a stored image."""
    path = image_file_path(image_id, images_path)
    with path.open("rb") as handle:
        media_type = detect_image_type(handle.read(8)) or "application/octet-stream"
    return FileResponse(path, media_type=media_type)
