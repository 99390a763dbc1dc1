# src/marginalia/schemas/image.py
"""Image upload schemas."""

from pydantic import BaseModel


class ImageResponse(BaseModel):
    """Identifier and public URL of a stored image."""

    id: str
    url: str
