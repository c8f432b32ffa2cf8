"""Validation of uploaded receipt images before any network call."""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from billscan.services.results import ErrorKind, Failure, Ok, Result

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
}
MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5 MiB


@dataclass(frozen=True)
class ImageUpload:
    """An uploaded image that passed intake validation."""

    data: bytes
    filename: str
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)


def mime_type_for(filename: str) -> Optional[str]:
    """Return the MIME type for an allowed image filename, or None."""
    _, extension = os.path.splitext(filename)
    return ALLOWED_IMAGE_TYPES.get(extension.lower())


def validate_image(
    data: bytes,
    filename: Optional[str],
    declared_length: Optional[int],
) -> Result[ImageUpload]:
    """
    Check an uploaded image's type and size.

    Args:
        data: Raw image bytes
        filename: Client-supplied filename, used for the extension check
        declared_length: Client-declared size in bytes, if known

    Returns:
        Ok with the accepted ImageUpload, or a ValidationError Failure
    """
    if not filename:
        logger.warning("Rejected upload without a filename")
        return Failure(ErrorKind.VALIDATION, "A file name is required")

    mime_type = mime_type_for(filename)
    if mime_type is None:
        logger.warning(f"Rejected upload with unsupported file type: {filename}")
        allowed = ", ".join(sorted(ALLOWED_IMAGE_TYPES))
        return Failure(ErrorKind.VALIDATION, f"Only image files are allowed ({allowed})")

    length = len(data) if declared_length is None else declared_length
    if length <= 0 or not data:
        logger.warning(f"Rejected empty upload: {filename}")
        return Failure(ErrorKind.VALIDATION, "The uploaded file is empty")

    if length > MAX_IMAGE_BYTES or len(data) > MAX_IMAGE_BYTES:
        logger.warning(f"Rejected oversized upload: {filename} ({length} bytes)")
        return Failure(
            ErrorKind.VALIDATION,
            f"The uploaded file exceeds the {MAX_IMAGE_BYTES // (1024 * 1024)} MB limit",
        )

    if declared_length is not None and declared_length != len(data):
        logger.warning(
            f"Rejected upload with mismatched length: {filename} declared {declared_length}, read {len(data)}"
        )
        return Failure(ErrorKind.VALIDATION, "The uploaded file is incomplete")

    logger.debug(f"Accepted upload {filename} as {mime_type} ({len(data)} bytes)")
    return Ok(ImageUpload(data=data, filename=filename, mime_type=mime_type))
