"""
Media component models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from src.domain.submission import UploadedFile

ALLOWED_IMAGE_TYPES: tuple[str, ...] = ("image/jpeg", "image/png", "image/gif", "image/webp")

INVALID_IMAGE_TYPE = "Invalid image type. Please upload a JPG, PNG, GIF, or WebP image."
IMAGE_TOO_LARGE = "Image file is too large. Maximum size is {size}."
UNKNOWN_UPLOAD_ERROR = "Unknown upload error."

# Transport error codes reported by the upload layer.
UPLOAD_ERR_OK = 0
UPLOAD_ERR_INI_SIZE = 1
UPLOAD_ERR_FORM_SIZE = 2
UPLOAD_ERR_PARTIAL = 3
UPLOAD_ERR_NO_FILE = 4
UPLOAD_ERR_NO_TMP_DIR = 6
UPLOAD_ERR_CANT_WRITE = 7
UPLOAD_ERR_EXTENSION = 8

UPLOAD_ERROR_MESSAGES: dict[int, str] = {
    UPLOAD_ERR_INI_SIZE: "The uploaded file exceeds the maximum file size.",
    UPLOAD_ERR_FORM_SIZE: "The uploaded file exceeds the maximum file size.",
    UPLOAD_ERR_PARTIAL: "The uploaded file was only partially uploaded.",
    UPLOAD_ERR_NO_FILE: "No file was uploaded.",
    UPLOAD_ERR_NO_TMP_DIR: "Server configuration error: Missing temporary folder.",
    UPLOAD_ERR_CANT_WRITE: "Failed to write file to disk.",
    UPLOAD_ERR_EXTENSION: "A server extension stopped the file upload.",
}


@dataclass(frozen=True)
class MediaValidationError:
    """Upload validation error."""

    code: str
    message: str
    field: str = "featured_image"


@dataclass(frozen=True)
class ValidateUploadInput:
    upload: UploadedFile
    max_upload_bytes: int
    transport_max_bytes: int
    allowed_types: tuple[str, ...] = ALLOWED_IMAGE_TYPES


@dataclass(frozen=True)
class ValidateUploadOutput:
    success: bool
    mime_type: str | None = None
    errors: list[MediaValidationError] = field(default_factory=list)
