"""
Media component.

Validates featured image uploads before anything is written to storage.

Checks, first failure wins:
- Type: extension-derived MIME type (and declared type, when sent) in allowlist
- Size: no larger than min(configured max, transport max)
- Transport: error code reported by the upload layer must be 0
"""

from __future__ import annotations

import mimetypes

from src.components.media.models import (
    ALLOWED_IMAGE_TYPES,
    IMAGE_TOO_LARGE,
    INVALID_IMAGE_TYPE,
    UNKNOWN_UPLOAD_ERROR,
    UPLOAD_ERR_OK,
    UPLOAD_ERROR_MESSAGES,
    MediaValidationError,
    ValidateUploadInput,
    ValidateUploadOutput,
)
from src.domain.submission import UploadedFile
from src.rules.models import UploadsRules

# Not registered by every platform's mime database
mimetypes.add_type("image/webp", ".webp")

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def upload_error_message(error_code: int) -> str:
    return UPLOAD_ERROR_MESSAGES.get(error_code, UNKNOWN_UPLOAD_ERROR)


def effective_max_size(max_upload_bytes: int, transport_max_bytes: int) -> int:
    return min(max_upload_bytes, transport_max_bytes)


def format_size(num_bytes: int) -> str:
    """Human readable size in 1024 steps, rounded to whole units ("5 MB")."""
    size = float(num_bytes)
    unit = SIZE_UNITS[0]
    for unit in SIZE_UNITS:
        if size < 1024 or unit == SIZE_UNITS[-1]:
            break
        size /= 1024
    return f"{round(size)} {unit}"


def detect_mime_type(filename: str) -> str | None:
    mime_type, _ = mimetypes.guess_type(filename, strict=False)
    return mime_type


def validate_image_upload(
    upload: UploadedFile,
    max_upload_bytes: int,
    transport_max_bytes: int,
    allowed_types: tuple[str, ...] = ALLOWED_IMAGE_TYPES,
) -> ValidateUploadOutput:
    """
    Validate an uploaded featured image.

    Returns:
        Output with the detected MIME type, or a single featured_image error
    """
    mime_type = detect_mime_type(upload.filename)
    declared = (upload.content_type or "").split(";")[0].strip().lower()

    if mime_type not in allowed_types or (declared and declared not in allowed_types):
        return ValidateUploadOutput(
            success=False,
            errors=[MediaValidationError(code="invalid_mime_type", message=INVALID_IMAGE_TYPE)],
        )

    max_size = effective_max_size(max_upload_bytes, transport_max_bytes)
    if upload.size > max_size:
        return ValidateUploadOutput(
            success=False,
            mime_type=mime_type,
            errors=[
                MediaValidationError(
                    code="file_too_large",
                    message=IMAGE_TOO_LARGE.format(size=format_size(max_size)),
                )
            ],
        )

    if upload.error_code != UPLOAD_ERR_OK:
        return ValidateUploadOutput(
            success=False,
            mime_type=mime_type,
            errors=[
                MediaValidationError(
                    code="upload_error",
                    message=upload_error_message(upload.error_code),
                )
            ],
        )

    return ValidateUploadOutput(success=True, mime_type=mime_type)


def validate_with_rules(upload: UploadedFile, rules: UploadsRules) -> ValidateUploadOutput:
    return validate_image_upload(
        upload,
        rules.max_upload_bytes,
        rules.transport_max_bytes,
        tuple(rules.allowlist_mime_types),
    )


def run(inp: ValidateUploadInput) -> ValidateUploadOutput:
    """
    Main component entry point.

    Args:
        inp: Upload to validate with its limits

    Returns:
        Validation result
    """
    if isinstance(inp, ValidateUploadInput):
        return validate_image_upload(
            inp.upload,
            inp.max_upload_bytes,
            inp.transport_max_bytes,
            inp.allowed_types,
        )
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
