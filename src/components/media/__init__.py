"""
Media component.

Featured image upload validation and the attachment store port.
"""

from src.components.media.component import (
    detect_mime_type,
    effective_max_size,
    format_size,
    run,
    upload_error_message,
    validate_image_upload,
    validate_with_rules,
)
from src.components.media.models import (
    ALLOWED_IMAGE_TYPES,
    IMAGE_TOO_LARGE,
    INVALID_IMAGE_TYPE,
    UNKNOWN_UPLOAD_ERROR,
    UPLOAD_ERROR_MESSAGES,
    MediaValidationError,
    ValidateUploadInput,
    ValidateUploadOutput,
)
from src.components.media.ports import MediaStorePort

__all__ = [
    # Entry point
    "run",
    # Pure functions
    "detect_mime_type",
    "effective_max_size",
    "format_size",
    "upload_error_message",
    "validate_image_upload",
    "validate_with_rules",
    # Constants
    "ALLOWED_IMAGE_TYPES",
    "IMAGE_TOO_LARGE",
    "INVALID_IMAGE_TYPE",
    "UNKNOWN_UPLOAD_ERROR",
    "UPLOAD_ERROR_MESSAGES",
    # Models
    "MediaValidationError",
    "ValidateUploadInput",
    "ValidateUploadOutput",
    # Ports
    "MediaStorePort",
]
