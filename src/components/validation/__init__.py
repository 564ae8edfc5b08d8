"""
Validation component.

Aggregates core, custom and cross-field errors for a listing submission.
"""

from src.components.validation.component import (
    FieldValidationAggregator,
    has_upload,
    is_empty_value,
    matches_pattern,
    max_length,
)
from src.components.validation.models import (
    CATEGORY_REQUIRED,
    CONTENT_REQUIRED,
    FEATURED_IMAGE_REQUIRED,
    TITLE_REQUIRED,
    CrossFieldValidator,
    FieldDefinition,
    FieldSanitizer,
    FieldValidator,
    ValidatedFields,
    ValidateFieldsOutput,
    ValidationErrorSet,
)
from src.components.validation.ports import AttachmentLookupPort, FieldSchemaPort

__all__ = [
    "FieldValidationAggregator",
    # Pure functions
    "has_upload",
    "is_empty_value",
    "matches_pattern",
    "max_length",
    # Messages
    "CATEGORY_REQUIRED",
    "CONTENT_REQUIRED",
    "FEATURED_IMAGE_REQUIRED",
    "TITLE_REQUIRED",
    # Models
    "CrossFieldValidator",
    "FieldDefinition",
    "FieldSanitizer",
    "FieldValidator",
    "ValidatedFields",
    "ValidateFieldsOutput",
    "ValidationErrorSet",
    # Ports
    "AttachmentLookupPort",
    "FieldSchemaPort",
]
