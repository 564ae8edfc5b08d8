"""
Field validation models.

Errors are keyed by field name so the form can show each message next to the
input that caused it.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from src.domain.sanitize import sanitize_text_field
from src.domain.submission import SubmissionRequest

TITLE_REQUIRED = "Listing title is required."
CONTENT_REQUIRED = "Description is required."
CATEGORY_REQUIRED = "Please select at least one category."
FEATURED_IMAGE_REQUIRED = "A featured image is required."


class ValidationErrorSet:
    """
    Ordered multimap of error code to messages.

    Codes keep first-insertion order; messages keep insertion order per code.
    Nothing is ever dropped or short-circuited.
    """

    def __init__(self) -> None:
        self._errors: dict[str, list[str]] = {}

    def add(self, code: str, message: str) -> None:
        self._errors.setdefault(code, []).append(message)

    def merge(self, other: ValidationErrorSet) -> None:
        for code in other.codes():
            for message in other.messages_for(code):
                self.add(code, message)

    def codes(self) -> list[str]:
        return list(self._errors)

    def messages_for(self, code: str) -> list[str]:
        return list(self._errors.get(code, []))

    def messages(self) -> list[str]:
        return [message for messages in self._errors.values() for message in messages]

    def has_errors(self) -> bool:
        return bool(self._errors)

    def to_dict(self) -> dict[str, list[str]]:
        return {code: list(messages) for code, messages in self._errors.items()}

    @classmethod
    def from_dict(cls, data: dict[str, list[str]]) -> ValidationErrorSet:
        errors = cls()
        for code, messages in data.items():
            for message in messages:
                errors.add(code, message)
        return errors

    def __len__(self) -> int:
        return sum(len(messages) for messages in self._errors.values())

    def __repr__(self) -> str:
        return f"ValidationErrorSet({self._errors!r})"


FieldSanitizer = Callable[[Any], Any]
FieldValidator = Callable[[Any], list[str]]


@dataclass(frozen=True)
class FieldDefinition:
    """
    A registered custom field.

    validate receives the sanitized value and returns user-facing messages;
    an empty list means valid.
    """

    name: str
    label: str
    field_type: str = "text"
    required: bool = False
    admin_only: bool = False
    sanitize: FieldSanitizer = sanitize_text_field
    validate: FieldValidator | None = None

    @property
    def is_boolean(self) -> bool:
        return self.field_type in ("checkbox", "switch")


# values, errors, request
CrossFieldValidator = Callable[[dict[str, Any], ValidationErrorSet, SubmissionRequest], None]


# --- Output ---


@dataclass(frozen=True)
class ValidatedFields:
    """Sanitized core and custom field values ready for a draft."""

    title: str = ""
    content: str = ""
    excerpt: str = ""
    category_ids: tuple[int, ...] = ()
    tag_ids: tuple[int, ...] = ()
    custom_fields: dict[str, Any] = field(default_factory=dict)
    featured_image_id: int | None = None


@dataclass(frozen=True)
class ValidateFieldsOutput:
    success: bool
    fields: ValidatedFields
    errors: ValidationErrorSet
