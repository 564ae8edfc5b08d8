"""
Field validation ports.
"""

from __future__ import annotations

from typing import Protocol

from src.components.validation.models import FieldDefinition
from src.domain.entities import Attachment


class FieldSchemaPort(Protocol):
    """Registry of custom listing fields."""

    def list_fields(self, exclude_admin_only: bool = True) -> list[FieldDefinition]:
        ...


class AttachmentLookupPort(Protocol):
    """Read access to uploaded media."""

    def get_attachment(self, attachment_id: int) -> Attachment | None:
        ...
