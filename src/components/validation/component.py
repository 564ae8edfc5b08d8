"""
FieldValidationAggregator component.

Validates every submitted field and collects all problems in one pass so the
submitter sees the full list instead of fixing errors one at a time.

Passes:
1. Core fields (title, content, category, featured image)
2. Registered custom fields: required check, sanitize, validate
3. Cross-field validators

Invariants:
- No pass short-circuits another
- Required checks look at the raw value, before sanitization
- A featured image reference the caller may not use is dropped, never trusted
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Any

from src.components.validation.models import (
    CATEGORY_REQUIRED,
    CONTENT_REQUIRED,
    FEATURED_IMAGE_REQUIRED,
    TITLE_REQUIRED,
    CrossFieldValidator,
    FieldDefinition,
    FieldValidator,
    ValidatedFields,
    ValidateFieldsOutput,
    ValidationErrorSet,
)
from src.components.validation.ports import AttachmentLookupPort, FieldSchemaPort
from src.domain.policy import PolicyEngine
from src.domain.sanitize import (
    DEFAULT_POST_HTML,
    PostHtmlConfig,
    coerce_id_list,
    sanitize_post_html,
    sanitize_text_field,
    sanitize_textarea_field,
)
from src.domain.submission import CallerIdentity, SubmissionRequest
from src.rules.models import SubmissionRules

logger = logging.getLogger(__name__)


# --- Pure Functions ---


def is_empty_value(value: Any) -> bool:
    """None, blank strings and empty collections are empty. 0 is not."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def has_upload(request: SubmissionRequest) -> bool:
    upload = request.featured_image_upload
    return upload is not None and bool(upload.filename)


def max_length(label: str, limit: int) -> FieldValidator:
    """Validator rejecting string values longer than limit characters."""

    def _validate(value: Any) -> list[str]:
        if isinstance(value, str) and len(value) > limit:
            return [f"{label} must not exceed {limit} characters."]
        return []

    return _validate


def matches_pattern(label: str, pattern: str) -> FieldValidator:
    """Validator requiring non-empty string values to fully match pattern."""
    compiled = re.compile(pattern)

    def _validate(value: Any) -> list[str]:
        if isinstance(value, str) and value and not compiled.fullmatch(value):
            return [f"{label} format is invalid."]
        return []

    return _validate


# --- Aggregator ---


class FieldValidationAggregator:
    def __init__(
        self,
        rules: SubmissionRules,
        schema: FieldSchemaPort,
        attachments: AttachmentLookupPort,
        policy: PolicyEngine,
        cross_field_validators: Sequence[CrossFieldValidator] = (),
        html_config: PostHtmlConfig = DEFAULT_POST_HTML,
    ) -> None:
        self.rules = rules
        self._schema = schema
        self._attachments = attachments
        self._policy = policy
        self.cross_field_validators = list(cross_field_validators)
        self._html_config = html_config

    def validate(self, request: SubmissionRequest, identity: CallerIdentity) -> ValidateFieldsOutput:
        errors = ValidationErrorSet()

        title = sanitize_text_field(request.title)
        content = sanitize_post_html(request.content, self._html_config)
        excerpt = sanitize_textarea_field(request.excerpt)
        category_ids = tuple(coerce_id_list(request.category_ids))
        tag_ids = tuple(coerce_id_list(request.tag_ids))

        # Pass 1: core fields
        if self.rules.require_title and not title:
            errors.add("title", TITLE_REQUIRED)
        if self.rules.require_content and not content:
            errors.add("content", CONTENT_REQUIRED)
        if self.rules.require_category and not category_ids:
            errors.add("category_ids", CATEGORY_REQUIRED)

        featured_image_id = self.resolve_image_reference(request.featured_image_reference, identity)
        if (
            self.rules.require_featured_image
            and featured_image_id is None
            and not has_upload(request)
        ):
            errors.add("featured_image", FEATURED_IMAGE_REQUIRED)

        # Pass 2: registered custom fields
        custom_values = self._validate_custom_fields(request, errors)

        # Pass 3: cross-field rules
        values: dict[str, Any] = {
            "title": title,
            "content": content,
            "excerpt": excerpt,
            "category_ids": category_ids,
            "tag_ids": tag_ids,
            "featured_image_id": featured_image_id,
            **custom_values,
        }
        for validator in self.cross_field_validators:
            validator(values, errors, request)

        fields = ValidatedFields(
            title=title,
            content=content,
            excerpt=excerpt,
            category_ids=category_ids,
            tag_ids=tag_ids,
            custom_fields=custom_values,
            featured_image_id=featured_image_id,
        )
        return ValidateFieldsOutput(success=not errors.has_errors(), fields=fields, errors=errors)

    def resolve_image_reference(self, reference: Any, identity: CallerIdentity) -> int | None:
        """
        Return the attachment id if the caller may use it, else None.

        Missing, non-image, and foreign attachments all resolve to None.
        """
        attachment_id = coerce_id_list([reference])
        if not attachment_id:
            return None

        attachment = self._attachments.get_attachment(attachment_id[0])
        if attachment is None:
            logger.info("Dropping unknown featured image reference %s", attachment_id[0])
            return None
        if not self._policy.can_use_attachment(identity, attachment):
            logger.warning(
                "Dropping featured image %s not usable by user %s",
                attachment.id,
                identity.user_id,
            )
            return None
        return attachment.id

    def _validate_custom_fields(
        self, request: SubmissionRequest, errors: ValidationErrorSet
    ) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for definition in self._schema.list_fields(exclude_admin_only=True):
            if definition.admin_only:
                continue
            raw = self._raw_value(request, definition)

            if is_empty_value(raw):
                if definition.required:
                    errors.add(definition.name, f"{definition.label} is required.")
                    continue
                if raw is None:
                    continue

            value = definition.sanitize(raw)
            if definition.validate is not None:
                for message in definition.validate(value):
                    errors.add(definition.name, message)
            values[definition.name] = value
        return values

    @staticmethod
    def _raw_value(request: SubmissionRequest, definition: FieldDefinition) -> Any:
        raw = request.custom_fields.get(definition.name)
        if raw is None and definition.is_boolean:
            # Unchecked boxes are not posted at all
            return ""
        return raw
