"""
Custom field registry.

Implements FieldSchemaPort. Fields come from the `fields` section of the
rules file; each field type maps to a sanitizer and a validator.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any
from urllib.parse import urlsplit

from src.components.validation import (
    FieldDefinition,
    FieldSanitizer,
    FieldValidator,
    matches_pattern,
    max_length,
)
from src.domain.sanitize import sanitize_text_field, sanitize_textarea_field
from src.rules.models import CustomFieldRules

EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@"
    r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)
TRUTHY = frozenset(["1", "on", "yes", "true"])


# --- Sanitizers ---


def sanitize_checkbox(value: Any) -> str:
    return "1" if str(value).strip().lower() in TRUTHY else ""


def sanitize_email(value: Any) -> str:
    return sanitize_text_field(value).lower()


def sanitize_number(value: Any) -> Any:
    text = sanitize_text_field(value)
    for cast in (int, float):
        try:
            return cast(text)
        except ValueError:
            continue
    return text


# --- Validators ---


def _url_validator(label: str) -> FieldValidator:
    def _validate(value: Any) -> list[str]:
        parts = urlsplit(str(value))
        if value and (parts.scheme not in ("http", "https") or not parts.netloc):
            return [f"{label} must be a valid URL."]
        return []

    return _validate


def _email_validator(label: str) -> FieldValidator:
    def _validate(value: Any) -> list[str]:
        if value and not EMAIL_REGEX.match(str(value)):
            return [f"{label} must be a valid email address."]
        return []

    return _validate


def _number_validator(label: str) -> FieldValidator:
    def _validate(value: Any) -> list[str]:
        if isinstance(value, str) and value:
            return [f"{label} must be a number."]
        return []

    return _validate


def _options_validator(label: str, options: list[str]) -> FieldValidator:
    allowed = set(options)

    def _validate(value: Any) -> list[str]:
        if value and value not in allowed:
            return [f"{label} contains an invalid selection."]
        return []

    return _validate


def _combine(validators: list[FieldValidator]) -> FieldValidator | None:
    if not validators:
        return None

    def _validate(value: Any) -> list[str]:
        messages: list[str] = []
        for validator in validators:
            messages.extend(validator(value))
        return messages

    return _validate


SANITIZERS: dict[str, FieldSanitizer] = {
    "text": sanitize_text_field,
    "tel": sanitize_text_field,
    "url": sanitize_text_field,
    "email": sanitize_email,
    "number": sanitize_number,
    "select": sanitize_text_field,
    "radio": sanitize_text_field,
    "textarea": sanitize_textarea_field,
    "checkbox": sanitize_checkbox,
    "switch": sanitize_checkbox,
}


def build_field(rule: CustomFieldRules) -> FieldDefinition:
    if rule.type not in SANITIZERS:
        raise ValueError(f"Unknown field type {rule.type!r} for field {rule.name!r}")

    validators: list[FieldValidator] = []
    if rule.type == "url":
        validators.append(_url_validator(rule.label))
    elif rule.type == "email":
        validators.append(_email_validator(rule.label))
    elif rule.type == "number":
        validators.append(_number_validator(rule.label))
    if rule.options:
        validators.append(_options_validator(rule.label, rule.options))
    if rule.max_length is not None:
        validators.append(max_length(rule.label, rule.max_length))
    if rule.pattern:
        validators.append(matches_pattern(rule.label, rule.pattern))

    return FieldDefinition(
        name=rule.name,
        label=rule.label,
        field_type=rule.type,
        required=rule.required,
        admin_only=rule.admin_only,
        sanitize=SANITIZERS[rule.type],
        validate=_combine(validators),
    )


class FieldRegistry:
    def __init__(self, fields: Iterable[FieldDefinition] = ()) -> None:
        self._fields: dict[str, FieldDefinition] = {}
        for definition in fields:
            self.register(definition)

    @classmethod
    def from_rules(cls, rules: Iterable[CustomFieldRules]) -> FieldRegistry:
        return cls(build_field(rule) for rule in rules)

    def register(self, definition: FieldDefinition) -> None:
        if definition.name in self._fields:
            raise ValueError(f"Field {definition.name!r} is already registered")
        self._fields[definition.name] = definition

    def get(self, name: str) -> FieldDefinition | None:
        return self._fields.get(name)

    def list_fields(self, exclude_admin_only: bool = True) -> list[FieldDefinition]:
        return [
            definition
            for definition in self._fields.values()
            if not (exclude_admin_only and definition.admin_only)
        ]
