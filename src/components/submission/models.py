"""
Submission component models.

A submission moves through a fixed sequence of states. Every transition can
fail, and the failure kind decides how much detail the submitter is shown.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from src.components.validation import ValidationErrorSet
from src.domain.entities import ListingRecord
from src.domain.submission import CallerIdentity, SubmissionRequest

SECURITY_CHECK_FAILED = "Security check failed. Please try again."
LOGIN_REQUIRED = "You must be logged in to submit a listing."
SUBMIT_NOT_ALLOWED = "You do not have permission to submit listings."
EDIT_NOT_ALLOWED = "You do not have permission to edit this listing."
VALIDATION_FAILED = "Please correct the errors below."
PERSISTENCE_FAILED = "Failed to save listing. Please try again."


class SubmissionState(Enum):
    RECEIVED = "received"
    AUTHENTICATED = "authenticated"
    ANTI_ABUSE_CHECKED = "anti_abuse_checked"
    VALIDATED = "validated"
    PERSISTED = "persisted"
    NOTIFIED = "notified"


class ErrorKind(Enum):
    SECURITY = "security"
    SPAM = "spam"
    PERMISSION = "permission"
    VALIDATION = "validation"
    PERSISTENCE = "persistence"


class PersistenceError(Exception):
    """A content or media store could not complete a write."""


@dataclass(frozen=True)
class ListingDraft:
    """Validated, sanitized listing that has not been written yet."""

    title: str
    content: str
    excerpt: str
    status: str
    author_id: int | None
    category_ids: tuple[int, ...] = ()
    tag_ids: tuple[int, ...] = ()
    custom_fields: dict[str, Any] = field(default_factory=dict)
    featured_image_id: int | None = None


# --- Extension Hooks ---

CanSubmitHook = Callable[[CallerIdentity, SubmissionRequest], bool]
CanEditHook = Callable[[CallerIdentity, ListingRecord], bool]
DefaultStatusHook = Callable[[str, CallerIdentity], str]
EditStatusHook = Callable[[str, ListingRecord, CallerIdentity], str]
BeforeSubmissionHook = Callable[[SubmissionRequest, int], None]
AfterSubmissionHook = Callable[[int, ListingDraft, bool], None]


@dataclass
class SubmissionHooks:
    """
    Extension points around the pipeline.

    can_submit: every hook must return True
    can_edit: any hook returning True grants edit rights the policy denied
    default_status / edit_status: applied in order, each sees the previous result
    before_submission: runs once permission checks pass, with the target record id
    after_submission: runs after a successful save; failures are logged only
    """

    can_submit: list[CanSubmitHook] = field(default_factory=list)
    can_edit: list[CanEditHook] = field(default_factory=list)
    default_status: list[DefaultStatusHook] = field(default_factory=list)
    edit_status: list[EditStatusHook] = field(default_factory=list)
    before_submission: list[BeforeSubmissionHook] = field(default_factory=list)
    after_submission: list[AfterSubmissionHook] = field(default_factory=list)


# --- Output ---


@dataclass(frozen=True)
class SubmissionOutcome:
    """
    Result of one submission attempt.

    state is the last state reached. For failures error_kind and message are
    set; errors carries the per-field messages of a validation failure.
    """

    success: bool
    state: SubmissionState
    record_id: int | None = None
    is_update: bool = False
    error_kind: ErrorKind | None = None
    message: str | None = None
    errors: ValidationErrorSet = field(default_factory=ValidationErrorSet)
    redirect_url: str | None = None
    submitted_values: dict[str, Any] | None = None
