"""
Submission component.

Listing submission pipeline: permission, anti-abuse, validation, persistence
and notification, plus redirect and flash feedback.
"""

from src.components.submission._feedback import (
    TTLFlashStore,
    add_query_args,
    build_error_redirect,
    build_success_redirect,
    is_safe_redirect,
    submitted_values,
)
from src.components.submission.component import SubmissionOrchestrator
from src.components.submission.models import (
    EDIT_NOT_ALLOWED,
    LOGIN_REQUIRED,
    PERSISTENCE_FAILED,
    SECURITY_CHECK_FAILED,
    SUBMIT_NOT_ALLOWED,
    VALIDATION_FAILED,
    ErrorKind,
    ListingDraft,
    PersistenceError,
    SubmissionHooks,
    SubmissionOutcome,
    SubmissionState,
)
from src.components.submission.ports import (
    ContentStorePort,
    CsrfVerifierPort,
    FlashStorePort,
    SubmissionNotifierPort,
)

__all__ = [
    "SubmissionOrchestrator",
    # Feedback
    "TTLFlashStore",
    "add_query_args",
    "build_error_redirect",
    "build_success_redirect",
    "is_safe_redirect",
    "submitted_values",
    # Messages
    "EDIT_NOT_ALLOWED",
    "LOGIN_REQUIRED",
    "PERSISTENCE_FAILED",
    "SECURITY_CHECK_FAILED",
    "SUBMIT_NOT_ALLOWED",
    "VALIDATION_FAILED",
    # Models
    "ErrorKind",
    "ListingDraft",
    "PersistenceError",
    "SubmissionHooks",
    "SubmissionOutcome",
    "SubmissionState",
    # Ports
    "ContentStorePort",
    "CsrfVerifierPort",
    "FlashStorePort",
    "SubmissionNotifierPort",
]
