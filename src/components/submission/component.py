"""
SubmissionOrchestrator component.

Runs one listing submission from receipt to admin notification.

States:
    RECEIVED -> AUTHENTICATED -> ANTI_ABUSE_CHECKED -> VALIDATED -> PERSISTED -> NOTIFIED

Key behaviors:
- Permission checks run before anti-abuse checks, so a forbidden edit never
  touches the rate limit counter
- All field and upload errors are reported together
- A create that fails after the record was written is rolled back
- Notification and after-submission hook failures never fail the submission
"""

from __future__ import annotations

import logging
from dataclasses import replace

from src.components.antiabuse import AntiAbuseGate
from src.components.media import MediaStorePort, validate_with_rules
from src.components.submission._feedback import (
    build_error_redirect,
    build_success_redirect,
    submitted_values,
)
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
from src.components.validation import FieldValidationAggregator, ValidationErrorSet, has_upload
from src.domain.entities import ListingRecord
from src.domain.policy import PolicyEngine
from src.domain.submission import CallerIdentity, SubmissionRequest, UploadedFile
from src.rules.models import Rules

logger = logging.getLogger(__name__)


def _failure(
    state: SubmissionState,
    kind: ErrorKind,
    message: str,
    errors: ValidationErrorSet | None = None,
) -> SubmissionOutcome:
    return SubmissionOutcome(
        success=False,
        state=state,
        error_kind=kind,
        message=message,
        errors=errors if errors is not None else ValidationErrorSet(),
    )


class SubmissionOrchestrator:
    def __init__(
        self,
        rules: Rules,
        policy: PolicyEngine,
        csrf: CsrfVerifierPort,
        gate: AntiAbuseGate,
        aggregator: FieldValidationAggregator,
        content_store: ContentStorePort,
        media_store: MediaStorePort,
        notifier: SubmissionNotifierPort | None = None,
        flash: FlashStorePort | None = None,
        hooks: SubmissionHooks | None = None,
    ) -> None:
        self.rules = rules
        self.policy = policy
        self.csrf = csrf
        self.gate = gate
        self.aggregator = aggregator
        self.content_store = content_store
        self.media_store = media_store
        self.notifier = notifier
        self.flash = flash
        self.hooks = hooks or SubmissionHooks()

    def submit(self, request: SubmissionRequest, identity: CallerIdentity) -> SubmissionOutcome:
        """
        Process a submission and attach redirect and flash feedback.

        Returns:
            Outcome; never raises for expected failures
        """
        outcome = self._process(request, identity)
        home_url = self.rules.project.home_url

        if outcome.success:
            assert outcome.record_id is not None
            return replace(
                outcome,
                redirect_url=build_success_redirect(
                    request, home_url, outcome.record_id, outcome.is_update
                ),
            )

        values = None
        if identity.is_authenticated:
            values = submitted_values(request)
            if self.flash is not None:
                assert identity.user_id is not None
                errors = outcome.errors.to_dict()
                if not errors and outcome.error_kind is not None and outcome.message:
                    errors = {outcome.error_kind.value: [outcome.message]}
                self.flash.store(identity.user_id, errors, values)

        return replace(
            outcome,
            is_update=request.is_update,
            redirect_url=build_error_redirect(request, home_url),
            submitted_values=values,
        )

    # --- State transitions ---

    def _process(self, request: SubmissionRequest, identity: CallerIdentity) -> SubmissionOutcome:
        # RECEIVED -> AUTHENTICATED
        if self.rules.security.csrf.enabled and not self.csrf.verify(request.csrf_token, identity):
            logger.warning("CSRF verification failed for user %s", identity.user_id)
            return _failure(SubmissionState.RECEIVED, ErrorKind.SECURITY, SECURITY_CHECK_FAILED)

        denied = self._check_submit_permission(request, identity)
        if denied is not None:
            return denied

        existing: ListingRecord | None = None
        if request.is_update:
            existing = self.content_store.get_record(request.existing_record_id)
            if existing is None or not self._can_edit(identity, existing):
                logger.warning(
                    "User %s denied edit of listing %s",
                    identity.user_id,
                    request.existing_record_id,
                )
                return _failure(SubmissionState.RECEIVED, ErrorKind.PERMISSION, EDIT_NOT_ALLOWED)

        for before_hook in self.hooks.before_submission:
            before_hook(request, request.existing_record_id)

        # AUTHENTICATED -> ANTI_ABUSE_CHECKED
        spam_cfg = self.rules.spam_protection
        if spam_cfg.enabled and (not request.is_update or self.rules.submission.spam_checks_on_edit):
            decision = self.gate.evaluate(request, identity)
            if not decision.passed:
                return _failure(
                    SubmissionState.AUTHENTICATED,
                    ErrorKind.SPAM,
                    decision.message or "",
                )

        # ANTI_ABUSE_CHECKED -> VALIDATED
        validation = self.aggregator.validate(request, identity)
        errors = ValidationErrorSet()
        errors.merge(validation.errors)
        upload = request.featured_image_upload if has_upload(request) else None
        if upload is not None:
            upload_result = validate_with_rules(upload, self.rules.uploads)
            for error in upload_result.errors:
                errors.add(error.field, error.message)
        if errors.has_errors():
            logger.info("Submission rejected with %d validation errors", len(errors))
            return _failure(
                SubmissionState.ANTI_ABUSE_CHECKED,
                ErrorKind.VALIDATION,
                VALIDATION_FAILED,
                errors,
            )

        fields = validation.fields
        draft = ListingDraft(
            title=fields.title,
            content=fields.content,
            excerpt=fields.excerpt,
            status=self._resolve_status(identity, existing),
            author_id=existing.author_id if existing is not None else identity.user_id,
            category_ids=fields.category_ids,
            tag_ids=fields.tag_ids,
            custom_fields=dict(fields.custom_fields),
            featured_image_id=fields.featured_image_id,
        )

        # VALIDATED -> PERSISTED
        try:
            record_id, draft = self._persist(draft, identity, request, upload)
        except PersistenceError:
            logger.exception("Failed to save listing submission")
            return _failure(SubmissionState.VALIDATED, ErrorKind.PERSISTENCE, PERSISTENCE_FAILED)

        is_new = not request.is_update
        logger.info(
            "Listing %s %s by user %s (status=%s)",
            record_id,
            "created" if is_new else "updated",
            identity.user_id,
            draft.status,
        )

        for after_hook in self.hooks.after_submission:
            try:
                after_hook(record_id, draft, is_new)
            except Exception:
                logger.exception("after_submission hook failed for listing %s", record_id)

        state = SubmissionState.PERSISTED

        # PERSISTED -> NOTIFIED
        if is_new and self.rules.submission.send_admin_notification and self.notifier is not None:
            try:
                self.notifier.notify_new_submission(record_id)
            except Exception:
                logger.exception("Admin notification failed for listing %s", record_id)
            state = SubmissionState.NOTIFIED

        return SubmissionOutcome(
            success=True,
            state=state,
            record_id=record_id,
            is_update=request.is_update,
        )

    def _check_submit_permission(
        self, request: SubmissionRequest, identity: CallerIdentity
    ) -> SubmissionOutcome | None:
        if self.rules.submission.require_login and not identity.is_authenticated:
            return _failure(SubmissionState.RECEIVED, ErrorKind.PERMISSION, LOGIN_REQUIRED)
        if not all(hook(identity, request) for hook in self.hooks.can_submit):
            return _failure(SubmissionState.RECEIVED, ErrorKind.PERMISSION, SUBMIT_NOT_ALLOWED)
        return None

    def _can_edit(self, identity: CallerIdentity, record: ListingRecord) -> bool:
        if self.policy.can_edit_listing(identity, record):
            return True
        return any(hook(identity, record) for hook in self.hooks.can_edit)

    def _resolve_status(self, identity: CallerIdentity, existing: ListingRecord | None) -> str:
        if existing is None:
            status = self.rules.submission.default_status
            for default_hook in self.hooks.default_status:
                status = default_hook(status, identity)
            return status

        status = existing.status
        for edit_hook in self.hooks.edit_status:
            status = edit_hook(status, existing, identity)
        return status

    def _persist(
        self,
        draft: ListingDraft,
        identity: CallerIdentity,
        request: SubmissionRequest,
        upload: UploadedFile | None,
    ) -> tuple[int, ListingDraft]:
        """
        Write the listing, its taxonomy and its featured image.

        On a create, a failure after the insert deletes the new record and any
        image stored for it before re-raising. An edit is not atomic: the
        updated fields stay, but an image stored for the edit is deleted.
        """
        is_new = not request.is_update
        record_id = self.content_store.create_or_update(
            draft, identity.user_id, request.existing_record_id
        )

        stored_attachment: int | None = None
        try:
            self.content_store.set_taxonomy(record_id, draft.category_ids, draft.tag_ids)

            image_id = draft.featured_image_id
            if upload is not None:
                stored_attachment = self.media_store.store_upload(upload, identity.user_id)
                image_id = stored_attachment
            self.content_store.set_or_clear_image(record_id, image_id)
        except PersistenceError:
            if is_new:
                self._rollback(record_id, stored_attachment)
            else:
                self._discard_attachment(stored_attachment)
            raise

        return record_id, replace(draft, featured_image_id=image_id)

    def _rollback(self, record_id: int, attachment_id: int | None) -> None:
        logger.warning("Rolling back partially saved listing %s", record_id)
        try:
            self.content_store.delete(record_id)
        except PersistenceError:
            logger.exception("Rollback of listing %s failed", record_id)
        self._discard_attachment(attachment_id)

    def _discard_attachment(self, attachment_id: int | None) -> None:
        if attachment_id is None:
            return
        try:
            self.media_store.delete(attachment_id)
        except PersistenceError:
            logger.exception("Could not delete orphaned attachment %s", attachment_id)
