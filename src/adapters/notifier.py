"""
Admin notification for new listing submissions.

Looks the listing up again so the message reflects what was actually saved,
then hands a plain-text email to the EmailPort.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from src.components.submission import ContentStorePort
from src.core.ports.email import EmailPort, EmailStatus
from src.rules.models import Rules

logger = logging.getLogger(__name__)

SUBJECT_TEMPLATE = "[{site}] New Listing Submission: {title}"
BODY_TEMPLATE = """A new listing has been submitted:

Title: {title}
Author: {author}
Status: {status}

Review the listing: {review_url}"""


class EmailSubmissionNotifier:
    """Implements SubmissionNotifierPort."""

    def __init__(
        self,
        content_store: ContentStorePort,
        email: EmailPort,
        rules: Rules,
        base_url: str = "",
        author_name: Callable[[int | None], str] | None = None,
    ) -> None:
        self._store = content_store
        self._email = email
        self._rules = rules
        self._base_url = base_url.rstrip("/")
        self._author_name = author_name or (
            lambda user_id: f"User #{user_id}" if user_id else "Guest"
        )

    def notify_new_submission(self, record_id: int) -> None:
        recipient = self._rules.notifications.admin_email
        if not recipient:
            logger.debug("No admin email configured; skipping notification")
            return

        record = self._store.get_record(record_id)
        if record is None:
            logger.warning("Listing %s vanished before notification", record_id)
            return

        review_path = self._rules.notifications.review_url_template.format(listing_id=record_id)
        subject = SUBJECT_TEMPLATE.format(site=self._rules.project.site_name, title=record.title)
        body = BODY_TEMPLATE.format(
            title=record.title,
            author=self._author_name(record.author_id),
            status=record.status,
            review_url=f"{self._base_url}{review_path}",
        )

        result = self._email.send_email(recipient=recipient, subject=subject, body_text=body)
        if result.status == EmailStatus.FAILED:
            logger.error("Admin notification for listing %s failed: %s", record_id, result.error)
