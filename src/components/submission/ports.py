"""
Submission component ports.

Protocol interfaces for the collaborators the orchestrator writes to.
"""

from __future__ import annotations

from typing import Protocol

from src.components.submission.models import ListingDraft
from src.domain.entities import ListingRecord
from src.domain.submission import CallerIdentity


class ContentStorePort(Protocol):
    """
    Listing persistence.

    Write methods raise PersistenceError on failure. Each call commits on its
    own, so an edit that fails part way keeps the writes made before it.
    """

    def get_record(self, record_id: int) -> ListingRecord | None:
        ...

    def create_or_update(self, draft: ListingDraft, actor_id: int | None, record_id: int = 0) -> int:
        """
        Insert a new listing (record_id == 0) or update an existing one.

        Custom field values in the draft are saved with the record.

        Returns:
            The listing id
        """
        ...

    def set_taxonomy(
        self, record_id: int, category_ids: tuple[int, ...], tag_ids: tuple[int, ...]
    ) -> None:
        """Replace all category and tag associations."""
        ...

    def set_or_clear_image(self, record_id: int, attachment_id: int | None) -> None:
        """Set the featured image, or remove it when attachment_id is None."""
        ...

    def delete(self, record_id: int) -> bool:
        ...


class SubmissionNotifierPort(Protocol):
    def notify_new_submission(self, record_id: int) -> None:
        ...


class CsrfVerifierPort(Protocol):
    def verify(self, token: str | None, identity: CallerIdentity) -> bool:
        ...


class FlashStorePort(Protocol):
    """Short-lived per-user storage of the last failed submission."""

    def store(self, user_id: int, errors: dict[str, list[str]], values: dict) -> None:
        ...

    def consume(self, user_id: int) -> tuple[dict[str, list[str]], dict]:
        ...
