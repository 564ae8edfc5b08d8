"""
In-memory listing and media stores.

Used by tests and single-process development runs. Both implement the same
ports as the SQLite stores.
"""

from __future__ import annotations

from threading import Lock

from src.adapters.clock import SystemClock
from src.components.media import detect_mime_type
from src.components.submission import ListingDraft, PersistenceError
from src.core.ports.time import TimePort
from src.domain.entities import Attachment, ListingRecord
from src.domain.submission import UploadedFile


class InMemoryContentStore:
    """Implements ContentStorePort."""

    def __init__(self, time_port: TimePort | None = None) -> None:
        self._time = time_port if time_port is not None else SystemClock()
        self.records: dict[int, ListingRecord] = {}
        self._next_id = 1
        self._lock = Lock()

    def get_record(self, record_id: int) -> ListingRecord | None:
        record = self.records.get(record_id)
        return record.model_copy(deep=True) if record else None

    def create_or_update(self, draft: ListingDraft, actor_id: int | None, record_id: int = 0) -> int:
        with self._lock:
            now = self._time.now_utc()
            if record_id > 0:
                existing = self.records.get(record_id)
                if existing is None:
                    raise PersistenceError(f"Listing {record_id} does not exist")
                self.records[record_id] = existing.model_copy(
                    update={
                        "title": draft.title,
                        "content": draft.content,
                        "excerpt": draft.excerpt,
                        "status": draft.status,
                        "custom_fields": {**existing.custom_fields, **draft.custom_fields},
                        "updated_at": now,
                    }
                )
                return record_id

            new_id = self._next_id
            self._next_id += 1
            self.records[new_id] = ListingRecord(
                id=new_id,
                author_id=draft.author_id if draft.author_id is not None else actor_id,
                title=draft.title,
                content=draft.content,
                excerpt=draft.excerpt,
                status=draft.status,
                custom_fields=dict(draft.custom_fields),
                created_at=now,
                updated_at=now,
            )
            return new_id

    def set_taxonomy(
        self, record_id: int, category_ids: tuple[int, ...], tag_ids: tuple[int, ...]
    ) -> None:
        record = self._require(record_id)
        record.category_ids = list(category_ids)
        record.tag_ids = list(tag_ids)

    def set_or_clear_image(self, record_id: int, attachment_id: int | None) -> None:
        self._require(record_id).featured_image_id = attachment_id

    def delete(self, record_id: int) -> bool:
        with self._lock:
            return self.records.pop(record_id, None) is not None

    def _require(self, record_id: int) -> ListingRecord:
        record = self.records.get(record_id)
        if record is None:
            raise PersistenceError(f"Listing {record_id} does not exist")
        return record


class InMemoryMediaStore:
    """Implements MediaStorePort. Uploaded bytes are kept alongside the metadata."""

    def __init__(self, time_port: TimePort | None = None) -> None:
        self._time = time_port if time_port is not None else SystemClock()
        self.attachments: dict[int, Attachment] = {}
        self.blobs: dict[int, bytes] = {}
        self._next_id = 1
        self._lock = Lock()

    def add(self, owner_id: int | None, filename: str, mime_type: str, size_bytes: int = 0) -> int:
        """Register an existing attachment (fixtures and seeding)."""
        with self._lock:
            attachment_id = self._next_id
            self._next_id += 1
            self.attachments[attachment_id] = Attachment(
                id=attachment_id,
                owner_id=owner_id,
                filename=filename,
                mime_type=mime_type,
                size_bytes=size_bytes,
                created_at=self._time.now_utc(),
            )
            return attachment_id

    def get_attachment(self, attachment_id: int) -> Attachment | None:
        return self.attachments.get(attachment_id)

    def store_upload(self, upload: UploadedFile, owner_id: int | None) -> int:
        mime_type = detect_mime_type(upload.filename) or upload.content_type
        if not mime_type:
            raise PersistenceError(f"Cannot determine type of {upload.filename!r}")
        attachment_id = self.add(owner_id, upload.filename, mime_type, upload.size)
        self.blobs[attachment_id] = upload.data
        return attachment_id

    def delete(self, attachment_id: int) -> bool:
        with self._lock:
            self.blobs.pop(attachment_id, None)
            return self.attachments.pop(attachment_id, None) is not None
