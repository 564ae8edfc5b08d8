"""
SQLite listing and media stores.

Implements ContentStorePort and MediaStorePort. Schema lives in migrations/.
Every sqlite3 error on a write surfaces as PersistenceError so the pipeline
can roll back and report a retryable failure.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from typing import Any

from src.adapters.clock import SystemClock
from src.adapters.fs.filestore import FileSystemStore, safe_filename
from src.components.media import detect_mime_type
from src.components.submission import ListingDraft, PersistenceError
from src.core.ports.time import TimePort
from src.domain.entities import Attachment, ListingRecord
from src.domain.submission import UploadedFile

logger = logging.getLogger(__name__)

CATEGORY = "category"
TAG = "tag"


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def parse_dt(s: str) -> datetime:
    return datetime.fromisoformat(s)


class SQLiteRepoBase:
    """Base class for SQLite stores."""

    def __init__(
        self,
        db_path: str,
        connection: sqlite3.Connection | None = None,
        time_port: TimePort | None = None,
    ):
        self.db_path = db_path
        self._external_conn = connection
        self._time = time_port if time_port is not None else SystemClock()

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _should_close(self) -> bool:
        return self._external_conn is None

    def _write(self, operation: str, fn: Any) -> Any:
        """Run fn(conn) in a transaction, mapping sqlite errors to PersistenceError."""
        conn = self._get_conn()
        try:
            result = fn(conn)
            conn.commit()
            return result
        except PersistenceError:
            conn.rollback()
            raise
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(f"{operation} failed: {e}") from e
        finally:
            if self._should_close():
                conn.close()


# -----------------------------------------------------------------------------
# Listings
# -----------------------------------------------------------------------------


class SQLiteListingStore(SQLiteRepoBase):
    def get_record(self, record_id: int) -> ListingRecord | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM listings WHERE id = ?", (record_id,)).fetchone()
            if not row:
                return None
            terms = conn.execute(
                "SELECT taxonomy, term_id FROM listing_terms WHERE listing_id = ? ORDER BY position",
                (record_id,),
            ).fetchall()
            fields = conn.execute(
                "SELECT name, value_json FROM listing_fields WHERE listing_id = ?",
                (record_id,),
            ).fetchall()
            return self._map_row(row, terms, fields)
        finally:
            if self._should_close():
                conn.close()

    def create_or_update(self, draft: ListingDraft, actor_id: int | None, record_id: int = 0) -> int:
        now = self._time.now_utc().isoformat()

        def _save(conn: sqlite3.Connection) -> int:
            if record_id > 0:
                cursor = conn.execute(
                    """
                    UPDATE listings
                    SET title = ?, content = ?, excerpt = ?, status = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (draft.title, draft.content, draft.excerpt, draft.status, now, record_id),
                )
                if cursor.rowcount == 0:
                    raise PersistenceError(f"Listing {record_id} does not exist")
                listing_id = record_id
            else:
                author_id = draft.author_id if draft.author_id is not None else actor_id
                cursor = conn.execute(
                    """
                    INSERT INTO listings
                    (author_id, title, content, excerpt, status, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (author_id, draft.title, draft.content, draft.excerpt, draft.status, now, now),
                )
                listing_id = int(cursor.lastrowid or 0)

            for name, value in draft.custom_fields.items():
                conn.execute(
                    """
                    INSERT INTO listing_fields (listing_id, name, value_json) VALUES (?, ?, ?)
                    ON CONFLICT(listing_id, name) DO UPDATE SET value_json = excluded.value_json
                    """,
                    (listing_id, name, json.dumps(value)),
                )
            return listing_id

        return int(self._write("Saving listing", _save))

    def set_taxonomy(
        self, record_id: int, category_ids: tuple[int, ...], tag_ids: tuple[int, ...]
    ) -> None:
        def _assign(conn: sqlite3.Connection) -> None:
            conn.execute("DELETE FROM listing_terms WHERE listing_id = ?", (record_id,))
            for taxonomy, term_ids in ((CATEGORY, category_ids), (TAG, tag_ids)):
                for position, term_id in enumerate(term_ids):
                    conn.execute(
                        """
                        INSERT INTO listing_terms (listing_id, taxonomy, term_id, position)
                        VALUES (?, ?, ?, ?)
                        """,
                        (record_id, taxonomy, term_id, position),
                    )

        self._write("Assigning taxonomy", _assign)

    def set_or_clear_image(self, record_id: int, attachment_id: int | None) -> None:
        def _set(conn: sqlite3.Connection) -> None:
            cursor = conn.execute(
                "UPDATE listings SET featured_image_id = ? WHERE id = ?",
                (attachment_id, record_id),
            )
            if cursor.rowcount == 0:
                raise PersistenceError(f"Listing {record_id} does not exist")

        self._write("Setting featured image", _set)

    def delete(self, record_id: int) -> bool:
        def _delete(conn: sqlite3.Connection) -> bool:
            cursor = conn.execute("DELETE FROM listings WHERE id = ?", (record_id,))
            return cursor.rowcount > 0

        return bool(self._write("Deleting listing", _delete))

    def _map_row(
        self,
        row: dict[str, Any],
        terms: list[dict[str, Any]],
        fields: list[dict[str, Any]],
    ) -> ListingRecord:
        return ListingRecord(
            id=row["id"],
            author_id=row["author_id"],
            title=row["title"],
            content=row["content"],
            excerpt=row["excerpt"],
            status=row["status"],
            category_ids=[t["term_id"] for t in terms if t["taxonomy"] == CATEGORY],
            tag_ids=[t["term_id"] for t in terms if t["taxonomy"] == TAG],
            custom_fields={f["name"]: json.loads(f["value_json"]) for f in fields},
            featured_image_id=row["featured_image_id"],
            created_at=parse_dt(row["created_at"]),
            updated_at=parse_dt(row["updated_at"]),
        )


# -----------------------------------------------------------------------------
# Media
# -----------------------------------------------------------------------------


class SQLiteMediaStore(SQLiteRepoBase):
    """Attachment metadata in SQLite, bytes in a FileSystemStore."""

    def __init__(
        self,
        db_path: str,
        file_store: FileSystemStore,
        connection: sqlite3.Connection | None = None,
        time_port: TimePort | None = None,
    ):
        super().__init__(db_path, connection, time_port)
        self.file_store = file_store

    def get_attachment(self, attachment_id: int) -> Attachment | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM attachments WHERE id = ?", (attachment_id,)
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def store_upload(self, upload: UploadedFile, owner_id: int | None) -> int:
        mime_type = detect_mime_type(upload.filename) or upload.content_type
        if not mime_type:
            raise PersistenceError(f"Cannot determine type of {upload.filename!r}")
        now = self._time.now_utc()

        def _insert(conn: sqlite3.Connection) -> int:
            cursor = conn.execute(
                """
                INSERT INTO attachments (owner_id, filename, mime_type, size_bytes, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (owner_id, upload.filename, mime_type, upload.size, now.isoformat()),
            )
            attachment_id = int(cursor.lastrowid or 0)
            relative = f"{now:%Y/%m}/{attachment_id}-{safe_filename(upload.filename)}"
            try:
                storage_path = self.file_store.save(relative, upload.data)
            except OSError as e:
                raise PersistenceError(f"Writing {relative} failed: {e}") from e
            conn.execute(
                "UPDATE attachments SET storage_path = ? WHERE id = ?",
                (storage_path, attachment_id),
            )
            return attachment_id

        attachment_id = int(self._write("Storing upload", _insert))
        logger.info("Stored upload %s as attachment %s", upload.filename, attachment_id)
        return attachment_id

    def delete(self, attachment_id: int) -> bool:
        attachment = self.get_attachment(attachment_id)
        if attachment is None:
            return False

        def _delete(conn: sqlite3.Connection) -> bool:
            cursor = conn.execute("DELETE FROM attachments WHERE id = ?", (attachment_id,))
            return cursor.rowcount > 0

        deleted = bool(self._write("Deleting attachment", _delete))
        if attachment.storage_path:
            self.file_store.remove(attachment.storage_path)
        return deleted

    def _map_row(self, row: dict[str, Any]) -> Attachment:
        return Attachment(
            id=row["id"],
            owner_id=row["owner_id"],
            filename=row["filename"],
            mime_type=row["mime_type"],
            size_bytes=row["size_bytes"],
            storage_path=row["storage_path"],
            created_at=parse_dt(row["created_at"]),
        )
