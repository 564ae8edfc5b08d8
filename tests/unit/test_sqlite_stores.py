"""
SQLite listing/media store tests.

Runs the real migrations into a temporary database.
"""

import sqlite3
from pathlib import Path

import pytest

from src.adapters.clock import FixedClock
from src.adapters.fs.filestore import FileSystemStore
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite.repos import SQLiteListingStore, SQLiteMediaStore
from src.components.submission import ListingDraft, PersistenceError
from src.domain.submission import UploadedFile

MIGRATIONS_DIR = Path(__file__).parent.parent.parent / "migrations"


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "intake.db")
    SQLiteMigrator(path, MIGRATIONS_DIR).run_migrations()
    return path


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def listings(db_path, clock):
    return SQLiteListingStore(db_path, time_port=clock)


@pytest.fixture
def file_store(tmp_path):
    return FileSystemStore(tmp_path / "media")


@pytest.fixture
def media(db_path, file_store, clock):
    return SQLiteMediaStore(db_path, file_store, time_port=clock)


def _draft(**overrides):
    values = {
        "title": "Corner Cafe",
        "content": "<p>Coffee</p>",
        "excerpt": "Coffee",
        "status": "pending",
        "author_id": 5,
        "custom_fields": {"phone": "555", "wheelchair_access": "1"},
    }
    values.update(overrides)
    return ListingDraft(**values)


# --- Migrations ---


def test_migrations_apply_once(tmp_path):
    path = str(tmp_path / "m.db")
    migrator = SQLiteMigrator(path, MIGRATIONS_DIR)

    assert migrator.run_migrations() == ["0001_listings.sql"]
    assert migrator.run_migrations() == []
    assert migrator.applied_migrations() == {"0001_listings.sql"}


def test_broken_migration_raises(tmp_path):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "0001_bad.sql").write_text("CREATE TABLE (;")

    with pytest.raises(RuntimeError, match="0001_bad.sql"):
        SQLiteMigrator(str(tmp_path / "bad.db"), migrations).run_migrations()


# --- Listings ---


def test_create_and_read(listings, clock):
    listing_id = listings.create_or_update(_draft(), actor_id=5)
    listings.set_taxonomy(listing_id, (3, 1), (9,))

    record = listings.get_record(listing_id)
    assert record.title == "Corner Cafe"
    assert record.author_id == 5
    assert record.category_ids == [3, 1]
    assert record.tag_ids == [9]
    assert record.custom_fields == {"phone": "555", "wheelchair_access": "1"}
    assert record.created_at == clock.now_utc()


def test_anonymous_listing_has_no_author(listings):
    listing_id = listings.create_or_update(_draft(author_id=None), actor_id=None)
    assert listings.get_record(listing_id).author_id is None


def test_update_keeps_author_and_merges_fields(listings, clock):
    listing_id = listings.create_or_update(_draft(), actor_id=5)
    clock.advance(60)

    same_id = listings.create_or_update(
        _draft(title="Renamed", author_id=9, custom_fields={"phone": "777"}),
        actor_id=9,
        record_id=listing_id,
    )

    record = listings.get_record(listing_id)
    assert same_id == listing_id
    assert record.title == "Renamed"
    assert record.author_id == 5
    assert record.custom_fields == {"phone": "777", "wheelchair_access": "1"}
    assert record.updated_at > record.created_at


def test_update_missing_listing(listings):
    with pytest.raises(PersistenceError):
        listings.create_or_update(_draft(), actor_id=5, record_id=404)


def test_taxonomy_replaced(listings):
    listing_id = listings.create_or_update(_draft(), actor_id=5)
    listings.set_taxonomy(listing_id, (1, 2), (3,))
    listings.set_taxonomy(listing_id, (4,), ())

    record = listings.get_record(listing_id)
    assert record.category_ids == [4]
    assert record.tag_ids == []


def test_taxonomy_on_missing_listing_is_persistence_error(listings):
    with pytest.raises(PersistenceError, match="Assigning taxonomy"):
        listings.set_taxonomy(404, (1,), ())


def test_featured_image_set_and_cleared(listings):
    listing_id = listings.create_or_update(_draft(), actor_id=5)
    listings.set_or_clear_image(listing_id, 12)
    assert listings.get_record(listing_id).featured_image_id == 12
    listings.set_or_clear_image(listing_id, None)
    assert listings.get_record(listing_id).featured_image_id is None


def test_delete_cascades(listings, db_path):
    listing_id = listings.create_or_update(_draft(), actor_id=5)
    listings.set_taxonomy(listing_id, (1,), (2,))

    assert listings.delete(listing_id) is True
    assert listings.delete(listing_id) is False
    assert listings.get_record(listing_id) is None

    conn = sqlite3.connect(db_path)
    try:
        orphans = conn.execute("SELECT COUNT(*) FROM listing_terms").fetchone()[0]
        orphan_fields = conn.execute("SELECT COUNT(*) FROM listing_fields").fetchone()[0]
    finally:
        conn.close()
    assert orphans == 0
    assert orphan_fields == 0


def test_sqlite_errors_become_persistence_errors(tmp_path):
    # Database without the schema
    store = SQLiteListingStore(str(tmp_path / "empty.db"))
    with pytest.raises(PersistenceError, match="Saving listing"):
        store.create_or_update(_draft(), actor_id=5)


# --- Media ---


def test_store_upload_writes_bytes(media, file_store):
    upload = UploadedFile(filename="../My Photo!.PNG", content_type="image/png", size=3, data=b"png")
    attachment_id = media.store_upload(upload, owner_id=5)

    attachment = media.get_attachment(attachment_id)
    assert attachment.owner_id == 5
    assert attachment.mime_type == "image/png"
    assert attachment.size_bytes == 3
    assert attachment.storage_path == f"2025/01/{attachment_id}-My-Photo-.PNG"
    assert file_store.read(attachment.storage_path) == b"png"


def test_delete_attachment_removes_file(media, file_store):
    attachment_id = media.store_upload(
        UploadedFile(filename="a.jpg", content_type="image/jpeg", size=1, data=b"j"), owner_id=None
    )
    path = media.get_attachment(attachment_id).storage_path

    assert media.delete(attachment_id) is True
    assert media.get_attachment(attachment_id) is None
    with pytest.raises(FileNotFoundError):
        file_store.read(path)
    assert media.delete(attachment_id) is False


def test_unwritable_store_rolls_back(media, file_store, db_path, monkeypatch):
    def refuse(relative, data):
        raise OSError("read-only filesystem")

    monkeypatch.setattr(file_store, "save", refuse)

    with pytest.raises(PersistenceError):
        media.store_upload(UploadedFile(filename="a.png", size=1, data=b"p"), owner_id=5)

    conn = sqlite3.connect(db_path)
    try:
        count = conn.execute("SELECT COUNT(*) FROM attachments").fetchone()[0]
    finally:
        conn.close()
    assert count == 0
