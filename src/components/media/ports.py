"""
Media component ports.
"""

from __future__ import annotations

from typing import Protocol

from src.domain.entities import Attachment
from src.domain.submission import UploadedFile


class MediaStorePort(Protocol):
    """
    Attachment storage.

    store_upload raises PersistenceError when the file cannot be saved.
    """

    def get_attachment(self, attachment_id: int) -> Attachment | None:
        ...

    def store_upload(self, upload: UploadedFile, owner_id: int | None) -> int:
        """Persist an already validated upload and return its attachment id."""
        ...

    def delete(self, attachment_id: int) -> bool:
        ...
