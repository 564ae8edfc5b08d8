from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

# --- Enums / Literals ---
RoleType = Literal["admin", "editor", "contributor", "subscriber"]
ListingStatus = Literal["draft", "pending", "publish", "private"]


def _utcnow() -> datetime:
    return datetime.now(UTC)


# --- Listings ---


class ListingRecord(BaseModel):
    id: int
    author_id: int | None = None  # None for anonymous submissions
    title: str
    content: str = ""
    excerpt: str = ""
    status: str = "pending"
    category_ids: list[int] = Field(default_factory=list)
    tag_ids: list[int] = Field(default_factory=list)
    custom_fields: dict[str, Any] = Field(default_factory=dict)
    featured_image_id: int | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


# --- Media ---


class Attachment(BaseModel):
    id: int
    owner_id: int | None = None
    filename: str
    mime_type: str
    size_bytes: int
    storage_path: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")
