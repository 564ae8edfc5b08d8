"""
Submission request value types.

Shared by the anti-abuse, validation and submission components. A request is
collected once per inbound form post and never mutated afterwards.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class CallerIdentity:
    """Who is submitting. user_id is None for anonymous callers."""

    user_id: int | None = None
    roles: tuple[str, ...] = ()
    display_name: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None and self.user_id > 0


ANONYMOUS = CallerIdentity()


@dataclass(frozen=True)
class UploadedFile:
    """Uploaded file part as handed over by the transport layer."""

    filename: str
    content_type: str | None = None
    size: int = 0
    error_code: int = 0  # 0 = transport reported success
    data: bytes = b""


@dataclass(frozen=True)
class SubmissionRequest:
    """Raw input bag for one listing submission."""

    title: str = ""
    content: str = ""
    excerpt: str = ""
    category_ids: tuple[Any, ...] = ()
    tag_ids: tuple[Any, ...] = ()
    custom_fields: Mapping[str, Any] = field(default_factory=dict)
    existing_record_id: int = 0  # 0 = create
    featured_image_reference: int = 0  # id of a previously uploaded attachment
    featured_image_upload: UploadedFile | None = None
    honeypot_value: str | None = None  # None when the field was not posted
    form_token: str | None = None
    csrf_token: str | None = None
    remote_addr: str = ""
    forwarded_headers: Mapping[str, str] = field(default_factory=dict)
    referer: str | None = None
    redirect_to: str | None = None

    @property
    def is_update(self) -> bool:
        return self.existing_record_id > 0
