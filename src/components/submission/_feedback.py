"""
Submission feedback: redirect targets and the per-user flash store.

Redirects only ever point at relative paths or the site's own host, so a
crafted redirect_to or Referer cannot bounce the submitter off-site.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from src.core.ports.ttl_store import TTLStorePort
from src.domain.submission import SubmissionRequest

ERRORS_KEY_PREFIX = "submission_errors:"
VALUES_KEY_PREFIX = "submission_values:"


def is_safe_redirect(url: str, home_url: str) -> bool:
    # Browsers read "\" as "/" and drop control characters, so "/\host" means "//host"
    if "\\" in url or any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in url):
        return False
    parts = urlsplit(url)
    if not parts.netloc:
        return not parts.scheme and url.startswith("/")
    if parts.scheme not in ("http", "https"):
        return False
    return parts.netloc.lower() == urlsplit(home_url).netloc.lower()


def add_query_args(url: str, args: dict[str, str]) -> str:
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in args]
    query.extend(args.items())
    return urlunsplit(parts._replace(query=urlencode(query)))


def _first_safe(candidates: list[str | None], home_url: str) -> str:
    for candidate in candidates:
        if candidate and is_safe_redirect(candidate, home_url):
            return candidate
    return home_url


def build_success_redirect(
    request: SubmissionRequest, home_url: str, record_id: int, is_update: bool
) -> str:
    """Requested target, else referer, else home, tagged with the outcome."""
    base = _first_safe([request.redirect_to, request.referer], home_url)
    args = {"submission": "success", "listing_id": str(record_id)}
    if is_update:
        args["is_update"] = "1"
    return add_query_args(base, args)


def build_error_redirect(request: SubmissionRequest, home_url: str) -> str:
    return _first_safe([request.referer], home_url)


def submitted_values(request: SubmissionRequest) -> dict[str, Any]:
    """Form values to re-populate the form after a failure. Never includes tokens."""
    return {
        "title": request.title,
        "content": request.content,
        "excerpt": request.excerpt,
        "category_ids": list(request.category_ids),
        "tag_ids": list(request.tag_ids),
        "custom_fields": dict(request.custom_fields),
        "existing_record_id": request.existing_record_id,
        "featured_image_reference": request.featured_image_reference,
    }


class TTLFlashStore:
    """Flash store over the shared TTL store."""

    def __init__(self, store: TTLStorePort, ttl_seconds: int = 300) -> None:
        self._store = store
        self.ttl_seconds = ttl_seconds

    def store(self, user_id: int, errors: dict[str, list[str]], values: dict) -> None:
        self._store.set_with_ttl(f"{ERRORS_KEY_PREFIX}{user_id}", errors, self.ttl_seconds)
        self._store.set_with_ttl(f"{VALUES_KEY_PREFIX}{user_id}", values, self.ttl_seconds)

    def consume(self, user_id: int) -> tuple[dict[str, list[str]], dict]:
        """Read and clear. Returns empty dicts when nothing is stored or it expired."""
        errors_key = f"{ERRORS_KEY_PREFIX}{user_id}"
        values_key = f"{VALUES_KEY_PREFIX}{user_id}"
        errors, _ = self._store.get(errors_key)
        values, _ = self._store.get(values_key)
        self._store.delete(errors_key)
        self._store.delete(values_key)
        return errors or {}, values or {}
