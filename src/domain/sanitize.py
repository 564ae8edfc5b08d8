"""
Input sanitizers for submitted listing fields.

Title and excerpt are reduced to plain text; the listing body keeps a small
allowlist of formatting tags with link protocols checked.
"""

from __future__ import annotations

import html
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

# Regex patterns for HTML parsing
TAG_PATTERN = re.compile(r"<(/?)(\w+)([^>]*)>", re.IGNORECASE)
ANY_TAG_PATTERN = re.compile(r"<[^>]*>")
ATTR_PATTERN = re.compile(r'(\w+)\s*=\s*(?:"([^"]*)"|\'([^\']*)\'|(\S+))', re.IGNORECASE)
DANGEROUS_BLOCK_PATTERN = re.compile(
    r"<(script|style|iframe|object)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL
)
WHITESPACE_PATTERN = re.compile(r"\s+")


@dataclass(frozen=True)
class PostHtmlConfig:
    """Allowlist for the listing body."""

    allow_tags: frozenset[str] = field(
        default_factory=lambda: frozenset(
            ["p", "br", "strong", "em", "b", "i", "ul", "ol", "li", "blockquote", "h2", "h3", "h4", "a"]
        )
    )
    allow_attrs: dict[str, frozenset[str]] = field(
        default_factory=lambda: {"a": frozenset(["href", "title"])}
    )
    forbid_protocols: frozenset[str] = field(
        default_factory=lambda: frozenset(["javascript:", "data:", "vbscript:"])
    )


DEFAULT_POST_HTML = PostHtmlConfig()


def strip_tags(value: str) -> str:
    """Remove script/style blocks with their content, then every remaining tag."""
    value = DANGEROUS_BLOCK_PATTERN.sub("", value)
    return ANY_TAG_PATTERN.sub("", value)


def sanitize_text_field(value: Any) -> str:
    """Single-line plain text: tags stripped, whitespace collapsed."""
    if value is None:
        return ""
    text = strip_tags(str(value))
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def sanitize_textarea_field(value: Any) -> str:
    """Multi-line plain text: tags stripped, line breaks kept."""
    if value is None:
        return ""
    text = strip_tags(str(value)).replace("\r\n", "\n")
    lines = [re.sub(r"[ \t]+", " ", line).strip() for line in text.split("\n")]
    return "\n".join(lines).strip()


def _parse_attributes(attr_string: str) -> dict[str, str]:
    attrs = {}
    for match in ATTR_PATTERN.finditer(attr_string):
        name = match.group(1).lower()
        value = match.group(2) or match.group(3) or match.group(4) or ""
        attrs[name] = value
    return attrs


def _is_safe_url(url: str, config: PostHtmlConfig) -> bool:
    compact = re.sub(r"\s", "", url).lower()
    return not any(compact.startswith(protocol) for protocol in config.forbid_protocols)


def sanitize_post_html(value: Any, config: PostHtmlConfig = DEFAULT_POST_HTML) -> str:
    """
    Sanitize the listing body.

    Disallowed tags are dropped (their text is kept), disallowed attributes are
    removed, and links with forbidden protocols lose their href.
    """
    if value is None:
        return ""
    content = DANGEROUS_BLOCK_PATTERN.sub("", str(value))

    def process_tag(match: re.Match[str]) -> str:
        is_closing = bool(match.group(1))
        tag_name = match.group(2).lower()

        if tag_name not in config.allow_tags:
            return ""
        if is_closing:
            return f"</{tag_name}>"

        allowed_attrs = config.allow_attrs.get(tag_name, frozenset())
        attrs = {
            name: val
            for name, val in _parse_attributes(match.group(3)).items()
            if name in allowed_attrs
        }

        if tag_name == "a":
            href = attrs.get("href")
            if href is not None and not _is_safe_url(href, config):
                del attrs["href"]
            if "href" in attrs:
                attrs["rel"] = "nofollow ugc"

        if attrs:
            attr_parts = [f'{name}="{html.escape(val)}"' for name, val in attrs.items()]
            return f"<{tag_name} {' '.join(attr_parts)}>"
        return f"<{tag_name}>"

    return TAG_PATTERN.sub(process_tag, content).strip()


def absint(value: Any) -> int:
    """Absolute integer; anything unparsable becomes 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return abs(value)
    try:
        return abs(int(str(value).strip()))
    except (TypeError, ValueError):
        return 0


def coerce_id_list(values: Iterable[Any] | None) -> list[int]:
    """Positive integer ids, de-duplicated, submission order kept."""
    if values is None or isinstance(values, (str, bytes)):
        return []
    result: list[int] = []
    for raw in values:
        value = absint(raw)
        if value > 0 and value not in result:
            result.append(value)
    return result
