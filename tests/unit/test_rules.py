"""
Rules loader tests.

Verifies that the shipped rules.yaml validates and that malformed rules
files are refused with a ValueError.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from src.rules.loader import extract_yaml_block, load_rules, parse_rules

MINIMAL = """
project:
  slug: t
  rules_version: "1"
rbac:
  roles: {}
"""


@pytest.fixture
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent.parent


def test_shipped_rules_load(project_root: Path) -> None:
    rules = load_rules(project_root / "rules.yaml")

    assert rules.project.slug == "listing-intake"
    assert rules.submission.default_status == "pending"
    assert rules.spam_protection.honeypot_field == "website_url"
    assert rules.spam_protection.rate_limit.max_requests == 5
    assert "image/webp" in rules.uploads.allowlist_mime_types
    assert [f.name for f in rules.fields][:2] == ["phone", "website"]


def test_defaults_fill_optional_sections() -> None:
    rules = parse_rules(MINIMAL)

    assert rules.security.csrf.enabled is True
    assert rules.submission.require_login is True
    assert rules.spam_protection.min_elapsed_seconds == 3
    assert rules.spam_protection.max_age_seconds == 86400
    assert rules.spam_protection.rate_limit.window_seconds == 3600
    assert rules.uploads.max_upload_bytes == 5 * 1024 * 1024
    assert rules.notifications.admin_email is None
    assert rules.fields == []


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_rules(tmp_path / "absent.yaml")


def test_invalid_yaml() -> None:
    with pytest.raises(ValueError, match="Invalid YAML"):
        parse_rules("project: [unclosed")


def test_schema_violation() -> None:
    with pytest.raises(ValueError, match="Rules validation failed"):
        parse_rules("project:\n  slug: t\n")


def test_yaml_block_extracted_from_markdown() -> None:
    content = "# Rules\n\n```yaml\nproject:\n  slug: md\n```\n\nNotes after."
    assert extract_yaml_block(content).strip() == "project:\n  slug: md"


def test_plain_yaml_passes_through() -> None:
    assert extract_yaml_block(MINIMAL) == MINIMAL
