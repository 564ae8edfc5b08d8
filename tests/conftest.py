from pathlib import Path

import pytest

from src.api import deps

CACHED_DEPENDENCIES = (
    deps.get_settings,
    deps.get_rules,
    deps.get_clock,
    deps.get_ttl_store,
    deps.get_rate_limiter,
    deps.get_audit_sink,
    deps.get_email_adapter,
    deps.get_flash_store,
    deps.get_csrf_verifier,
    deps.get_field_registry,
)


@pytest.fixture
def project_root() -> Path:
    return Path(__file__).parent.parent


@pytest.fixture(autouse=True)
def isolated_app_state(tmp_path, monkeypatch):
    """
    Point the app at a temporary data dir and drop cached singletons, so no
    test sees another test's rate limit counters or settings.
    """
    monkeypatch.setenv("INTAKE_DATA_DIR", str(tmp_path / "data"))
    for dependency in CACHED_DEPENDENCIES:
        dependency.cache_clear()
    yield
    for dependency in CACHED_DEPENDENCIES:
        dependency.cache_clear()
