"""
Unit tests for the public listing submission API.

The pipeline runs against in-memory stores; dependencies are swapped with
app.dependency_overrides.
"""

import asyncio
import io
from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from starlette.datastructures import UploadFile

from src.adapters.audit_sink import LoggingAuditSink
from src.adapters.auth.csrf import HmacCsrfVerifier
from src.adapters.clock import FixedClock
from src.adapters.dev_email import DevEmailAdapter
from src.adapters.field_registry import FieldRegistry
from src.adapters.memory_store import InMemoryContentStore, InMemoryMediaStore
from src.adapters.notifier import EmailSubmissionNotifier
from src.adapters.ttl_store import InMemoryTTLStore
from src.api.auth_utils import create_access_token, decode_access_token, identity_token
from src.api.deps import (
    Settings,
    get_clock,
    get_csrf_verifier,
    get_flash_store,
    get_orchestrator,
    get_rules,
    get_settings,
    identity_from_claims,
)
from src.api.main import app
from src.api.routes.public_listings import read_upload
from src.app_shell.rate_limit import RateLimiter
from src.components.antiabuse import GENERIC_SPAM_MESSAGE, AntiAbuseConfig, AntiAbuseGate
from src.components.client_ip import ProxyResolver
from src.components.submission import (
    ListingDraft,
    PersistenceError,
    SubmissionOrchestrator,
    TTLFlashStore,
)
from src.components.validation import FieldValidationAggregator
from src.domain.policy import PolicyEngine
from src.domain.submission import ANONYMOUS
from src.rules.loader import load_rules
from src.rules.models import Rules, UploadsRules

SECRET = "api-test-secret"
ROOT = Path(__file__).parent.parent.parent


class FailingInsertStore(InMemoryContentStore):
    def create_or_update(self, draft, actor_id, record_id=0):
        raise PersistenceError("database is locked")


class Harness:
    def __init__(
        self, content_store: InMemoryContentStore | None = None, rules: Rules | None = None
    ) -> None:
        self.rules = rules or load_rules(ROOT / "rules.yaml")
        self.clock = FixedClock()
        self.ttl = InMemoryTTLStore(time_port=self.clock)
        self.settings = Settings()
        self.settings.token_secret = SECRET
        self.csrf = HmacCsrfVerifier(SECRET, self.clock)
        self.flash = TTLFlashStore(self.ttl)
        self.content = content_store or InMemoryContentStore(time_port=self.clock)
        self.media = InMemoryMediaStore(time_port=self.clock)
        self.email = DevEmailAdapter()
        policy = PolicyEngine(self.rules)
        spam = self.rules.spam_protection
        self.orchestrator = SubmissionOrchestrator(
            rules=self.rules,
            policy=policy,
            csrf=self.csrf,
            gate=AntiAbuseGate(
                config=AntiAbuseConfig.from_rules(spam),
                token_secret=SECRET,
                rate_limiter=RateLimiter(self.ttl, spam.rate_limit),
                proxy_resolver=ProxyResolver(spam.trusted_proxies, spam.forwarded_headers),
                audit_sink=LoggingAuditSink(),
                clock=self.clock,
            ),
            aggregator=FieldValidationAggregator(
                rules=self.rules.submission,
                schema=FieldRegistry.from_rules(self.rules.fields),
                attachments=self.media,
                policy=policy,
            ),
            content_store=self.content,
            media_store=self.media,
            notifier=EmailSubmissionNotifier(self.content, self.email, self.rules),
            flash=self.flash,
        )

    def install(self) -> None:
        app.dependency_overrides[get_rules] = lambda: self.rules
        app.dependency_overrides[get_settings] = lambda: self.settings
        app.dependency_overrides[get_clock] = lambda: self.clock
        app.dependency_overrides[get_csrf_verifier] = lambda: self.csrf
        app.dependency_overrides[get_flash_store] = lambda: self.flash
        app.dependency_overrides[get_orchestrator] = lambda: self.orchestrator


# --- Test Fixtures ---


@pytest.fixture
def harness() -> Harness:
    return Harness()


@pytest.fixture
def client(harness: Harness) -> Generator[TestClient, None, None]:
    harness.install()
    yield TestClient(app)
    app.dependency_overrides.clear()


def _auth(user_id: int, roles: list[str] | None = None) -> dict[str, str]:
    token = identity_token(user_id, roles or ["contributor"])
    return {"Authorization": f"Bearer {token}"}


def _form(client: TestClient, harness: Harness, headers: dict | None = None, **fields) -> dict:
    """Fetch fresh tokens, wait past the minimum fill time, build the form body."""
    tokens = client.get("/api/public/listings/form-token", headers=headers or {}).json()
    harness.clock.advance(10)
    data = {
        "title": "Corner Cafe",
        "content": "<p>Fresh coffee</p>",
        "category_ids[]": ["2", "3"],
        "form_token": tokens["form_token"],
        tokens["csrf_field"]: tokens["csrf_token"],
        tokens["honeypot_field"]: "",
    }
    data.update(fields)
    return data


# --- Form token ---


class TestFormToken:
    def test_issues_tokens(self, client: TestClient, harness: Harness) -> None:
        response = client.get("/api/public/listings/form-token")

        assert response.status_code == 200
        data = response.json()
        assert data["honeypot_field"] == "website_url"
        assert data["csrf_field"] == "csrf_token"
        assert harness.csrf.verify(data["csrf_token"], ANONYMOUS)
        assert data["form_token"]


# --- Submit ---


class TestSubmit:
    def test_create_success(self, client: TestClient, harness: Harness) -> None:
        response = client.post(
            "/api/public/listings/submit",
            data=_form(client, harness),
            headers={"Referer": "http://localhost:8000/submit"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["is_update"] is False
        assert data["redirect_url"].startswith("http://localhost:8000/submit?submission=success")

        record = harness.content.get_record(data["listing_id"])
        assert record.status == "pending"
        assert record.category_ids == [2, 3]
        assert harness.email.email_count == 1

    def test_custom_fields(self, client: TestClient, harness: Harness) -> None:
        form = _form(client, harness, **{"field[phone]": "555 0100", "website": "https://cafe.example"})
        response = client.post("/api/public/listings/submit", data=form)

        record = harness.content.get_record(response.json()["listing_id"])
        assert record.custom_fields["phone"] == "555 0100"
        assert record.custom_fields["website"] == "https://cafe.example"
        assert record.custom_fields["wheelchair_access"] == ""
        assert "featured" not in record.custom_fields

    def test_multipart_upload(self, client: TestClient, harness: Harness) -> None:
        headers = _auth(5)
        response = client.post(
            "/api/public/listings/submit",
            data=_form(client, harness, headers=headers),
            files={"featured_image_file": ("cafe.png", b"\x89PNG data", "image/png")},
            headers=headers,
        )

        assert response.status_code == 200
        record = harness.content.get_record(response.json()["listing_id"])
        attachment = harness.media.get_attachment(record.featured_image_id)
        assert attachment.owner_id == 5
        assert harness.media.blobs[attachment.id] == b"\x89PNG data"

    def test_oversized_upload_rejected_without_buffering(self) -> None:
        rules = load_rules(ROOT / "rules.yaml")
        rules = rules.model_copy(
            update={"uploads": UploadsRules(max_upload_bytes=1024, transport_max_bytes=4096)}
        )
        harness = Harness(rules=rules)
        harness.install()
        try:
            client = TestClient(app)
            headers = _auth(5)
            response = client.post(
                "/api/public/listings/submit",
                data=_form(client, harness, headers=headers),
                files={"featured_image_file": ("big.png", b"\x89PNG" + b"0" * 5000, "image/png")},
                headers=headers,
            )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "validation"
        assert data["errors"]["featured_image"] == ["Image file is too large. Maximum size is 1 KB."]
        assert harness.media.attachments == {}

    def test_validation_errors(self, client: TestClient, harness: Harness) -> None:
        form = _form(client, harness, title="", **{"field[email]": "nope"})
        response = client.post("/api/public/listings/submit", data=form)

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "validation"
        assert data["message"] == "Please correct the errors below."
        assert set(data["errors"]) == {"title", "email"}

    def test_honeypot(self, client: TestClient, harness: Harness) -> None:
        form = _form(client, harness, website_url="http://spam.example")
        response = client.post("/api/public/listings/submit", data=form)

        assert response.status_code == 400
        assert response.json()["error"] == "spam"
        assert response.json()["message"] == GENERIC_SPAM_MESSAGE
        assert harness.content.records == {}

    def test_missing_csrf(self, client: TestClient, harness: Harness) -> None:
        form = _form(client, harness)
        del form["csrf_token"]
        response = client.post("/api/public/listings/submit", data=form)

        assert response.status_code == 400
        assert response.json()["error"] == "security"

    def test_edit_by_other_user_forbidden(self, client: TestClient, harness: Harness) -> None:
        listing_id = harness.content.create_or_update(
            ListingDraft(title="Mine", content="", excerpt="", status="publish", author_id=5),
            actor_id=5,
        )
        headers = _auth(6)
        form = _form(client, harness, headers=headers, existing_record_id=str(listing_id))
        response = client.post("/api/public/listings/submit", data=form, headers=headers)

        assert response.status_code == 403
        assert response.json()["message"] == "You do not have permission to edit this listing."

    def test_edit_by_author(self, client: TestClient, harness: Harness) -> None:
        listing_id = harness.content.create_or_update(
            ListingDraft(title="Mine", content="", excerpt="", status="publish", author_id=5),
            actor_id=5,
        )
        headers = _auth(5)
        form = _form(client, harness, headers=headers, existing_record_id=str(listing_id))
        response = client.post("/api/public/listings/submit", data=form, headers=headers)

        assert response.status_code == 200
        assert response.json()["is_update"] is True
        assert harness.content.get_record(listing_id).title == "Corner Cafe"

    def test_persistence_failure(self) -> None:
        harness = Harness(content_store=FailingInsertStore())
        harness.install()
        try:
            client = TestClient(app)
            response = client.post("/api/public/listings/submit", data=_form(client, harness))
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 503
        assert response.json()["message"] == "Failed to save listing. Please try again."


# --- Form state ---


class TestFormState:
    def test_failed_submission_flashed_once(self, client: TestClient, harness: Harness) -> None:
        headers = _auth(5)
        client.post(
            "/api/public/listings/submit",
            data=_form(client, harness, headers=headers, title=""),
            headers=headers,
        )

        first = client.get("/api/public/listings/form-state", headers=headers).json()
        second = client.get("/api/public/listings/form-state", headers=headers).json()

        assert first["errors"] == {"title": ["Listing title is required."]}
        assert first["values"]["content"] == "<p>Fresh coffee</p>"
        assert second == {"errors": {}, "values": {}}

    def test_anonymous_gets_nothing(self, client: TestClient) -> None:
        assert client.get("/api/public/listings/form-state").json() == {"errors": {}, "values": {}}


# --- Identity ---


class TestIdentity:
    def test_claims(self) -> None:
        identity = identity_from_claims({"sub": "7", "roles": ["editor"], "name": "Sam"})
        assert identity.user_id == 7
        assert identity.roles == ("editor",)
        assert identity.display_name == "Sam"

    @pytest.mark.parametrize(
        "claims", [{}, {"sub": "abc"}, {"sub": "0"}, {"sub": 7}, {"sub": "-3"}]
    )
    def test_unusable_subject_is_anonymous(self, claims: dict) -> None:
        assert identity_from_claims(claims) == ANONYMOUS

    def test_identity_token_round_trip(self) -> None:
        claims = decode_access_token(identity_token(9, ["editor"], name="Robin"))
        assert identity_from_claims(claims) == identity_from_claims(
            {"sub": "9", "roles": ["editor"], "name": "Robin"}
        )

    def test_expired_token_rejected(self) -> None:
        token = create_access_token(
            {"sub": "9"},
            expires_delta=timedelta(minutes=5),
            now_utc=datetime(2020, 1, 1, tzinfo=UTC),
        )
        assert decode_access_token(token) is None

    def test_invalid_token_is_anonymous(self, client: TestClient, harness: Harness) -> None:
        headers = {"Authorization": "Bearer not-a-jwt"}
        tokens = client.get("/api/public/listings/form-token", headers=headers).json()
        assert harness.csrf.verify(tokens["csrf_token"], ANONYMOUS)


def test_health() -> None:
    response = TestClient(app).get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


class TestReadUpload:
    def test_unknown_size_reads_at_most_one_byte_over(self) -> None:
        item = UploadFile(io.BytesIO(b"0" * 5000), filename="big.png")

        upload = asyncio.run(read_upload(item, 1024))

        assert upload.size == 1025
        assert upload.data == b""
        assert item.file.tell() == 1025

    def test_declared_size_skips_reading(self) -> None:
        item = UploadFile(io.BytesIO(b"0" * 5000), filename="big.png", size=5000)

        upload = asyncio.run(read_upload(item, 1024))

        assert upload.size == 5000
        assert item.file.tell() == 0

    def test_within_limit_buffered(self) -> None:
        item = UploadFile(io.BytesIO(b"\x89PNG"), filename="cafe.png", size=4)
        upload = asyncio.run(read_upload(item, 1024))
        assert upload.data == b"\x89PNG"
        assert upload.size == 4
