import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from src.adapters.audit_sink import LoggingAuditSink
from src.adapters.auth.csrf import HmacCsrfVerifier
from src.adapters.clock import SystemClock
from src.adapters.dev_email import DevEmailAdapter
from src.adapters.field_registry import FieldRegistry
from src.adapters.fs.filestore import FileSystemStore
from src.adapters.notifier import EmailSubmissionNotifier
from src.adapters.sqlite.repos import SQLiteListingStore, SQLiteMediaStore
from src.adapters.ttl_store import InMemoryTTLStore
from src.api.auth_utils import decode_access_token
from src.app_shell.rate_limit import RateLimiter
from src.components.antiabuse import AntiAbuseConfig, AntiAbuseGate
from src.components.client_ip import ProxyResolver
from src.components.submission import SubmissionOrchestrator, TTLFlashStore
from src.components.validation import FieldValidationAggregator
from src.domain.policy import PolicyEngine
from src.domain.submission import ANONYMOUS, CallerIdentity
from src.rules.loader import load_rules
from src.rules.models import Rules

logger = logging.getLogger(__name__)


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("INTAKE_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "intake.db")
        self.media_dir = self.data_dir / "media"
        self.migrations_dir = self.base_dir / "migrations"
        self.rules_path = Path(os.environ.get("INTAKE_RULES_PATH", self.base_dir / "rules.yaml"))
        self.token_secret = os.environ.get("INTAKE_TOKEN_SECRET", "dev-token-secret-unsafe")
        self.base_url = os.environ.get("BASE_URL", "http://localhost:8000")


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


def get_policy() -> PolicyEngine:
    return PolicyEngine(get_rules())


# --- Shared state (process-wide singletons) ---
@lru_cache
def get_clock() -> SystemClock:
    return SystemClock()


@lru_cache
def get_ttl_store() -> InMemoryTTLStore:
    return InMemoryTTLStore(time_port=get_clock())


@lru_cache
def get_rate_limiter() -> RateLimiter:
    return RateLimiter(get_ttl_store(), get_rules().spam_protection.rate_limit)


@lru_cache
def get_audit_sink() -> LoggingAuditSink:
    return LoggingAuditSink()


@lru_cache
def get_email_adapter() -> DevEmailAdapter:
    return DevEmailAdapter()


@lru_cache
def get_flash_store() -> TTLFlashStore:
    return TTLFlashStore(get_ttl_store(), get_rules().submission.flash_ttl_seconds)


@lru_cache
def get_csrf_verifier() -> HmacCsrfVerifier:
    return HmacCsrfVerifier(get_settings().token_secret, get_clock())


# --- Stores ---
def get_listing_store() -> SQLiteListingStore:
    return SQLiteListingStore(get_settings().db_path, time_port=get_clock())


def get_media_store() -> SQLiteMediaStore:
    settings = get_settings()
    return SQLiteMediaStore(
        settings.db_path,
        FileSystemStore(settings.media_dir),
        time_port=get_clock(),
    )


@lru_cache
def get_field_registry() -> FieldRegistry:
    return FieldRegistry.from_rules(get_rules().fields)


# --- Pipeline ---
def get_gate() -> AntiAbuseGate:
    rules = get_rules()
    spam = rules.spam_protection
    policy = get_policy()
    return AntiAbuseGate(
        config=AntiAbuseConfig.from_rules(spam),
        token_secret=get_settings().token_secret,
        rate_limiter=get_rate_limiter(),
        proxy_resolver=ProxyResolver(spam.trusted_proxies, spam.forwarded_headers),
        audit_sink=get_audit_sink(),
        clock=get_clock(),
        bypass_predicates=[lambda request, identity: policy.can_bypass_spam_checks(identity)],
    )


def get_orchestrator() -> SubmissionOrchestrator:
    rules = get_rules()
    policy = get_policy()
    listing_store = get_listing_store()
    media_store = get_media_store()
    return SubmissionOrchestrator(
        rules=rules,
        policy=policy,
        csrf=get_csrf_verifier(),
        gate=get_gate(),
        aggregator=FieldValidationAggregator(
            rules=rules.submission,
            schema=get_field_registry(),
            attachments=media_store,
            policy=policy,
        ),
        content_store=listing_store,
        media_store=media_store,
        notifier=EmailSubmissionNotifier(
            listing_store,
            get_email_adapter(),
            rules,
            base_url=get_settings().base_url,
        ),
        flash=get_flash_store(),
    )


# --- Auth ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def identity_from_claims(payload: dict) -> CallerIdentity:
    """Map JWT claims to a caller. Anything unusable is anonymous."""
    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.isdigit() or int(subject) <= 0:
        return ANONYMOUS

    roles = payload.get("roles") or []
    if not isinstance(roles, list):
        roles = []
    name = payload.get("name")
    return CallerIdentity(
        user_id=int(subject),
        roles=tuple(str(role) for role in roles),
        display_name=name if isinstance(name, str) else None,
    )


async def get_current_identity(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
) -> CallerIdentity:
    # 1. Try Cookie first (HttpOnly)
    cookie_token = request.cookies.get("access_token")
    if cookie_token and cookie_token.startswith("Bearer "):
        token = cookie_token.split(" ")[1]

    # 2. No token: anonymous submitter
    if not token:
        return ANONYMOUS

    # 3. Decode
    payload = decode_access_token(token)
    if not payload:
        logger.info("Ignoring invalid access token; treating caller as anonymous")
        return ANONYMOUS

    return identity_from_claims(payload)
