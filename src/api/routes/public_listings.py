"""
Public listing submission endpoints.

Endpoints:
- GET /api/public/listings/form-token - Timing token, CSRF token and honeypot name for a new form
- GET /api/public/listings/form-state - Errors and values from the caller's last failed submission
- POST /api/public/listings/submit - Create or edit a listing (multipart or urlencoded form)
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import FormData, UploadFile

from src.adapters.auth.csrf import HmacCsrfVerifier
from src.adapters.clock import SystemClock
from src.api.deps import (
    Settings,
    get_clock,
    get_csrf_verifier,
    get_current_identity,
    get_flash_store,
    get_orchestrator,
    get_rules,
    get_settings,
)
from src.components.media import effective_max_size
from src.components.signed_token import issue_token
from src.components.submission import (
    ErrorKind,
    SubmissionOrchestrator,
    SubmissionOutcome,
    TTLFlashStore,
)
from src.core.ports.time import unix_seconds
from src.domain.sanitize import absint
from src.domain.submission import CallerIdentity, SubmissionRequest, UploadedFile
from src.rules.models import Rules

router = APIRouter()

UPLOAD_FIELD = "featured_image_file"
RESERVED_FIELDS = frozenset(
    [
        "title",
        "content",
        "excerpt",
        "category_ids",
        "category_ids[]",
        "tag_ids",
        "tag_ids[]",
        "existing_record_id",
        "featured_image_reference",
        UPLOAD_FIELD,
        "form_token",
        "redirect_to",
    ]
)

ERROR_STATUS: dict[ErrorKind, int] = {
    ErrorKind.SECURITY: status.HTTP_400_BAD_REQUEST,
    ErrorKind.SPAM: status.HTTP_400_BAD_REQUEST,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.PERMISSION: status.HTTP_403_FORBIDDEN,
    ErrorKind.PERSISTENCE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


# --- Request/Response Models ---


class FormTokenResponse(BaseModel):
    """Everything a client needs to render a submission form."""

    form_token: str = Field(..., description="Signed timing token, posted back unchanged")
    honeypot_field: str = Field(..., description="Name of the hidden field that must stay empty")
    csrf_token: str
    csrf_field: str


class FormStateResponse(BaseModel):
    errors: dict[str, list[str]] = Field(default_factory=dict)
    values: dict[str, Any] = Field(default_factory=dict)


class SubmitResponse(BaseModel):
    success: bool
    listing_id: int
    is_update: bool
    redirect_url: str


class SubmitErrorResponse(BaseModel):
    success: bool = False
    error: str
    message: str
    errors: dict[str, list[str]] = Field(default_factory=dict)
    redirect_url: str | None = None


# --- Helper Functions ---


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _list(form: FormData, name: str) -> tuple[str, ...]:
    values = form.getlist(name) + form.getlist(f"{name}[]")
    return tuple(v for v in values if isinstance(v, str))


def collect_custom_fields(form: FormData, honeypot_field: str, csrf_field: str) -> dict[str, Any]:
    """
    Custom field values posted as field[<name>] or as bare <name>.

    The bracketed form wins when both are present. The schema decides later
    which of these are actually kept.
    """
    reserved = RESERVED_FIELDS | {honeypot_field, csrf_field}
    bare: dict[str, Any] = {}
    bracketed: dict[str, Any] = {}
    for key, value in form.multi_items():
        if not isinstance(value, str):
            continue
        if key.startswith("field[") and key.endswith("]"):
            bracketed[key[6:-1]] = value
        elif key not in reserved:
            bare[key] = value
    return {**bare, **bracketed}


async def read_upload(item: Any, max_bytes: int) -> UploadedFile | None:
    """
    Buffer an uploaded file part, never holding more than max_bytes + 1 bytes.

    An oversized part keeps its size but no data, so validation reports the
    size error without the body ever being loaded.
    """
    if not isinstance(item, UploadFile) or not item.filename:
        return None
    if item.size is not None and item.size > max_bytes:
        return UploadedFile(filename=item.filename, content_type=item.content_type, size=item.size)

    data = await item.read(max_bytes + 1)
    if len(data) > max_bytes:
        return UploadedFile(
            filename=item.filename,
            content_type=item.content_type,
            size=item.size or len(data),
        )
    return UploadedFile(
        filename=item.filename,
        content_type=item.content_type,
        size=len(data),
        data=data,
    )


async def build_submission_request(request: Request, rules: Rules) -> SubmissionRequest:
    form = await request.form()
    honeypot_field = rules.spam_protection.honeypot_field
    csrf_field = rules.security.csrf.field_name

    return SubmissionRequest(
        title=_text(form.get("title")) or "",
        content=_text(form.get("content")) or "",
        excerpt=_text(form.get("excerpt")) or "",
        category_ids=_list(form, "category_ids"),
        tag_ids=_list(form, "tag_ids"),
        custom_fields=collect_custom_fields(form, honeypot_field, csrf_field),
        existing_record_id=absint(form.get("existing_record_id")),
        featured_image_reference=absint(form.get("featured_image_reference")),
        featured_image_upload=await read_upload(
            form.get(UPLOAD_FIELD),
            effective_max_size(rules.uploads.max_upload_bytes, rules.uploads.transport_max_bytes),
        ),
        honeypot_value=_text(form.get(honeypot_field)),
        form_token=_text(form.get("form_token")),
        csrf_token=_text(form.get(csrf_field)),
        remote_addr=request.client.host if request.client else "",
        forwarded_headers=dict(request.headers),
        referer=request.headers.get("referer"),
        redirect_to=_text(form.get("redirect_to")),
    )


def outcome_response(outcome: SubmissionOutcome) -> JSONResponse:
    if outcome.success:
        body = SubmitResponse(
            success=True,
            listing_id=outcome.record_id or 0,
            is_update=outcome.is_update,
            redirect_url=outcome.redirect_url or "",
        )
        return JSONResponse(status_code=status.HTTP_200_OK, content=body.model_dump())

    kind = outcome.error_kind or ErrorKind.VALIDATION
    error_body = SubmitErrorResponse(
        error=kind.value,
        message=outcome.message or "",
        errors=outcome.errors.to_dict(),
        redirect_url=outcome.redirect_url,
    )
    return JSONResponse(status_code=ERROR_STATUS[kind], content=error_body.model_dump())


# --- Endpoints ---


@router.get(
    "/listings/form-token",
    response_model=FormTokenResponse,
    summary="Issue form tokens",
    description="Issue the timing token and CSRF token for a fresh submission form.",
)
def get_form_token(
    identity: CallerIdentity = Depends(get_current_identity),
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
    clock: SystemClock = Depends(get_clock),
    csrf: HmacCsrfVerifier = Depends(get_csrf_verifier),
) -> FormTokenResponse:
    return FormTokenResponse(
        form_token=issue_token(unix_seconds(clock.now_utc()), settings.token_secret),
        honeypot_field=rules.spam_protection.honeypot_field,
        csrf_token=csrf.issue(identity),
        csrf_field=rules.security.csrf.field_name,
    )


@router.get(
    "/listings/form-state",
    response_model=FormStateResponse,
    summary="Consume flashed form state",
)
def get_form_state(
    identity: CallerIdentity = Depends(get_current_identity),
    flash: TTLFlashStore = Depends(get_flash_store),
) -> FormStateResponse:
    """Errors and values from the last failed submission; cleared once read."""
    if not identity.is_authenticated or identity.user_id is None:
        return FormStateResponse()
    errors, values = flash.consume(identity.user_id)
    return FormStateResponse(errors=errors, values=values)


@router.post(
    "/listings/submit",
    response_model=SubmitResponse,
    responses={
        400: {"model": SubmitErrorResponse, "description": "Validation, spam or security failure"},
        403: {"model": SubmitErrorResponse, "description": "Not allowed to submit or edit"},
        503: {"model": SubmitErrorResponse, "description": "Listing could not be saved"},
    },
    summary="Submit a listing",
)
async def submit_listing(
    request: Request,
    identity: CallerIdentity = Depends(get_current_identity),
    rules: Rules = Depends(get_rules),
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """
    Run a listing submission through the intake pipeline.

    1. CSRF and permission checks
    2. Honeypot, timing token and rate limit
    3. Field and upload validation (all errors reported together)
    4. Save listing, taxonomy and featured image
    5. Notify the site admin about new listings
    """
    submission = await build_submission_request(request, rules)
    outcome = await run_in_threadpool(orchestrator.submit, submission, identity)
    return outcome_response(outcome)
