from pydantic import BaseModel, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str
    site_name: str = "Listing Directory"
    home_url: str = "/"


class CsrfRules(BaseModel):
    enabled: bool = True
    field_name: str = "csrf_token"


class SecurityRules(BaseModel):
    csrf: CsrfRules = Field(default_factory=CsrfRules)


class RbacRules(BaseModel):
    roles: dict[str, list[str]]


class SubmissionRules(BaseModel):
    default_status: str = "pending"
    require_login: bool = True
    require_title: bool = True
    require_content: bool = True
    require_category: bool = False
    require_featured_image: bool = False
    send_admin_notification: bool = True
    spam_checks_on_edit: bool = False
    flash_ttl_seconds: int = 300


class RateLimitWindow(BaseModel):
    window_seconds: int
    max_requests: int


class SpamProtectionRules(BaseModel):
    enabled: bool = True
    honeypot_field: str = "website_url"
    require_token: bool = True
    min_elapsed_seconds: int = 3
    max_age_seconds: int = 86400
    rate_limit: RateLimitWindow = Field(
        default_factory=lambda: RateLimitWindow(window_seconds=3600, max_requests=5)
    )
    trusted_proxies: list[str] = Field(default_factory=list)
    forwarded_headers: list[str] = Field(
        default_factory=lambda: ["CF-Connecting-IP", "X-Forwarded-For", "X-Real-IP"]
    )


class UploadsRules(BaseModel):
    max_upload_bytes: int = 5 * 1024 * 1024
    transport_max_bytes: int = 8 * 1024 * 1024
    allowlist_mime_types: list[str] = Field(
        default_factory=lambda: ["image/jpeg", "image/png", "image/gif", "image/webp"]
    )


class CustomFieldRules(BaseModel):
    name: str
    label: str
    type: str = "text"
    required: bool = False
    admin_only: bool = False
    max_length: int | None = None
    pattern: str | None = None
    options: list[str] = Field(default_factory=list)


class NotificationRules(BaseModel):
    admin_email: str | None = None
    review_url_template: str = "/admin/listings/{listing_id}/edit"


class Rules(BaseModel):
    project: ProjectRules
    security: SecurityRules = Field(default_factory=SecurityRules)
    rbac: RbacRules
    submission: SubmissionRules = Field(default_factory=SubmissionRules)
    spam_protection: SpamProtectionRules = Field(default_factory=SpamProtectionRules)
    uploads: UploadsRules = Field(default_factory=UploadsRules)
    notifications: NotificationRules = Field(default_factory=NotificationRules)
    fields: list[CustomFieldRules] = Field(default_factory=list)
