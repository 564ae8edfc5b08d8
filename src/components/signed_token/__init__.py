"""
SignedToken component.

HMAC-signed form timing tokens used to reject bot-speed submissions.
"""

from src.components.signed_token.component import (
    issue_token,
    run,
    sign,
    verify_token,
)
from src.components.signed_token.models import (
    DEFAULT_MAX_AGE_SECONDS,
    DEFAULT_MIN_ELAPSED_SECONDS,
    ConfigurationError,
    IssueTokenInput,
    IssueTokenOutput,
    TokenFailure,
    VerifyTokenInput,
    VerifyTokenOutput,
)

__all__ = [
    # Component
    "run",
    # Pure functions
    "issue_token",
    "sign",
    "verify_token",
    # Constants
    "DEFAULT_MAX_AGE_SECONDS",
    "DEFAULT_MIN_ELAPSED_SECONDS",
    # Models
    "IssueTokenInput",
    "IssueTokenOutput",
    "TokenFailure",
    "VerifyTokenInput",
    "VerifyTokenOutput",
    # Errors
    "ConfigurationError",
]
