"""
Anti-abuse component.

Honeypot, timing token, rate limit and pluggable spam checks in front of the
submission pipeline.
"""

from src.components.antiabuse.component import AntiAbuseGate, honeypot_is_empty
from src.components.antiabuse.models import (
    GENERIC_SPAM_MESSAGE,
    AntiAbuseConfig,
    BypassPredicate,
    GateInput,
    GateOutput,
    SpamCheck,
    SpamEvent,
    SpamStage,
)
from src.components.antiabuse.ports import SpamAuditSinkPort

__all__ = [
    "AntiAbuseGate",
    "honeypot_is_empty",
    # Constants
    "GENERIC_SPAM_MESSAGE",
    # Models
    "AntiAbuseConfig",
    "BypassPredicate",
    "GateInput",
    "GateOutput",
    "SpamCheck",
    "SpamEvent",
    "SpamStage",
    # Ports
    "SpamAuditSinkPort",
]
