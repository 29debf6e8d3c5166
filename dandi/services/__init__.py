"""Dandi services."""

from dandi.services.lifecycle import KeyLifecycleService
from dandi.services.rate_limit import GateDecision, RateLimitGate

__all__ = [
    "KeyLifecycleService",
    "GateDecision",
    "RateLimitGate",
]
