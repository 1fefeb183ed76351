"""Inbound per-client rate limiting."""

from .limiter import ClientRateLimiter
from .schemas import ClientWindows, RateLimitDecision, Window, WindowKind, WindowPolicy

__all__ = [
    "ClientRateLimiter",
    "ClientWindows",
    "RateLimitDecision",
    "Window",
    "WindowKind",
    "WindowPolicy",
]
