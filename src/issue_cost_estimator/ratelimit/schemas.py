"""Schemas for inbound per-client rate limiting."""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field, computed_field


class WindowKind(StrEnum):
    """The two counting windows every client has."""

    DAILY = "daily"
    SHORT_TERM = "short-term"

    @property
    def header_suffix(self) -> str:
        """Suffix used in ``X-RateLimit-*`` response headers."""
        return "Daily" if self is WindowKind.DAILY else "Short"


@dataclass(frozen=True)
class WindowPolicy:
    """Ceiling and horizon of one window."""

    kind: WindowKind
    limit: int
    horizon_seconds: float


@dataclass
class Window:
    """Mutable counter for one window of one client."""

    count: int
    reset_at: float
    """Epoch seconds at which the window starts over."""

    @classmethod
    def fresh(cls, now: float, policy: WindowPolicy) -> "Window":
        """A new empty window starting at ``now``."""
        return cls(count=0, reset_at=now + policy.horizon_seconds)

    def is_expired(self, now: float) -> bool:
        """Whether the window's horizon has passed."""
        return self.reset_at < now


@dataclass
class ClientWindows:
    """Both windows of one client key."""

    daily: Window
    short_term: Window

    def get(self, kind: WindowKind) -> Window:
        """Window of the given kind."""
        return self.daily if kind is WindowKind.DAILY else self.short_term

    def is_expired(self, now: float) -> bool:
        """Whether both windows have expired (the entry can be discarded)."""
        return self.daily.is_expired(now) and self.short_term.is_expired(now)


class RateLimitDecision(BaseModel):
    """Outcome of one admission check.

    ``allowed=True`` is Allow. A denial names the window that was exceeded,
    its ceiling and when it resets.
    """

    allowed: bool = Field(description="Whether the request was admitted")
    window: WindowKind | None = Field(default=None, description="Exceeded window (denials)")
    limit: int = Field(default=0, ge=0, description="Ceiling of the exceeded window")
    remaining: int = Field(default=0, ge=0, description="Requests left in the tighter window")
    retry_after: int = Field(default=0, ge=0, description="Seconds until the window resets")
    window_seconds: int = Field(default=0, ge=0, description="Horizon of the exceeded window")
    reset_at: datetime | None = Field(default=None, description="UTC reset time of the window")

    @classmethod
    def allow(cls, remaining: int) -> "RateLimitDecision":
        """An admitted request."""
        return cls(allowed=True, remaining=remaining)

    @classmethod
    def deny(cls, policy: WindowPolicy, window: Window, retry_after: int) -> "RateLimitDecision":
        """A rejected request for ``policy``'s window."""
        return cls(
            allowed=False,
            window=policy.kind,
            limit=policy.limit,
            remaining=0,
            retry_after=retry_after,
            window_seconds=int(policy.horizon_seconds),
            reset_at=datetime.fromtimestamp(window.reset_at, tz=UTC),
        )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def message(self) -> str:
        """Human-readable reason for a denial."""
        if self.allowed:
            return ""
        if self.window is WindowKind.DAILY:
            return f"Daily rate limit exceeded. Maximum {self.limit} requests per day."
        return (
            f"Rate limit exceeded. Maximum {self.limit} requests per "
            f"{_describe_seconds(self.window_seconds)}."
        )

    def headers(self) -> dict[str, str]:
        """HTTP headers describing a denial."""
        if self.allowed or self.window is None:
            return {}
        suffix = self.window.header_suffix
        headers = {
            f"X-RateLimit-Limit-{suffix}": str(self.limit),
            f"X-RateLimit-Remaining-{suffix}": "0",
            "Retry-After": str(self.retry_after),
        }
        if self.reset_at is not None:
            headers[f"X-RateLimit-Reset-{suffix}"] = self.reset_at.isoformat().replace(
                "+00:00", "Z"
            )
        return headers


def _describe_seconds(seconds: int) -> str:
    """Render a window horizon as e.g. '5 minutes' or '2 hours'."""
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size and seconds % size == 0:
            count = seconds // size
            return f"{count} {unit}" if count == 1 else f"{count} {unit}s"
    return f"{seconds} seconds"
