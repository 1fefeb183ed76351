"""Per-client dual-window admission control.

Every client key owns a daily window and a short window. Windows are reset
lazily when a request arrives after their horizon; the background sweep only
reclaims memory for keys that have gone quiet.
"""

from __future__ import annotations

import asyncio
import math
import time

from issue_cost_estimator.config import RateLimitConfig
from issue_cost_estimator.logging import get_logger

from .schemas import ClientWindows, RateLimitDecision, Window, WindowKind, WindowPolicy

logger = get_logger(__name__)


class ClientRateLimiter:
    """In-memory rate limiter keyed by client address.

    State for one key is read and updated under that key's lock, so admits
    for different keys never wait on each other.

    Usage:
        limiter = ClientRateLimiter(settings.rate_limit)
        decision = await limiter.admit("203.0.113.7")
        if not decision.allowed:
            ...  # respond 429 with decision.headers()
    """

    def __init__(self, config: RateLimitConfig | None = None) -> None:
        """Initialize the limiter.

        Args:
            config: Window ceilings and horizons (defaults to 100/day, 10/5min)
        """
        config = config or RateLimitConfig()
        self._daily = WindowPolicy(
            kind=WindowKind.DAILY,
            limit=config.daily_limit,
            horizon_seconds=config.daily_window_seconds,
        )
        self._short = WindowPolicy(
            kind=WindowKind.SHORT_TERM,
            limit=config.short_limit,
            horizon_seconds=config.short_window_seconds,
        )
        self._clients: dict[str, ClientWindows] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def policies(self) -> tuple[WindowPolicy, WindowPolicy]:
        """Window policies in evaluation order (daily first)."""
        return (self._daily, self._short)

    def __len__(self) -> int:
        return len(self._clients)

    def tracked_keys(self) -> list[str]:
        """Client keys currently holding state."""
        return list(self._clients)

    def _lock_for(self, client_key: str) -> asyncio.Lock:
        lock = self._locks.get(client_key)
        if lock is None:
            lock = self._locks[client_key] = asyncio.Lock()
        return lock

    async def admit(self, client_key: str, now: float | None = None) -> RateLimitDecision:
        """Admit or reject one request from ``client_key``.

        Args:
            client_key: Caller identity (network address)
            now: Epoch seconds; defaults to the current time

        Returns:
            Allow with the remaining short-window budget, or a denial naming
            the exceeded window and the seconds until it resets
        """
        while True:
            lock = self._lock_for(client_key)
            async with lock:
                # The sweep may have dropped this key while we waited
                if self._locks.get(client_key) is not lock:
                    continue
                return self._evaluate(client_key, time.time() if now is None else now)

    def _evaluate(self, client_key: str, now: float) -> RateLimitDecision:
        windows = self._clients.get(client_key)
        if windows is None:
            windows = ClientWindows(
                daily=Window.fresh(now, self._daily),
                short_term=Window.fresh(now, self._short),
            )
            self._clients[client_key] = windows

        for policy in self.policies:
            window = windows.get(policy.kind)
            if window.is_expired(now):
                window.count = 0
                window.reset_at = now + policy.horizon_seconds

        for policy in self.policies:
            window = windows.get(policy.kind)
            if window.count >= policy.limit:
                retry_after = max(0, math.ceil(window.reset_at - now))
                logger.info(
                    "Rate limit hit for {}: {} window ({}/{}), retry in {}s",
                    client_key,
                    policy.kind,
                    window.count,
                    policy.limit,
                    retry_after,
                )
                return RateLimitDecision.deny(policy, window, retry_after)

        windows.daily.count += 1
        windows.short_term.count += 1
        remaining = min(
            self._daily.limit - windows.daily.count,
            self._short.limit - windows.short_term.count,
        )
        return RateLimitDecision.allow(remaining)

    def windows_for(self, client_key: str) -> ClientWindows | None:
        """Current windows of a key (``None`` if never seen or swept)."""
        return self._clients.get(client_key)

    async def sweep(self, now: float | None = None) -> int:
        """Remove keys whose windows have both expired.

        Returns:
            Number of keys removed
        """
        now = time.time() if now is None else now
        removed = 0
        for client_key in list(self._clients):
            windows = self._clients.get(client_key)
            if windows is None or not windows.is_expired(now):
                continue
            lock = self._lock_for(client_key)
            async with lock:
                windows = self._clients.get(client_key)
                if windows is not None and windows.is_expired(now):
                    del self._clients[client_key]
                    del self._locks[client_key]
                    removed += 1
        if removed:
            logger.debug("Swept {} expired rate-limit entries ({} left)", removed, len(self))
        return removed

    async def run_sweeper(self, interval: float) -> None:
        """Sweep every ``interval`` seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            await self.sweep()
