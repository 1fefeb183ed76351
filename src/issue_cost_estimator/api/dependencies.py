"""FastAPI dependencies shared by the routes."""

from fastapi import Request

from issue_cost_estimator.config import Settings
from issue_cost_estimator.ratelimit.limiter import ClientRateLimiter
from issue_cost_estimator.service import EstimationService

from .errors import RateLimitExceeded

UNKNOWN_CLIENT = "unknown"


def client_key(request: Request) -> str:
    """Identify the caller: first ``X-Forwarded-For`` hop, else the peer address."""
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    if request.client is not None and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


async def enforce_rate_limit(request: Request) -> None:
    """Admit the request or raise ``RateLimitExceeded``."""
    limiter: ClientRateLimiter = request.app.state.rate_limiter
    decision = await limiter.admit(client_key(request))
    if not decision.allowed:
        raise RateLimitExceeded(decision)


def get_service(request: Request) -> EstimationService:
    return request.app.state.service


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
