"""HTTP error mapping.

Every error body is ``{"error": <message>}``; rate-limit denials add
``retryAfter`` and the ``X-RateLimit-*`` headers.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from issue_cost_estimator.errors import EstimationFailure, InferenceError, InvalidInputError
from issue_cost_estimator.github.exceptions import GitHubClientError, GitHubNotFoundError
from issue_cost_estimator.logging import get_logger
from issue_cost_estimator.ratelimit.schemas import RateLimitDecision

logger = get_logger(__name__)


class RateLimitExceeded(Exception):
    """Raised by the rate-limit dependency when a request is denied."""

    def __init__(self, decision: RateLimitDecision) -> None:
        super().__init__(decision.message)
        self.decision = decision


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    return f"{field}: {message}" if field else message


async def _rate_limited(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    decision = exc.decision
    return JSONResponse(
        status_code=429,
        content={"error": decision.message, "retryAfter": decision.retry_after},
        headers=decision.headers(),
    )


async def _invalid_input(request: Request, exc: InvalidInputError) -> JSONResponse:
    return _error(400, str(exc))


async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(400, _validation_message(exc))


async def _not_found(request: Request, exc: GitHubNotFoundError) -> JSONResponse:
    return _error(404, str(exc))


async def _upstream(request: Request, exc: Exception) -> JSONResponse:
    logger.error("{} {} failed: {}", request.method, request.url.path, exc)
    return _error(502, str(exc))


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error-to-response mapping to ``app``."""
    app.add_exception_handler(RateLimitExceeded, _rate_limited)  # type: ignore[arg-type]
    app.add_exception_handler(InvalidInputError, _invalid_input)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _invalid_request)  # type: ignore[arg-type]
    app.add_exception_handler(GitHubNotFoundError, _not_found)  # type: ignore[arg-type]
    app.add_exception_handler(GitHubClientError, _upstream)
    app.add_exception_handler(EstimationFailure, _upstream)
    app.add_exception_handler(InferenceError, _upstream)
