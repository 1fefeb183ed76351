"""FastAPI application exposing the estimation pipeline."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, FastAPI
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import SQLAlchemyError

from issue_cost_estimator import __version__
from issue_cost_estimator.config import Settings, get_settings
from issue_cost_estimator.db.engine import create_tables, dispose_engine
from issue_cost_estimator.errors import InvalidInputError
from issue_cost_estimator.estimation.budgets import resolve_params
from issue_cost_estimator.logging import get_logger
from issue_cost_estimator.ratelimit.limiter import ClientRateLimiter
from issue_cost_estimator.schemas.repository import parse_issue_url, parse_repo_url
from issue_cost_estimator.schemas.requests import (
    IssueEstimateRequest,
    RepoBatchRequest,
    RepoEstimateRequest,
)
from issue_cost_estimator.service import EstimationService, build_service

from .dependencies import enforce_rate_limit, get_app_settings, get_service
from .errors import register_exception_handlers

logger = get_logger(__name__)

SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}

router = APIRouter(dependencies=[Depends(enforce_rate_limit)])


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    """Liveness check."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
    }


@router.post("/estimate-repo-issues", response_model=None)
async def estimate_repo_issues(
    body: RepoEstimateRequest,
    service: EstimationService = Depends(get_service),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any] | StreamingResponse:
    """Estimate every open issue of a repository, optionally as an SSE stream."""
    try:
        repo = parse_repo_url(body.repo_link)
    except ValueError as e:
        raise InvalidInputError("Invalid GitHub repository URL") from e
    params = resolve_params(body, settings.estimation)

    if body.stream:
        stream = service.stream_repository(repo, params)
        return StreamingResponse(
            stream.sse(),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    outcome = await service.estimate_repository(repo, params)
    return outcome.to_dict()


@router.post("/estimate-repo-batch")
async def estimate_repo_batch(
    body: RepoBatchRequest,
    service: EstimationService = Depends(get_service),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    """Estimate one slice of a repository's issue list."""
    try:
        repo = parse_repo_url(body.repo_link)
    except ValueError as e:
        raise InvalidInputError("Invalid GitHub repository URL") from e
    params = resolve_params(body, settings.estimation)

    outcome = await service.estimate_repository_slice(
        repo, params, start_index=body.start_index, batch_size=body.batch_size
    )
    return outcome.to_dict()


@router.post("/estimate-issue")
async def estimate_issue(
    body: IssueEstimateRequest,
    service: EstimationService = Depends(get_service),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    """Estimate a single issue."""
    try:
        ref = parse_issue_url(body.issue_link)
    except ValueError as e:
        raise InvalidInputError(str(e)) from e
    params = resolve_params(body, settings.estimation)

    result = await service.estimate_issue(ref, params)
    return {
        "success": True,
        "repository": {"owner": ref.owner, "repo": ref.name},
        "estimation": result.to_wire(),
        "message": f"Successfully estimated issue #{ref.number}",
    }


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create tables, wire the service and run the rate-limit sweeper.

    On shutdown, background streamed runs are allowed to finish (and record
    their history) before the engine is disposed.
    """
    settings: Settings = app.state.settings

    if settings.storage.persist_results:
        try:
            await create_tables()
        except SQLAlchemyError as e:
            logger.warning("Could not prepare history database: {}", e)

    if app.state.service is None:
        app.state.service = build_service(settings)

    limiter: ClientRateLimiter = app.state.rate_limiter
    sweeper = asyncio.create_task(
        limiter.run_sweeper(settings.rate_limit.sweep_interval_seconds)
    )
    logger.info("Issue cost estimator {} started ({})", __version__, settings.environment)
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        await app.state.service.wait_for_streams()
        await dispose_engine()
        logger.info("Issue cost estimator stopped")


def create_app(
    settings: Settings | None = None,
    *,
    service: EstimationService | None = None,
    rate_limiter: ClientRateLimiter | None = None,
) -> FastAPI:
    """Build the HTTP application.

    Args:
        settings: Application settings (defaults to the cached settings)
        service: Pre-built estimation service; built at startup when omitted
        rate_limiter: Pre-built limiter; built from ``settings.rate_limit`` when omitted
    """
    settings = settings or get_settings()
    app = FastAPI(
        title="Issue Cost Estimator",
        description="Complexity and cost estimates for open GitHub issues",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.service = service
    app.state.rate_limiter = (
        rate_limiter if rate_limiter is not None else ClientRateLimiter(settings.rate_limit)
    )

    register_exception_handlers(app)
    app.include_router(router)
    return app
