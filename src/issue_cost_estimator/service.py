"""Estimation pipeline: fetch, enrich, estimate, export, record.

``EstimationService`` wires the issue source to the batch coordinator and is
the only caller of either. The HTTP and CLI surfaces translate its results
and exceptions; nothing here knows about either surface.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from issue_cost_estimator.config import Settings, get_settings
from issue_cost_estimator.db.engine import get_session
from issue_cost_estimator.db.repositories import EstimationRunRepository
from issue_cost_estimator.errors import EstimatorError
from issue_cost_estimator.estimation.batch import BatchCoordinator, ProgressSink
from issue_cost_estimator.estimation.csv_export import to_csv
from issue_cost_estimator.estimation.estimator import Estimator
from issue_cost_estimator.estimation.llm import OpenAIInferenceClient
from issue_cost_estimator.github.client import GitHubClient
from issue_cost_estimator.github.exceptions import GitHubClientError
from issue_cost_estimator.github.source import IssueSource
from issue_cost_estimator.logging import bind_issue, bind_repo, get_logger, log_context
from issue_cost_estimator.schemas.estimation import (
    EstimationParams,
    EstimationResult,
    EstimationSummary,
)
from issue_cost_estimator.schemas.repository import IssueRef, RepoRef
from issue_cost_estimator.streaming.stream import ProgressStream

logger = get_logger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]
Announce = Callable[[str], Awaitable[None]]


@dataclass
class RepositoryEstimation:
    """Outcome of estimating every open issue of a repository."""

    repository: RepoRef
    results: list[EstimationResult]
    summary: EstimationSummary
    csv_content: str
    run_id: int | None = None

    @property
    def total_issues(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict[str, Any]:
        """JSON body of a non-streamed repository estimate."""
        return {
            "success": True,
            "repository": {"owner": self.repository.owner, "repo": self.repository.name},
            "totalIssues": self.total_issues,
            "estimations": [result.to_wire() for result in self.results],
            "csvContent": self.csv_content,
            "summary": self.summary.to_wire(),
        }


@dataclass
class SliceEstimation:
    """Outcome of estimating one slice of a repository's issue list."""

    repository: RepoRef
    total_issues: int
    start_index: int
    batch_size: int
    results: list[EstimationResult]

    @property
    def processed_count(self) -> int:
        return len(self.results)

    @property
    def is_complete(self) -> bool:
        """Whether this slice reaches the end of the issue list."""
        return self.start_index + self.batch_size >= self.total_issues

    @property
    def next_start_index(self) -> int | None:
        return None if self.is_complete else self.start_index + self.batch_size

    @property
    def message(self) -> str:
        if not self.results:
            return "No more issues to process"
        first = self.start_index + 1
        last = self.start_index + self.processed_count
        return f"Processed batch: {first}-{last} of {self.total_issues} issues"

    def to_dict(self) -> dict[str, Any]:
        """JSON body of a batch-mode response."""
        return {
            "success": True,
            "repository": {"owner": self.repository.owner, "repo": self.repository.name},
            "totalIssues": self.total_issues,
            "startIndex": self.start_index,
            "batchSize": self.batch_size,
            "processedCount": self.processed_count,
            "estimations": [result.to_wire() for result in self.results],
            "isComplete": self.is_complete,
            "nextStartIndex": self.next_start_index,
            "message": self.message,
        }


def describe_failure(error: Exception) -> str:
    """Message reported to a remote caller for a failed run."""
    if isinstance(error, EstimatorError | GitHubClientError):
        return str(error)
    return "Failed to estimate issues"


class EstimationService:
    """Runs repository and single-issue estimations.

    Usage:
        service = EstimationService(source, coordinator, session_factory=get_session)
        outcome = await service.estimate_repository(repo, params)
        print(outcome.csv_content)
    """

    def __init__(
        self,
        source: IssueSource,
        coordinator: BatchCoordinator,
        *,
        session_factory: SessionFactory | None = None,
        stream_queue_size: int = 64,
    ) -> None:
        """Initialize the service.

        Args:
            source: Issue source for GitHub data
            coordinator: Batch coordinator driving the estimator
            session_factory: Opens a committing DB session; None disables history
            stream_queue_size: Event buffer of streams created by stream_repository
        """
        self._source = source
        self._coordinator = coordinator
        self._session_factory = session_factory
        self._stream_queue_size = stream_queue_size
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def coordinator(self) -> BatchCoordinator:
        return self._coordinator

    @property
    def active_streams(self) -> int:
        """Streamed runs still executing."""
        return len(self._tasks)

    async def estimate_repository(
        self,
        repo: RepoRef,
        params: EstimationParams,
        sink: ProgressSink | None = None,
        announce: Announce | None = None,
    ) -> RepositoryEstimation:
        """Estimate every open issue of ``repo``.

        Args:
            repo: Repository to estimate
            params: Resolved estimation parameters
            sink: Receives per-result and per-group progress
            announce: Receives a message at the start of each phase

        Raises:
            GitHubClientError: If fetching the repository or its issues fails
            EstimationFailure: If any issue could not be estimated
        """
        log = bind_repo(repo.owner, repo.name)

        async def _phase(message: str) -> None:
            log.info(message)
            if announce is not None:
                await announce(message)

        await _phase(f"Fetching repository context for {repo.full_name}...")
        context = await self._source.fetch_repo_context(repo)

        await _phase("Fetching open issues...")
        issues = await self._source.fetch_open_issues(repo)

        await _phase(f"Found {len(issues)} open issues. Fetching comments...")
        enriched = await self._source.enrich_all(repo, issues)

        await _phase(f"Estimating {len(enriched)} issues with {params.model}...")
        outcome = await self._coordinator.run(context, enriched, params, sink=sink)

        csv_content = to_csv(outcome.results)
        run_id = await self._record(repo.full_name, params, outcome.results, outcome.summary)
        return RepositoryEstimation(
            repository=repo,
            results=outcome.results,
            summary=outcome.summary,
            csv_content=csv_content,
            run_id=run_id,
        )

    async def estimate_repository_slice(
        self,
        repo: RepoRef,
        params: EstimationParams,
        start_index: int,
        batch_size: int,
    ) -> SliceEstimation:
        """Estimate ``issues[start_index:start_index + batch_size]`` only.

        The full issue list is fetched on every call so callers can page
        through a repository one request at a time.
        """
        log = bind_repo(repo.owner, repo.name)
        issues = await self._source.fetch_open_issues(repo)
        selected = issues[start_index : start_index + batch_size]
        if not selected:
            log.info("No issues left at index {} (total {})", start_index, len(issues))
            return SliceEstimation(
                repository=repo,
                total_issues=len(issues),
                start_index=start_index,
                batch_size=batch_size,
                results=[],
            )

        context = await self._source.fetch_repo_context(repo)
        log.info("Enriching {} issues from index {}", len(selected), start_index)
        enriched = await self._source.enrich_all(repo, selected)
        outcome = await self._coordinator.run(context, enriched, params)
        return SliceEstimation(
            repository=repo,
            total_issues=len(issues),
            start_index=start_index,
            batch_size=batch_size,
            results=outcome.results,
        )

    async def estimate_issue(self, ref: IssueRef, params: EstimationParams) -> EstimationResult:
        """Estimate one issue.

        Raises:
            InvalidInputError: If the number refers to a pull request
            GitHubNotFoundError: If the issue doesn't exist
            EstimationFailure: If the estimate could not be produced
        """
        log = bind_issue(ref.owner, ref.name, ref.number)
        log.info("Estimating single issue")
        issue, context = await asyncio.gather(
            self._source.fetch_issue(ref),
            self._source.fetch_repo_context(ref.repo),
        )
        enriched = await self._source.enrich(ref.repo, issue)
        outcome = await self._coordinator.run(context, [enriched], params)
        await self._record(ref.repo.full_name, params, outcome.results, outcome.summary)
        return outcome.results[0]

    def stream_repository(self, repo: RepoRef, params: EstimationParams) -> ProgressStream:
        """Start a repository estimate in the background and return its stream.

        The stream receives a ``log`` event per phase and per group, a
        ``result`` event per issue, then exactly one ``complete`` or
        ``error`` event. The run continues if the consumer disconnects.
        """
        stream = ProgressStream(maxsize=self._stream_queue_size)
        task = asyncio.create_task(self._run_streamed(repo, params, stream))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return stream

    async def _run_streamed(
        self,
        repo: RepoRef,
        params: EstimationParams,
        stream: ProgressStream,
    ) -> None:
        with log_context(repo=repo.full_name, mode="stream"):
            try:
                outcome = await self.estimate_repository(
                    repo, params, sink=stream, announce=stream.log
                )
            except Exception as e:
                logger.opt(exception=e).error("Streamed estimate of {} failed", repo.full_name)
                await stream.error(describe_failure(e))
                return
        await stream.complete(outcome.summary, outcome.csv_content, outcome.results)

    async def wait_for_streams(self) -> None:
        """Wait for all background streamed runs to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _record(
        self,
        repository: str,
        params: EstimationParams,
        results: Sequence[EstimationResult],
        summary: EstimationSummary,
    ) -> int | None:
        """Store a finished run; storage problems are logged, never raised."""
        if self._session_factory is None:
            return None
        try:
            async with self._session_factory() as session:
                run = await EstimationRunRepository(session).record_run(
                    repository, params, results, summary
                )
                run_id = run.id
        except SQLAlchemyError as e:
            logger.warning("Could not record estimation run for {}: {}", repository, e)
            return None
        logger.debug("Recorded estimation run {} for {}", run_id, repository)
        return run_id


def build_service(settings: Settings | None = None) -> EstimationService:
    """Wire the default GitHub, OpenAI and storage collaborators."""
    settings = settings or get_settings()
    source = IssueSource(
        GitHubClient(settings.github_token or None),
        per_page=settings.pacing.issues_per_page,
        max_concurrent=settings.pacing.max_concurrent_requests,
    )
    estimator = Estimator(
        OpenAIInferenceClient(settings.openai_api_key or None),
        max_retries=settings.estimation.max_retries,
        retry_base_delay=settings.estimation.retry_base_delay_seconds,
    )
    return EstimationService(
        source,
        BatchCoordinator(estimator, group_size=settings.estimation.group_size),
        session_factory=get_session if settings.storage.persist_results else None,
        stream_queue_size=settings.pacing.stream_queue_size,
    )
