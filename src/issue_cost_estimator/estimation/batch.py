"""Group-wise batch estimation with progress reporting.

Issues are split into contiguous groups. Groups run strictly one after the
other; the members of a group are estimated concurrently, so at most
``group_size`` inference calls are in flight for a run.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol

from issue_cost_estimator.logging import get_logger
from issue_cost_estimator.schemas.estimation import (
    EstimationParams,
    EstimationResult,
    EstimationSummary,
)
from issue_cost_estimator.schemas.issues import EnrichedIssue, RepoContext

from .estimator import Estimator

logger = get_logger(__name__)


class ProgressSink(Protocol):
    """Receives per-result and per-group notifications from a run."""

    async def on_result(self, result: EstimationResult, index: int, total: int) -> None: ...

    async def on_progress(self, processed: int, total: int) -> None: ...


class RunState(StrEnum):
    """State of a batch run."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class BatchRun:
    """Mutable bookkeeping for one coordinator invocation."""

    total: int
    pending: list[int] = field(default_factory=list)
    results: list[EstimationResult] = field(default_factory=list)
    total_cost: float = 0.0
    state: RunState = RunState.PENDING
    error: str | None = None
    started_at: float | None = None
    finished_at: float | None = None

    @property
    def processed(self) -> int:
        """Number of issues estimated so far."""
        return len(self.results)

    @property
    def is_done(self) -> bool:
        """Whether the run has finished (completed or failed)."""
        return self.state in (RunState.COMPLETED, RunState.FAILED)

    @property
    def elapsed_seconds(self) -> float:
        """Wall time since the run started."""
        if self.started_at is None:
            return 0.0
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return end - self.started_at

    def start(self) -> None:
        self.state = RunState.IN_PROGRESS
        self.started_at = time.monotonic()

    def record(self, group: Sequence[EstimationResult]) -> None:
        """Append a finished group's results in order."""
        for result in group:
            self.results.append(result)
            self.total_cost += result.estimated_cost
        del self.pending[: len(group)]

    def complete(self) -> None:
        self.state = RunState.COMPLETED
        self.finished_at = time.monotonic()

    def fail(self, error: str) -> None:
        self.state = RunState.FAILED
        self.error = error
        self.finished_at = time.monotonic()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "state": self.state.value,
            "total": self.total,
            "processed": self.processed,
            "pending": len(self.pending),
            "total_cost": self.total_cost,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
            "error": self.error,
        }


@dataclass(frozen=True)
class BatchOutcome:
    """Ordered results of a completed run and their summary."""

    results: list[EstimationResult]
    summary: EstimationSummary


class BatchCoordinator:
    """Drives the estimator over an ordered issue list in fixed-size groups.

    Usage:
        coordinator = BatchCoordinator(estimator, group_size=5)
        outcome = await coordinator.run(context, issues, params, sink=stream)
        print(outcome.summary.total_cost)
    """

    def __init__(self, estimator: Estimator, group_size: int = 5) -> None:
        """Initialize the coordinator.

        Args:
            estimator: Single-issue estimator
            group_size: Issues estimated concurrently per group
        """
        if group_size < 1:
            raise ValueError("group_size must be at least 1")
        self._estimator = estimator
        self._group_size = group_size

    @property
    def group_size(self) -> int:
        """Issues per group."""
        return self._group_size

    async def run(
        self,
        context: RepoContext,
        issues: Sequence[EnrichedIssue],
        params: EstimationParams,
        sink: ProgressSink | None = None,
    ) -> BatchOutcome:
        """Estimate every issue, group by group.

        After each group, its results are reported to ``sink.on_result`` in
        input order, followed by exactly one ``sink.on_progress``.

        Returns:
            Results in input order plus the run summary

        Raises:
            EstimationFailure: The first failure (in input order) of the
                group that failed; nothing from the run is returned
        """
        total = len(issues)
        run = BatchRun(total=total, pending=[issue.number for issue in issues])
        run.start()
        logger.info(
            "Estimating {} issues in groups of {} with {}",
            total,
            self._group_size,
            params.model,
        )

        try:
            for group_start in range(0, total, self._group_size):
                group = issues[group_start : group_start + self._group_size]
                group_results = await self._run_group(context, group, params)
                run.record(group_results)

                if sink is not None:
                    for offset, result in enumerate(group_results):
                        await sink.on_result(result, group_start + offset, total)
                    await sink.on_progress(run.processed, total)
                logger.debug("Estimated {}/{} issues", run.processed, total)
        except Exception as e:
            run.fail(str(e))
            logger.error("Batch run failed: {}", run.to_dict())
            raise

        run.complete()
        summary = EstimationSummary.from_results(run.results)
        logger.info(
            "Estimated {} issues in {:.1f}s, total ${:,.2f}",
            summary.issue_count,
            run.elapsed_seconds,
            summary.total_cost,
        )
        return BatchOutcome(results=list(run.results), summary=summary)

    async def _run_group(
        self,
        context: RepoContext,
        group: Sequence[EnrichedIssue],
        params: EstimationParams,
    ) -> list[EstimationResult]:
        """Estimate one group concurrently; results keep input order."""
        settled = await asyncio.gather(
            *(self._estimator.estimate(context, issue, params) for issue in group),
            return_exceptions=True,
        )
        results: list[EstimationResult] = []
        for outcome in settled:
            if isinstance(outcome, BaseException):
                raise outcome
            results.append(outcome)
        return results
