"""Repository for EstimationRun history."""

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from issue_cost_estimator.db.models import EstimationRun, IssueEstimate
from issue_cost_estimator.schemas.estimation import (
    EstimationParams,
    EstimationResult,
    EstimationSummary,
)

from .base import BaseRepository


class EstimationRunRepository(BaseRepository[EstimationRun]):
    """Records completed runs and reads them back.

    Usage:
        async with get_session() as session:
            repo = EstimationRunRepository(session)
            run = await repo.record_run("octocat/hello-world", params, results, summary)
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: Async SQLAlchemy session
        """
        super().__init__(session, EstimationRun)

    async def record_run(
        self,
        repository: str,
        params: EstimationParams,
        results: Sequence[EstimationResult],
        summary: EstimationSummary,
    ) -> EstimationRun:
        """Store a completed run with its estimates in input order.

        Args:
            repository: Full repository name (owner/name)
            params: Resolved parameters the run used
            results: Results in input order
            summary: Run summary

        Returns:
            The flushed run (its ``id`` is assigned)
        """
        run = EstimationRun(
            repository=repository,
            model=params.model,
            min_budget=params.min_budget,
            max_budget=params.max_budget,
            tier_budgets={
                tier.value: [budget.min, budget.max] for tier, budget in params.tier_budgets.items()
            },
            issue_count=summary.issue_count,
            total_cost=summary.total_cost,
            average_cost=summary.average_cost,
            tier_counts={tier.value: count for tier, count in summary.tier_counts.items()},
        )
        run.estimates = [
            IssueEstimate(
                position=position,
                issue_number=result.issue_number,
                title=result.title,
                complexity=result.complexity,
                estimated_cost=result.estimated_cost,
                reasoning=result.reasoning,
                labels=list(result.labels),
                url=result.url,
            )
            for position, result in enumerate(results)
        ]
        self.add(run)
        await self.flush()
        return run

    async def list_recent(
        self,
        repository: str | None = None,
        limit: int = 20,
    ) -> list[EstimationRun]:
        """Most recent runs first, optionally for one repository."""
        stmt = select(EstimationRun).order_by(
            EstimationRun.created_at.desc(), EstimationRun.id.desc()
        )
        if repository is not None:
            stmt = stmt.where(EstimationRun.repository == repository)
        stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_with_estimates(self, run_id: int) -> EstimationRun | None:
        """A run with its estimates loaded (ordered by position)."""
        stmt = (
            select(EstimationRun)
            .where(EstimationRun.id == run_id)
            .options(selectinload(EstimationRun.estimates))
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()
