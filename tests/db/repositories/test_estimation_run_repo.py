"""Tests for EstimationRunRepository."""

from sqlalchemy import func, select

from issue_cost_estimator.db.models import EstimationRun, IssueEstimate
from issue_cost_estimator.db.repositories import EstimationRunRepository
from issue_cost_estimator.schemas.enums import ComplexityTier
from issue_cost_estimator.schemas.estimation import EstimationSummary
from issue_cost_estimator.schemas.history import EstimationRunRead, IssueEstimateRead
from tests.factories import make_result


def sample_results():
    return [
        make_result(5, complexity=ComplexityTier.HIGH, estimated_cost=700, labels=("ui",)),
        make_result(2, complexity=ComplexityTier.LOW, estimated_cost=150),
    ]


class TestRecordRun:
    """Tests for record_run."""

    async def test_record_run(self, db_session, params):
        results = sample_results()
        summary = EstimationSummary.from_results(results)
        repo = EstimationRunRepository(db_session)

        run = await repo.record_run("octocat/hello-world", params, results, summary)

        assert run.id is not None
        assert run.repository == "octocat/hello-world"
        assert run.model == params.model
        assert run.issue_count == 2
        assert run.total_cost == 850
        assert run.tier_budgets["low"] == [100, 325]
        assert run.tier_counts == {"low": 1, "medium": 0, "high": 1, "critical": 0}
        assert await repo.count() == 1

    async def test_estimates_keep_input_order(self, db_session, params):
        results = sample_results()
        repo = EstimationRunRepository(db_session)
        run = await repo.record_run(
            "octocat/hello-world", params, results, EstimationSummary.from_results(results)
        )
        db_session.expunge_all()

        loaded = await repo.get_with_estimates(run.id)

        assert loaded is not None
        assert [e.issue_number for e in loaded.estimates] == [5, 2]
        assert [e.position for e in loaded.estimates] == [0, 1]
        assert loaded.estimates[0].complexity is ComplexityTier.HIGH
        assert loaded.estimates[0].labels == ["ui"]

    async def test_get_missing_run(self, db_session):
        assert await EstimationRunRepository(db_session).get_with_estimates(999) is None


class TestListRecent:
    """Tests for list_recent."""

    async def test_newest_first_and_filtered(self, db_session, params):
        repo = EstimationRunRepository(db_session)
        summary = EstimationSummary.from_results([make_result(1)])
        first = await repo.record_run("octocat/hello-world", params, [make_result(1)], summary)
        await repo.record_run("octocat/other", params, [make_result(1)], summary)
        third = await repo.record_run("octocat/hello-world", params, [make_result(1)], summary)

        runs = await repo.list_recent("octocat/hello-world")

        assert [r.id for r in runs] == [third.id, first.id]
        assert len(await repo.list_recent()) == 3
        assert len(await repo.list_recent(limit=1)) == 1


class TestReadSchemas:
    """Tests for reading stored runs into schemas."""

    async def test_from_orm(self, db_session, params):
        results = sample_results()
        repo = EstimationRunRepository(db_session)
        run = await repo.record_run(
            "octocat/hello-world", params, results, EstimationSummary.from_results(results)
        )
        db_session.expunge_all()
        loaded = await repo.get_with_estimates(run.id)

        run_read = EstimationRunRead.from_orm(loaded)
        estimates = IssueEstimateRead.from_orm_list(loaded.estimates)

        assert run_read.issue_count == 2
        assert estimates[0].issue_number == 5
        assert estimates[1].estimated_cost == 150

    async def test_delete_cascades(self, db_session, params):
        repo = EstimationRunRepository(db_session)
        run = await repo.record_run(
            "octocat/hello-world",
            params,
            sample_results(),
            EstimationSummary.from_results(sample_results()),
        )
        await repo.delete(run)
        await repo.flush()

        remaining = await db_session.scalar(select(func.count()).select_from(IssueEstimate))
        assert remaining == 0
        assert await db_session.get(EstimationRun, run.id) is None
