"""Tests for the issuecost CLI."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from issue_cost_estimator import __version__
from issue_cost_estimator.cli.app import app
from issue_cost_estimator.config import get_settings
from issue_cost_estimator.db import EstimationRunRepository, create_tables, get_session
from issue_cost_estimator.db import engine as db_engine
from issue_cost_estimator.estimation.csv_export import default_filename, parse_csv, to_csv
from issue_cost_estimator.github.exceptions import GitHubNotFoundError
from issue_cost_estimator.schemas.enums import ComplexityTier
from issue_cost_estimator.schemas.estimation import EstimationSummary
from issue_cost_estimator.schemas.repository import RepoRef
from issue_cost_estimator.service import RepositoryEstimation
from tests.factories import make_result

runner = CliRunner()


@pytest.fixture
def results():
    return [
        make_result(1, complexity=ComplexityTier.LOW, estimated_cost=150),
        make_result(2, complexity=ComplexityTier.HIGH, estimated_cost=700),
    ]


@pytest.fixture
def mock_service(results):
    """Patch build_service in the estimate commands."""
    service = MagicMock()
    service.estimate_repository = AsyncMock(
        return_value=RepositoryEstimation(
            repository=RepoRef(owner="octocat", name="hello-world"),
            results=results,
            summary=EstimationSummary.from_results(results),
            csv_content=to_csv(results),
            run_id=None,
        )
    )
    service.estimate_issue = AsyncMock(return_value=results[1])
    with (
        patch("issue_cost_estimator.cli.estimate.build_service", return_value=service),
        patch("issue_cost_estimator.cli.estimate.get_settings") as mock_settings,
    ):
        mock_settings.return_value.storage.persist_results = False
        mock_settings.return_value.estimation = get_settings().estimation
        yield service


class TestGlobalFlags:
    """Tests for global CLI flags."""

    def test_help_shows_commands(self):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "estimate" in result.stdout
        assert "history" in result.stdout
        assert "serve" in result.stdout
        assert "--verbose" in result.stdout

    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestEstimateRepo:
    """Tests for `issuecost estimate repo`."""

    def test_writes_csv(self, mock_service, results, tmp_path):
        output = tmp_path / "out.csv"

        result = runner.invoke(app, ["estimate", "repo", "octocat/hello-world", "-o", str(output)])

        assert result.exit_code == 0, result.stdout
        assert parse_csv(output.read_text()) == results
        assert "CSV written" in result.stdout
        repo_arg, params = mock_service.estimate_repository.await_args.args
        assert repo_arg == RepoRef(owner="octocat", name="hello-world")
        assert params.max_budget == 1000

    def test_default_filename(self, mock_service, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        result = runner.invoke(app, ["estimate", "repo", "https://github.com/octocat/hello-world"])

        assert result.exit_code == 0, result.stdout
        expected = default_filename(RepoRef(owner="octocat", name="hello-world"))
        assert (tmp_path / expected).exists()

    def test_json_output(self, mock_service, tmp_path):
        output = tmp_path / "out.csv"

        result = runner.invoke(
            app,
            ["estimate", "repo", "octocat/hello-world", "-o", str(output), "--format", "json"],
        )

        assert result.exit_code == 0, result.stdout
        body = json.loads(result.stdout)
        assert body["totalIssues"] == 2
        assert body["csvPath"] == str(output)

    def test_budget_options(self, mock_service, tmp_path):
        result = runner.invoke(
            app,
            [
                "estimate",
                "repo",
                "octocat/hello-world",
                "-o",
                str(tmp_path / "out.csv"),
                "--min-budget",
                "1000",
                "--max-budget",
                "5000",
            ],
        )

        assert result.exit_code == 0, result.stdout
        params = mock_service.estimate_repository.await_args.args[1]
        assert (params.min_budget, params.max_budget) == (1000, 5000)

    def test_inverted_budget(self, mock_service):
        result = runner.invoke(
            app,
            ["estimate", "repo", "octocat/hello-world", "--min-budget", "10", "--max-budget", "5"],
        )

        assert result.exit_code == 1
        assert "minBudget" in result.stdout
        mock_service.estimate_repository.assert_not_awaited()

    def test_invalid_repo(self, mock_service):
        result = runner.invoke(app, ["estimate", "repo", "not-a-repo"])

        assert result.exit_code == 1
        assert "owner/name" in result.stdout

    def test_pipeline_error(self, mock_service):
        mock_service.estimate_repository.side_effect = GitHubNotFoundError(
            "Repository octocat/hello-world not found"
        )

        result = runner.invoke(app, ["estimate", "repo", "octocat/hello-world"])

        assert result.exit_code == 1
        assert "Estimation failed" in result.stdout


class TestEstimateIssue:
    """Tests for `issuecost estimate issue`."""

    def test_prints_estimate(self, mock_service):
        result = runner.invoke(
            app, ["estimate", "issue", "https://github.com/octocat/hello-world/issues/2"]
        )

        assert result.exit_code == 0, result.stdout
        assert "#2" in result.stdout
        assert "high" in result.stdout
        ref = mock_service.estimate_issue.await_args.args[0]
        assert ref.number == 2

    def test_json_output(self, mock_service):
        result = runner.invoke(
            app,
            [
                "estimate",
                "issue",
                "https://github.com/octocat/hello-world/issues/2",
                "--format",
                "json",
            ],
        )

        assert json.loads(result.stdout)["estimatedCost"] == 700

    def test_invalid_link(self, mock_service):
        result = runner.invoke(app, ["estimate", "issue", "https://github.com/octocat/hello-world"])

        assert result.exit_code == 1
        assert "Invalid GitHub issue URL" in result.stdout


# -----------------------------------------------------------------------------
# History
# -----------------------------------------------------------------------------
@pytest.fixture
def history_db(tmp_path, monkeypatch):
    """Point the engine at a throwaway SQLite file."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'history.db'}")
    get_settings.cache_clear()
    monkeypatch.setattr(db_engine, "_engine", None)
    monkeypatch.setattr(db_engine, "_async_session_factory", None)
    yield
    get_settings.cache_clear()


def seed_run(params, results) -> int:
    async def _seed() -> int:
        await create_tables()
        async with get_session() as session:
            run = await EstimationRunRepository(session).record_run(
                "octocat/hello-world", params, results, EstimationSummary.from_results(results)
            )
            return run.id

    return asyncio.run(_seed())


class TestHistory:
    """Tests for `issuecost history`."""

    def test_list_empty(self, history_db):
        result = runner.invoke(app, ["history", "list"])

        assert result.exit_code == 0, result.stdout
        assert "No estimation runs" in result.stdout

    def test_list_json(self, history_db, params, results):
        run_id = seed_run(params, results)

        result = runner.invoke(app, ["history", "list", "--format", "json"])

        assert result.exit_code == 0, result.stdout
        runs = json.loads(result.stdout)
        assert runs[0]["id"] == run_id
        assert runs[0]["repository"] == "octocat/hello-world"
        assert runs[0]["issue_count"] == 2

    def test_list_filtered_by_repo(self, history_db, params, results):
        seed_run(params, results)

        result = runner.invoke(app, ["history", "list", "--repo", "octocat/other"])

        assert "No estimation runs" in result.stdout

    def test_export(self, history_db, params, results, tmp_path):
        run_id = seed_run(params, results)
        output = tmp_path / "export.csv"

        result = runner.invoke(app, ["history", "export", str(run_id), "-o", str(output)])

        assert result.exit_code == 0, result.stdout
        assert parse_csv(output.read_text()) == results

    def test_export_missing_run(self, history_db):
        result = runner.invoke(app, ["history", "export", "999"])

        assert result.exit_code == 1
        assert "not found" in result.stdout
