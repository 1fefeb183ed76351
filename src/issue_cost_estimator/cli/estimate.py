"""Estimate commands for Issue Cost Estimator."""

import json
from pathlib import Path

import typer
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from issue_cost_estimator.config import get_settings
from issue_cost_estimator.db.engine import create_tables
from issue_cost_estimator.errors import InvalidInputError
from issue_cost_estimator.estimation.budgets import resolve_params
from issue_cost_estimator.estimation.csv_export import default_filename
from issue_cost_estimator.schemas.enums import ComplexityTier
from issue_cost_estimator.schemas.estimation import (
    EstimationParams,
    EstimationResult,
    EstimationSummary,
)
from issue_cost_estimator.schemas.repository import parse_issue_url
from issue_cost_estimator.schemas.requests import EstimationOverrides
from issue_cost_estimator.service import RepositoryEstimation, build_service

from .common import (
    MaxBudgetOption,
    MinBudgetOption,
    ModelOption,
    OutputFormat,
    OutputFormatOption,
    console,
    exit_with_error,
    run_async_command,
    validate_repo,
)

app = typer.Typer(help="Estimate GitHub issues")

_TIER_STYLES = {
    ComplexityTier.LOW: "green",
    ComplexityTier.MEDIUM: "cyan",
    ComplexityTier.HIGH: "yellow",
    ComplexityTier.CRITICAL: "red",
}


class RichProgressSink:
    """Drives a rich progress bar from batch progress notifications."""

    def __init__(self, progress: Progress) -> None:
        self._progress = progress
        self._task = progress.add_task("Estimating", total=None)

    async def on_result(self, result: EstimationResult, index: int, total: int) -> None:
        self._progress.update(self._task, total=total)

    async def on_progress(self, processed: int, total: int) -> None:
        self._progress.update(self._task, completed=processed, total=total)

    async def announce(self, message: str) -> None:
        self._progress.update(self._task, description=message.rstrip("."))


def _resolve(
    min_budget: float | None, max_budget: float | None, model: str | None
) -> EstimationParams:
    overrides = EstimationOverrides(min_budget=min_budget, max_budget=max_budget, model=model)
    try:
        return resolve_params(overrides, get_settings().estimation)
    except InvalidInputError as e:
        exit_with_error(e)


def _print_results(results: list[EstimationResult], summary: EstimationSummary) -> None:
    table = Table(title="Issue Estimates")
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Complexity")
    table.add_column("Cost (USD)", justify="right")

    for result in results:
        title = result.title if len(result.title) <= 60 else result.title[:57] + "..."
        style = _TIER_STYLES[result.complexity]
        table.add_row(
            str(result.issue_number),
            title,
            f"[{style}]{result.complexity.value}[/{style}]",
            f"{result.estimated_cost:,.2f}",
        )

    console.print(table)
    tiers = ", ".join(f"{tier.value}: {count}" for tier, count in summary.tier_counts.items())
    console.print(
        f"[bold]{summary.issue_count}[/bold] issues, total "
        f"[bold]${summary.total_cost:,.2f}[/bold], average ${summary.average_cost:,.2f} ({tiers})"
    )


@app.command("repo")
def estimate_repo(
    repo: str = typer.Argument(
        ...,
        help="Repository link or owner/name (e.g., octocat/hello-world)",
    ),
    min_budget: MinBudgetOption = None,
    max_budget: MaxBudgetOption = None,
    model: ModelOption = None,
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="CSV file to write (defaults to <owner>-<repo>-estimates-<date>.csv)",
    ),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Estimate every open issue of a repository and write a CSV.

    Examples:
        issuecost estimate repo octocat/hello-world
        issuecost estimate repo https://github.com/octocat/hello-world --max-budget 5000
        issuecost estimate repo octocat/hello-world --format json
    """
    repo_ref = validate_repo(repo)
    params = _resolve(min_budget, max_budget, model)
    settings = get_settings()

    async def _estimate() -> RepositoryEstimation:
        if settings.storage.persist_results:
            await create_tables()
        service = build_service(settings)
        with Progress(
            TextColumn("[bold]{task.description}[/bold]"),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=True,
            disable=output_format == OutputFormat.JSON,
        ) as progress:
            sink = RichProgressSink(progress)
            return await service.estimate_repository(
                repo_ref, params, sink=sink, announce=sink.announce
            )

    outcome = run_async_command(_estimate(), error_prefix="Estimation failed")

    path = output or Path(default_filename(repo_ref))
    path.write_text(outcome.csv_content, encoding="utf-8")

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(outcome.to_dict() | {"csvPath": str(path)}))
        return

    _print_results(outcome.results, outcome.summary)
    console.print(f"[green]✓[/green] CSV written to {path}")
    if outcome.run_id is not None:
        console.print(f"[dim]Recorded as run {outcome.run_id}[/dim]")


@app.command("issue")
def estimate_issue(
    issue_link: str = typer.Argument(
        ...,
        help="Issue link (e.g., https://github.com/octocat/hello-world/issues/42)",
    ),
    min_budget: MinBudgetOption = None,
    max_budget: MaxBudgetOption = None,
    model: ModelOption = None,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Estimate a single issue.

    Examples:
        issuecost estimate issue https://github.com/octocat/hello-world/issues/42
    """
    try:
        ref = parse_issue_url(issue_link)
    except ValueError as e:
        exit_with_error(e)
    params = _resolve(min_budget, max_budget, model)
    settings = get_settings()

    async def _estimate() -> EstimationResult:
        if settings.storage.persist_results:
            await create_tables()
        return await build_service(settings).estimate_issue(ref, params)

    result = run_async_command(_estimate(), error_prefix="Estimation failed")

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(result.to_wire()))
        return

    style = _TIER_STYLES[result.complexity]
    console.print(f"[bold]#{result.issue_number}[/bold] {result.title}")
    console.print(f"  Complexity: [{style}]{result.complexity.value}[/{style}]")
    console.print(f"  Estimate:   ${result.estimated_cost:,.2f}")
    if result.reasoning:
        console.print(f"  Reasoning:  {result.reasoning}")
