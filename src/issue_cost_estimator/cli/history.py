"""History commands: browse and export recorded estimation runs."""

import json
from pathlib import Path

import typer
from rich.table import Table

from issue_cost_estimator.db import EstimationRunRepository, create_tables, get_session
from issue_cost_estimator.estimation.csv_export import to_csv
from issue_cost_estimator.schemas.estimation import EstimationResult
from issue_cost_estimator.schemas.history import EstimationRunRead, IssueEstimateRead

from .common import (
    OutputFormat,
    OutputFormatOption,
    RepoFilterOption,
    console,
    exit_with_error,
    run_async_command,
    validate_repo,
)

app = typer.Typer(help="Browse recorded estimation runs")


@app.command("list")
def list_runs(
    repo: RepoFilterOption = None,
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Maximum runs to show"),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """List recent estimation runs, newest first.

    Examples:
        issuecost history list
        issuecost history list --repo octocat/hello-world --limit 5
    """
    repository = validate_repo(repo).full_name if repo else None

    async def _list() -> list[EstimationRunRead]:
        await create_tables()
        async with get_session() as session:
            runs = await EstimationRunRepository(session).list_recent(repository, limit=limit)
            return EstimationRunRead.from_orm_list(runs)

    runs = run_async_command(_list(), error_prefix="Could not read history")

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps([run.model_dump(mode="json") for run in runs]))
        return

    if not runs:
        console.print("[dim]No estimation runs recorded yet.[/dim]")
        return

    table = Table(title="Estimation Runs")
    table.add_column("ID", justify="right")
    table.add_column("Repository", style="bold")
    table.add_column("Model")
    table.add_column("Issues", justify="right")
    table.add_column("Total (USD)", justify="right")
    table.add_column("Created")
    for run in runs:
        table.add_row(
            str(run.id),
            run.repository,
            run.model,
            str(run.issue_count),
            f"{run.total_cost:,.2f}",
            f"{run.created_at:%Y-%m-%d %H:%M}",
        )
    console.print(table)


@app.command("export")
def export_run(
    run_id: int = typer.Argument(..., help="Run ID (see `issuecost history list`)"),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="CSV file to write (prints to stdout when omitted)",
    ),
) -> None:
    """Export a recorded run as CSV.

    Examples:
        issuecost history export 3 --output estimates.csv
    """

    async def _load() -> list[IssueEstimateRead] | None:
        await create_tables()
        async with get_session() as session:
            run = await EstimationRunRepository(session).get_with_estimates(run_id)
            if run is None:
                return None
            return IssueEstimateRead.from_orm_list(run.estimates)

    estimates = run_async_command(_load(), error_prefix="Could not read history")
    if estimates is None:
        exit_with_error(f"Run {run_id} not found")

    csv_content = to_csv(
        EstimationResult(
            issue_number=estimate.issue_number,
            title=estimate.title,
            complexity=estimate.complexity,
            estimated_cost=estimate.estimated_cost,
            reasoning=estimate.reasoning,
            labels=tuple(estimate.labels),
            url=estimate.url,
        )
        for estimate in estimates
    )

    if output is None:
        typer.echo(csv_content, nl=False)
        return
    output.write_text(csv_content, encoding="utf-8")
    console.print(f"[green]✓[/green] Wrote {len(estimates)} estimates to {output}")
