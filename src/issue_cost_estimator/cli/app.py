"""Main CLI application for Issue Cost Estimator."""

from pathlib import Path
from typing import Annotated

import typer
import uvicorn

from issue_cost_estimator import __version__
from issue_cost_estimator.cli import estimate as estimate_cmd
from issue_cost_estimator.cli import history as history_cmd
from issue_cost_estimator.cli.common import console
from issue_cost_estimator.config import get_settings
from issue_cost_estimator.logging import setup_logging

app = typer.Typer(
    name="issuecost",
    help="LLM-assisted complexity and cost estimates for open GitHub issues.",
    add_completion=False,
)


def _show_version(value: bool) -> None:
    if value:
        console.print(f"issuecost version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version", help="Show version and exit.", callback=_show_version, is_eager=True
        ),
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log at DEBUG.")] = False,
    quiet: Annotated[bool, typer.Option("--quiet", "-q", help="Warnings and errors only.")] = False,
) -> None:
    """Price the open issues of a GitHub repository with an LLM."""
    settings = get_settings()
    file_config = settings.logging
    setup_logging(
        settings.log_level,
        verbose=verbose,
        quiet=quiet,
        log_file=Path(file_config.log_file) if file_config.log_file else None,
        rotation=file_config.rotation,
        retention=file_config.retention,
        serialize=file_config.serialize,
    )


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind address (default from settings)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port (default from settings)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes (development)"),
) -> None:
    """Run the HTTP API.

    Examples:
        issuecost serve
        issuecost serve --host 0.0.0.0 --port 8080
    """
    settings = get_settings()
    bind_host = host or settings.server.host
    bind_port = port or settings.server.port
    console.print(f"Serving on [bold]http://{bind_host}:{bind_port}[/bold]")
    uvicorn.run(
        "issue_cost_estimator.api.app:create_app",
        factory=True,
        host=bind_host,
        port=bind_port,
        reload=reload,
        log_config=None,
    )


# Register subcommands
app.add_typer(estimate_cmd.app, name="estimate")
app.add_typer(history_cmd.app, name="history")


if __name__ == "__main__":
    app()
