"""Helpers shared by the estimate and history commands."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from enum import StrEnum
from typing import Annotated, NoReturn, TypeVar

import typer
from rich.console import Console

from issue_cost_estimator.logging import get_logger
from issue_cost_estimator.schemas.repository import RepoRef, parse_repo_string

logger = get_logger(__name__)

console = Console()

T = TypeVar("T")


class OutputFormat(StrEnum):
    TEXT = "text"
    JSON = "json"


def exit_with_error(message: object) -> NoReturn:
    """Print ``message`` as an error and exit with code 1."""
    console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(1)


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Run ``coro`` to completion for a synchronous command.

    Any failure is reported as ``<error_prefix>: <message>`` and turned into
    exit code 1; the traceback stays in the log.
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        raise
    except Exception as e:
        logger.opt(exception=e).debug("{} failed", error_prefix)
        console.print(f"[red]{error_prefix}:[/red] {e}")
        raise typer.Exit(1) from None


def validate_repo(repo: str) -> RepoRef:
    """Accept ``owner/name`` or a repository link."""
    try:
        return parse_repo_string(repo)
    except ValueError:
        exit_with_error("Repository must be in owner/name format or a GitHub link")


# Option aliases keep typer's call-in-default out of every signature
OutputFormatOption = Annotated[
    OutputFormat,
    typer.Option("--format", "-f", help="Output format"),
]
MinBudgetOption = Annotated[
    float | None,
    typer.Option("--min-budget", min=0, help="Lower bound of the overall budget (USD)"),
]
MaxBudgetOption = Annotated[
    float | None,
    typer.Option("--max-budget", min=0, help="Upper bound of the overall budget (USD)"),
]
ModelOption = Annotated[
    str | None,
    typer.Option("--model", "-m", help="Inference model (defaults to the configured model)"),
]
RepoFilterOption = Annotated[
    str | None,
    typer.Option("--repo", "-r", help="Only runs for this repository (owner/name)"),
]
