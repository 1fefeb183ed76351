"""Loguru setup for the CLI, the HTTP server and background estimation runs.

Console output is tagged with the component that logged it (``extra[name]``
from :func:`get_logger`, else the loguru module name for intercepted stdlib
records). An optional file sink keeps the full record, including bound
repository and issue context, at DEBUG.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger, Record

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

CONSOLE_FORMAT = (
    "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> - <level>{message}</level>\n{exception}"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{extra[component]}:{function}:{line} | {extra} | {message}\n{exception}"
)

# stdlib logger -> level when not debugging
_QUIET_LIBRARIES: dict[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "openai": logging.WARNING,
    "githubkit": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
}
_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

_configured = False


class InterceptHandler(logging.Handler):
    """Forward stdlib records (uvicorn, httpx, openai, SQLAlchemy) to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so loguru reports the real caller
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).bind(stdlib=record.name).log(
            level, record.getMessage()
        )


def _tag_component(record: Record) -> bool:
    extra = record["extra"]
    extra.setdefault("component", extra.get("name") or extra.get("stdlib") or record["name"])
    return True


def _effective_level(level: LogLevel, verbose: bool, quiet: bool) -> LogLevel:
    if verbose:
        return "DEBUG"
    if quiet:
        return "WARNING"
    return level


def setup_logging(
    level: LogLevel = "INFO",
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    serialize: bool = False,
) -> Logger:
    """Replace loguru's sinks with the application's.

    Args:
        level: Base level from settings
        verbose: Force DEBUG (wins over ``quiet``)
        quiet: Force WARNING
        log_file: Optional rotating file sink, always at DEBUG
        rotation: Rotation policy for ``log_file`` (e.g. "10 MB", "1 day")
        retention: How long rotated files are kept
        serialize: Write the file sink as JSON lines

    Returns:
        The configured loguru logger
    """
    global _configured

    effective = _effective_level(level, verbose, quiet)
    logger.remove()
    logger.add(
        sys.stderr,
        level=effective,
        format=CONSOLE_FORMAT,
        filter=_tag_component,
        colorize=True,
        diagnose=False,
    )
    if log_file is not None:
        logger.add(
            log_file,
            level="DEBUG",
            format=FILE_FORMAT,
            filter=_tag_component,
            rotation=rotation,
            retention=retention,
            compression="gz",
            serialize=serialize,
        )

    _route_stdlib(debug=effective in ("TRACE", "DEBUG"))
    _configured = True
    return logger


def _route_stdlib(*, debug: bool) -> None:
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    # uvicorn attaches its own handlers when it starts
    for name in _UVICORN_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers = [InterceptHandler()]
        server_logger.propagate = False

    for name, quiet_level in _QUIET_LIBRARIES.items():
        if debug:
            quiet_level = logging.INFO if name == "sqlalchemy.engine" else logging.DEBUG
        logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str) -> Logger:
    """Logger tagged with ``name`` (usually ``__name__``)."""
    return logger.bind(name=name)


def bind_repo(owner: str, repo: str) -> Logger:
    """Logger carrying the repository being estimated."""
    return logger.bind(name="estimate", repo=f"{owner}/{repo}")


def bind_issue(owner: str, repo: str, issue_number: int) -> Logger:
    """Logger carrying the repository and issue being estimated."""
    return logger.bind(name="estimate", repo=f"{owner}/{repo}", issue=issue_number)


@contextmanager
def log_context(**context: Any) -> Iterator[Logger]:
    """Attach ``context`` to every record logged inside the block.

    Used around background runs so records from the batch and the estimator
    carry the repository they belong to::

        with log_context(repo="octocat/hello-world", mode="stream"):
            await service.estimate_repository(...)
    """
    with logger.contextualize(**context):
        yield logger


def is_configured() -> bool:
    return _configured


def reset_logging() -> None:
    """Drop every sink and forget the configuration (for tests)."""
    global _configured
    logger.remove()
    _configured = False
