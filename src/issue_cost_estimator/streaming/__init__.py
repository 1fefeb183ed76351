"""Progress streaming for long-running estimation runs."""

from .stream import ProgressStream, format_sse

__all__ = ["ProgressStream", "format_sse"]
