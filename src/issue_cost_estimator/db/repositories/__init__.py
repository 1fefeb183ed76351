"""Repository pattern implementation for database access."""

from .base import BaseRepository
from .estimation_run import EstimationRunRepository

__all__ = [
    "BaseRepository",
    "EstimationRunRepository",
]
