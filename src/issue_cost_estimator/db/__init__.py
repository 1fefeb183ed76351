"""Database module for estimation history."""

from issue_cost_estimator.db.engine import (
    create_tables,
    dispose_engine,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
)
from issue_cost_estimator.db.models import Base, EstimationRun, IssueEstimate
from issue_cost_estimator.db.repositories import BaseRepository, EstimationRunRepository

__all__ = [
    # Models
    "Base",
    "EstimationRun",
    "IssueEstimate",
    # Engine
    "create_tables",
    "dispose_engine",
    "drop_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    # Repositories
    "BaseRepository",
    "EstimationRunRepository",
]
