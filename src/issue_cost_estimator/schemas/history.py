"""Schemas for reading stored estimation runs."""

from datetime import datetime

from .base import SchemaBase
from .enums import ComplexityTier


class IssueEstimateRead(SchemaBase):
    """A stored per-issue estimate."""

    issue_number: int
    title: str
    complexity: ComplexityTier
    estimated_cost: float
    reasoning: str
    labels: list[str]
    url: str
    position: int


class EstimationRunRead(SchemaBase):
    """A stored estimation run without its estimates."""

    id: int
    repository: str
    model: str
    min_budget: float
    max_budget: float
    issue_count: int
    total_cost: float
    average_cost: float
    created_at: datetime
