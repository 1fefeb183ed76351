"""Pydantic schemas for Issue Cost Estimator.

This module provides input validation and output serialization models.
"""

from .base import CamelModel, SchemaBase
from .enums import ComplexityTier
from .estimation import (
    BudgetRange,
    EstimationParams,
    EstimationResult,
    EstimationSummary,
    TierBudgets,
)
from .events import (
    CompleteEvent,
    ErrorEvent,
    LogEvent,
    ProgressEvent,
    ResultEvent,
    progress_event_adapter,
)
from .github_api import (
    GitHubComment,
    GitHubIssue,
    GitHubLabel,
    GitHubLicense,
    GitHubRepository,
    GitHubUser,
)
from .history import EstimationRunRead, IssueEstimateRead
from .issues import EnrichedIssue, IssueComment, RepoContext
from .repository import IssueRef, RepoRef, parse_issue_url, parse_repo_string, parse_repo_url
from .requests import (
    EstimationOverrides,
    IssueEstimateRequest,
    RepoBatchRequest,
    RepoEstimateRequest,
)

__all__ = [
    # Base
    "CamelModel",
    "SchemaBase",
    # Enums
    "ComplexityTier",
    # Estimation
    "BudgetRange",
    "EstimationParams",
    "EstimationResult",
    "EstimationSummary",
    "TierBudgets",
    # Events
    "CompleteEvent",
    "ErrorEvent",
    "LogEvent",
    "ProgressEvent",
    "ResultEvent",
    "progress_event_adapter",
    # GitHub API
    "GitHubComment",
    "GitHubIssue",
    "GitHubLabel",
    "GitHubLicense",
    "GitHubRepository",
    "GitHubUser",
    # History
    "EstimationRunRead",
    "IssueEstimateRead",
    # Issues
    "EnrichedIssue",
    "IssueComment",
    "RepoContext",
    # References
    "IssueRef",
    "RepoRef",
    "parse_issue_url",
    "parse_repo_string",
    "parse_repo_url",
    # Requests
    "EstimationOverrides",
    "IssueEstimateRequest",
    "RepoBatchRequest",
    "RepoEstimateRequest",
]
