"""GitHub API access.

This module provides:
- GitHubClient: Async GitHub API client (githubkit)
- IssueSource: Paged open-issue listing and comment enrichment
- GitHub error hierarchy
"""

from .client import GitHubClient
from .exceptions import (
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubRetryableError,
)
from .source import IssueSource

__all__ = [
    # Client
    "GitHubClient",
    "IssueSource",
    # Exceptions
    "GitHubAuthenticationError",
    "GitHubClientError",
    "GitHubNotFoundError",
    "GitHubRateLimitError",
    "GitHubRetryableError",
]
