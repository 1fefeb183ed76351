"""Test fixtures for Issue Cost Estimator."""

from .github_responses import (
    GITHUB_COMMENTS_RESPONSE,
    GITHUB_ISSUE_RESPONSE,
    GITHUB_ISSUES_PAGE_RESPONSE,
    GITHUB_LANGUAGES_RESPONSE,
    GITHUB_PULL_REQUEST_ITEM,
    GITHUB_REPOSITORY_RESPONSE,
    GITHUB_USER_RESPONSE,
)

__all__ = [
    "GITHUB_COMMENTS_RESPONSE",
    "GITHUB_ISSUE_RESPONSE",
    "GITHUB_ISSUES_PAGE_RESPONSE",
    "GITHUB_LANGUAGES_RESPONSE",
    "GITHUB_PULL_REQUEST_ITEM",
    "GITHUB_REPOSITORY_RESPONSE",
    "GITHUB_USER_RESPONSE",
]
