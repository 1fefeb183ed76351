"""GitHub client exceptions.

Any of these raised while listing issues or comments aborts the whole
estimation run; nothing here is retried internally.
"""

from datetime import datetime


class GitHubClientError(Exception):
    """Base exception for GitHub client errors (upstream fetch failures)."""

    pass


class GitHubAuthenticationError(GitHubClientError):
    """Raised when authentication fails (401)."""

    pass


class GitHubRetryableError(GitHubClientError):
    """Base class for errors a caller may retry later."""

    pass


class GitHubRateLimitError(GitHubRetryableError):
    """Raised when GitHub's own rate limit is exceeded (403/429 with quota headers)."""

    def __init__(self, message: str, reset_at: datetime | None = None) -> None:
        super().__init__(message)
        self.reset_at = reset_at


class GitHubNotFoundError(GitHubClientError):
    """Raised when a repository or issue is not found (404)."""

    pass
