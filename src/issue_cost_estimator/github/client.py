"""Thin async wrapper over githubkit's REST API for issue estimation.

Only the calls the estimator needs are exposed: one page of open issues, one
page of an issue's comments, a single issue, and repository metadata plus its
language breakdown. Paging stays with the caller so it decides when to stop.
githubkit errors and unexpected payloads surface as ``GitHubClientError``
subclasses; nothing is retried here.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any, TypeVar

from githubkit import GitHub
from githubkit.exception import RequestFailed
from pydantic import BaseModel, ValidationError

from issue_cost_estimator.config import get_settings
from issue_cost_estimator.logging import get_logger
from issue_cost_estimator.schemas.github_api import (
    GitHubComment,
    GitHubIssue,
    GitHubRepository,
)

from .exceptions import (
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubNotFoundError,
    GitHubRateLimitError,
)

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _payload(item: Any) -> dict[str, Any]:
    return item.model_dump(exclude_unset=True)


class GitHubClient:
    """Async GitHub client.

    Usage:
        async with GitHubClient() as client:
            page = await client.list_open_issues_page("octocat", "hello-world", page=1)

    The token is optional; without one GitHub applies its anonymous quota.
    """

    def __init__(self, token: str | None = None) -> None:
        self._token = token or get_settings().github_token or None
        if self._token is None:
            logger.warning("No GITHUB_TOKEN configured; using unauthenticated GitHub access")
        self._client: GitHub[Any] | None = None

    @property
    def _github(self) -> GitHub[Any]:
        if self._client is None:
            self._client = GitHub(self._token)
        return self._client

    @property
    def authenticated(self) -> bool:
        return self._token is not None

    async def close(self) -> None:
        self._client = None

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _call(
        self,
        request: Callable[..., Awaitable[Any]],
        *,
        missing: str,
        **params: Any,
    ) -> Any:
        """Send ``request`` and return its parsed data.

        ``missing`` names the resource for the 404 message.
        """
        try:
            response = await request(**params)
        except RequestFailed as e:
            raise self._handle_error(e, missing=missing) from e
        return response.parsed_data

    @staticmethod
    def _validate(model: type[ModelT], data: dict[str, Any], where: str) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise GitHubClientError(f"Unexpected {where}: {e}") from e

    # -------------------------------------------------------------------------
    # Repository
    # -------------------------------------------------------------------------
    async def get_repository(self, owner: str, repo: str) -> GitHubRepository:
        """Repository metadata.

        Raises:
            GitHubNotFoundError: If the repository doesn't exist
        """
        data = await self._call(
            self._github.rest.repos.async_get,
            missing=f"Repository {owner}/{repo}",
            owner=owner,
            repo=repo,
        )
        where = f"repository payload for {owner}/{repo}"
        return self._validate(GitHubRepository, _payload(data), where)

    async def get_languages(self, owner: str, repo: str) -> dict[str, int]:
        """Bytes of code per language."""
        data = await self._call(
            self._github.rest.repos.async_list_languages,
            missing=f"Repository {owner}/{repo}",
            owner=owner,
            repo=repo,
        )
        return {name: count for name, count in data.model_dump().items() if isinstance(count, int)}

    # -------------------------------------------------------------------------
    # Issues and comments
    # -------------------------------------------------------------------------
    async def list_open_issues_page(
        self,
        owner: str,
        repo: str,
        *,
        page: int,
        per_page: int = 100,
    ) -> list[GitHubIssue]:
        """One page of open issues in API order.

        Pull requests come back mixed in, exactly as the issues endpoint
        returns them; filtering is the caller's job.

        Args:
            owner: Repository owner (org or user)
            repo: Repository name
            page: 1-based page number
            per_page: Results per page (max 100)
        """
        items = await self._call(
            self._github.rest.issues.async_list_for_repo,
            missing=f"Repository {owner}/{repo}",
            owner=owner,
            repo=repo,
            state="open",
            per_page=per_page,
            page=page,
        )
        where = f"issue payload from {owner}/{repo} (page {page})"
        return [self._validate(GitHubIssue, _payload(item), where) for item in items]

    async def list_issue_comments_page(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        *,
        page: int,
        per_page: int = 100,
    ) -> list[GitHubComment]:
        """One page of an issue's comments, oldest first."""
        items = await self._call(
            self._github.rest.issues.async_list_comments,
            missing=f"Issue #{issue_number} in {owner}/{repo}",
            owner=owner,
            repo=repo,
            issue_number=issue_number,
            per_page=per_page,
            page=page,
        )
        where = f"comment payload for #{issue_number} in {owner}/{repo}"
        return [self._validate(GitHubComment, _payload(item), where) for item in items]

    async def get_issue(self, owner: str, repo: str, number: int) -> GitHubIssue:
        """A single issue, which may turn out to be a pull request.

        Raises:
            GitHubNotFoundError: If the issue doesn't exist
        """
        data = await self._call(
            self._github.rest.issues.async_get,
            missing=f"Issue #{number} in {owner}/{repo}",
            owner=owner,
            repo=repo,
            issue_number=number,
        )
        return self._validate(GitHubIssue, _payload(data), f"issue payload for #{number}")

    # -------------------------------------------------------------------------
    # Error translation
    # -------------------------------------------------------------------------
    def _handle_error(
        self, error: RequestFailed, *, missing: str = "Resource"
    ) -> GitHubClientError:
        """Map a githubkit failure onto the client's exception hierarchy."""
        status = error.response.status_code
        headers = error.response.headers

        if status == 401:
            return GitHubAuthenticationError("Invalid GitHub token")
        if status == 404:
            return GitHubNotFoundError(f"{missing} not found")
        if status in (403, 429):
            if headers.get("x-ratelimit-remaining") == "0":
                reset_ts = int(headers.get("x-ratelimit-reset", "0"))
                return GitHubRateLimitError(
                    "GitHub rate limit exceeded",
                    reset_at=datetime.fromtimestamp(reset_ts, tz=UTC) if reset_ts else None,
                )
            return GitHubClientError(f"Access forbidden: {error}")
        return GitHubClientError(f"GitHub API error ({status}): {error}")
