"""Issue source - paged issue retrieval and comment enrichment.

Produces the ordered list of enriched issues a run estimates. Paging is done
page by page so a short page ends the listing and any page failure aborts the
whole listing (no partial issue list is ever returned).
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from issue_cost_estimator.errors import InvalidInputError
from issue_cost_estimator.logging import bind_repo, get_logger
from issue_cost_estimator.schemas.github_api import GitHubComment, GitHubIssue
from issue_cost_estimator.schemas.issues import EnrichedIssue, RepoContext

if TYPE_CHECKING:
    from issue_cost_estimator.schemas.repository import IssueRef, RepoRef

    from .client import GitHubClient

logger = get_logger(__name__)


class IssueSource:
    """Fetches open issues and their comment threads from GitHub.

    Usage:
        async with GitHubClient() as client:
            source = IssueSource(client)
            issues = await source.fetch_open_issues(repo)
            enriched = await source.enrich_all(repo, issues)
    """

    def __init__(
        self,
        client: GitHubClient,
        *,
        per_page: int = 100,
        max_concurrent: int = 5,
    ) -> None:
        """Initialize the issue source.

        Args:
            client: GitHub API client
            per_page: Page size for issue and comment listing
            max_concurrent: Maximum concurrent comment fetches in enrich_all
        """
        self._client = client
        self._per_page = per_page
        self._max_concurrent = max_concurrent

    async def fetch_open_issues(self, repo: RepoRef) -> list[GitHubIssue]:
        """List every open issue of a repository, excluding pull requests.

        Pages are fetched in order and concatenated. Listing stops at the
        first page holding fewer than ``per_page`` items (counted before pull
        requests are filtered out).

        Raises:
            GitHubClientError: If any page fails; nothing is returned
        """
        log = bind_repo(repo.owner, repo.name)
        issues: list[GitHubIssue] = []
        page = 1

        while True:
            log.debug("Fetching issues page {}", page)
            items = await self._client.list_open_issues_page(
                repo.owner, repo.name, page=page, per_page=self._per_page
            )
            actual = [item for item in items if not item.is_pull_request]
            issues.extend(actual)
            log.debug(
                "Page {}: {} issues ({} pull requests skipped)",
                page,
                len(actual),
                len(items) - len(actual),
            )

            if len(items) < self._per_page:
                break
            page += 1

        log.info("Fetched {} open issues across {} page(s)", len(issues), page)
        return issues

    async def fetch_comments(self, repo: RepoRef, issue_number: int) -> list[GitHubComment]:
        """Fetch the full comment thread of one issue, page by page."""
        comments: list[GitHubComment] = []
        page = 1
        while True:
            items = await self._client.list_issue_comments_page(
                repo.owner, repo.name, issue_number, page=page, per_page=self._per_page
            )
            comments.extend(items)
            if len(items) < self._per_page:
                return comments
            page += 1

    async def enrich(self, repo: RepoRef, issue: GitHubIssue) -> EnrichedIssue:
        """Attach the comment thread to an issue.

        Issues reporting zero comments skip the comments request.
        """
        comments = await self.fetch_comments(repo, issue.number) if issue.comments else []
        return issue.to_enriched(comments)

    async def enrich_all(self, repo: RepoRef, issues: list[GitHubIssue]) -> list[EnrichedIssue]:
        """Enrich many issues concurrently; output order matches input order."""
        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def _bounded(issue: GitHubIssue) -> EnrichedIssue:
            async with semaphore:
                return await self.enrich(repo, issue)

        return list(await asyncio.gather(*(_bounded(issue) for issue in issues)))

    async def fetch_repo_context(self, repo: RepoRef) -> RepoContext:
        """Fetch repository metadata and language breakdown."""
        repository, languages = await asyncio.gather(
            self._client.get_repository(repo.owner, repo.name),
            self._client.get_languages(repo.owner, repo.name),
        )
        return repository.to_context(languages)

    async def fetch_issue(self, ref: IssueRef) -> GitHubIssue:
        """Fetch a single issue by number.

        Raises:
            InvalidInputError: If the number refers to a pull request
            GitHubNotFoundError: If the issue doesn't exist
        """
        issue = await self._client.get_issue(ref.owner, ref.name, ref.number)
        if issue.is_pull_request:
            raise InvalidInputError("This is a pull request, not an issue")
        return issue
