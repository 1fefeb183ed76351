"""Pydantic schemas for parsing GitHub API responses.

These schemas map directly to the GitHub REST API response structure.
See: https://docs.github.com/en/rest/issues
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .issues import EnrichedIssue, IssueComment, RepoContext


class GitHubUser(BaseModel):
    """GitHub user object from API responses."""

    login: str = Field(description="GitHub username")
    id: int = Field(default=0, description="GitHub user ID")
    type: str = Field(default="User", description="User type")


class GitHubLabel(BaseModel):
    """GitHub label object from API responses."""

    name: str = Field(description="Label name")
    id: int | None = Field(default=None, description="Label ID")
    color: str | None = Field(default=None, description="Label color (hex without #)")
    description: str | None = Field(default=None, description="Label description")


class GitHubComment(BaseModel):
    """GitHub issue comment from the comments endpoint."""

    id: int = Field(description="Comment ID")
    user: GitHubUser | None = Field(default=None, description="Comment author")
    body: str | None = Field(default=None, description="Comment text")
    created_at: datetime = Field(description="When the comment was posted")
    updated_at: datetime | None = Field(default=None, description="Last edit timestamp")

    def to_issue_comment(self) -> IssueComment:
        """Convert to the immutable comment record used for estimation."""
        return IssueComment(
            author=self.user.login if self.user else "ghost",
            body=self.body or "",
            created_at=self.created_at,
        )


class GitHubIssue(BaseModel):
    """GitHub Issue object from API.

    Maps to: GET /repos/{owner}/{repo}/issues/{number}

    The list endpoint also returns pull requests; those carry a
    ``pull_request`` member.
    """

    number: int = Field(description="Issue number")
    html_url: str = Field(description="GitHub issue URL")
    state: str = Field(default="open", description="Issue state (open, closed)")
    title: str = Field(description="Issue title")
    body: str | None = Field(default=None, description="Issue description")

    user: GitHubUser | None = Field(default=None, description="Issue author")

    created_at: datetime = Field(description="When the issue was created")
    updated_at: datetime = Field(description="Last update timestamp")
    closed_at: datetime | None = Field(default=None, description="When the issue was closed")

    comments: int = Field(default=0, description="Number of comments")
    labels: list[GitHubLabel] = Field(default_factory=list, description="Issue labels")
    pull_request: dict[str, Any] | None = Field(
        default=None, description="Present only when the item is a pull request"
    )

    @field_validator("labels", mode="before")
    @classmethod
    def _normalize_labels(cls, value: Any) -> Any:
        """Labels may be returned as plain names instead of objects."""
        if isinstance(value, list):
            return [{"name": item} if isinstance(item, str) else item for item in value]
        return value

    @property
    def is_pull_request(self) -> bool:
        """Whether this item is a pull request rather than an issue."""
        return self.pull_request is not None

    @property
    def label_names(self) -> list[str]:
        """Label names in API order."""
        return [label.name for label in self.labels]

    def to_enriched(self, comments: list[GitHubComment]) -> EnrichedIssue:
        """
        Factory method to build the immutable enriched issue.

        Args:
            comments: Full comment thread for this issue

        Returns:
            EnrichedIssue with comments in creation order
        """
        ordered = sorted(comments, key=lambda c: c.created_at)
        return EnrichedIssue(
            number=self.number,
            title=self.title,
            body=self.body or "",
            labels=tuple(self.label_names),
            comments=tuple(c.to_issue_comment() for c in ordered),
            author=self.user.login if self.user else "ghost",
            created_at=self.created_at,
            updated_at=self.updated_at,
            url=self.html_url,
        )


class GitHubLicense(BaseModel):
    """License summary embedded in repository responses."""

    key: str | None = None
    name: str | None = None
    spdx_id: str | None = None


class GitHubRepository(BaseModel):
    """GitHub repository object from API.

    Maps to: GET /repos/{owner}/{repo}
    """

    full_name: str = Field(description="owner/name")
    html_url: str = Field(description="Repository URL")
    description: str | None = Field(default=None, description="Repository description")
    language: str | None = Field(default=None, description="Primary language")
    stargazers_count: int = Field(default=0, description="Stars")
    forks_count: int = Field(default=0, description="Forks")
    open_issues_count: int = Field(default=0, description="Open issues and PRs")
    size: int = Field(default=0, description="Repository size in KB")
    topics: list[str] = Field(default_factory=list, description="Repository topics")
    default_branch: str = Field(default="main", description="Default branch")
    license: GitHubLicense | None = Field(default=None, description="License")

    def to_context(self, languages: dict[str, int] | None = None) -> RepoContext:
        """
        Factory method to build the repository context for prompts.

        Args:
            languages: Byte counts per language from the languages endpoint

        Returns:
            RepoContext instance
        """
        return RepoContext(
            full_name=self.full_name,
            url=self.html_url,
            description=self.description or "",
            primary_language=self.language,
            languages=dict(languages or {}),
            stars=self.stargazers_count,
            forks=self.forks_count,
            open_issues=self.open_issues_count,
            size_kb=self.size,
            topics=tuple(self.topics),
            default_branch=self.default_branch,
            license_name=self.license.name if self.license else None,
        )
