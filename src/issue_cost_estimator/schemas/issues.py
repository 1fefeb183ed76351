"""Immutable issue and repository records fed to the estimator."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class IssueComment(BaseModel):
    """A single comment on an issue."""

    model_config = ConfigDict(frozen=True)

    author: str = Field(description="GitHub username of the commenter")
    body: str = Field(default="", description="Comment text")
    created_at: datetime = Field(description="When the comment was posted")


class EnrichedIssue(BaseModel):
    """An issue together with its full comment thread.

    Built once per issue per run and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    number: int = Field(description="Issue number")
    title: str = Field(description="Issue title")
    body: str = Field(default="", description="Issue description")
    labels: tuple[str, ...] = Field(default=(), description="Label names")
    comments: tuple[IssueComment, ...] = Field(
        default=(), description="Comments in creation order"
    )
    author: str = Field(description="GitHub username of the reporter")
    created_at: datetime = Field(description="When the issue was opened")
    updated_at: datetime = Field(description="Last update timestamp")
    url: str = Field(description="Canonical issue URL")

    @property
    def comment_count(self) -> int:
        """Number of comments in the thread."""
        return len(self.comments)


class RepoContext(BaseModel):
    """Repository facts that inform every estimate in a run."""

    model_config = ConfigDict(frozen=True)

    full_name: str
    url: str = ""
    description: str = ""
    primary_language: str | None = None
    languages: dict[str, int] = Field(default_factory=dict)
    stars: int = 0
    forks: int = 0
    open_issues: int = 0
    size_kb: int = 0
    topics: tuple[str, ...] = ()
    default_branch: str = "main"
    license_name: str | None = None

    def language_shares(self) -> list[tuple[str, float]]:
        """Languages with their share of the code base in percent, largest first."""
        total = sum(self.languages.values())
        if total == 0:
            return []
        shares = [(name, count / total * 100) for name, count in self.languages.items()]
        return sorted(shares, key=lambda item: item[1], reverse=True)
