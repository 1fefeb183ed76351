"""Repository and issue references parsed from user-supplied links."""

import re

from pydantic import BaseModel, Field

_PROTOCOL = re.compile(r"^https?://", re.IGNORECASE)
_REPO_PATH = re.compile(r"github\.com/([^/\s]+)/([^/\s#?]+)", re.IGNORECASE)
_ISSUE_PATH = re.compile(r"github\.com/([^/\s]+)/([^/\s]+)/issues/(\d+)", re.IGNORECASE)


class RepoRef(BaseModel):
    """A GitHub repository identified by owner and name."""

    owner: str = Field(max_length=100, description="GitHub org or user")
    name: str = Field(max_length=100, description="Repository name")

    @property
    def full_name(self) -> str:
        """Full repository path (e.g., 'octocat/hello-world')."""
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return self.full_name


class IssueRef(RepoRef):
    """A single issue within a repository."""

    number: int = Field(ge=1, description="Issue number")

    @property
    def repo(self) -> RepoRef:
        """The repository this issue belongs to."""
        return RepoRef(owner=self.owner, name=self.name)

    def __str__(self) -> str:
        return f"{self.full_name}#{self.number}"


def _normalize_link(link: str) -> str:
    """Trim, add a scheme, drop ``www.``, trailing slashes and a ``.git`` suffix."""
    normalized = link.strip()
    if not _PROTOCOL.match(normalized):
        normalized = f"https://{normalized}"
    normalized = re.sub(r"^(https?://)www\.", r"\1", normalized, flags=re.IGNORECASE)
    normalized = normalized.rstrip("/")
    if normalized.endswith(".git"):
        normalized = normalized[: -len(".git")]
    return normalized


def parse_repo_url(link: str) -> RepoRef:
    """Parse a GitHub repository link.

    Accepts ``https://github.com/owner/repo``, ``github.com/owner/repo``,
    ``www.github.com/owner/repo.git`` and deeper links into the repository.

    Raises:
        ValueError: If the link does not point at a GitHub repository
    """
    match = _REPO_PATH.search(_normalize_link(link))
    if not match:
        raise ValueError(f"Invalid GitHub repository URL: {link!r}")
    owner, name = match.groups()
    return RepoRef(owner=owner, name=name)


def parse_issue_url(link: str) -> IssueRef:
    """Parse a GitHub issue link (``github.com/owner/repo/issues/123``).

    Raises:
        ValueError: If the link does not point at a GitHub issue
    """
    match = _ISSUE_PATH.search(_normalize_link(link))
    if not match:
        raise ValueError(
            "Invalid GitHub issue URL. Expected format: github.com/owner/repo/issues/123"
        )
    owner, name, number = match.groups()
    return IssueRef(owner=owner, name=name, number=int(number))


def parse_repo_string(repo: str) -> RepoRef:
    """Parse ``owner/name`` or a full repository link.

    Raises:
        ValueError: If neither form matches
    """
    candidate = repo.strip()
    if "github.com" in candidate.lower():
        return parse_repo_url(candidate)
    parts = candidate.split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Repository must be in owner/name format: {repo!r}")
    return RepoRef(owner=parts[0], name=parts[1])
