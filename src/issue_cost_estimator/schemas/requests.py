"""Request bodies accepted by the HTTP API."""

from pydantic import Field

from .base import CamelModel


class EstimationOverrides(CamelModel):
    """Caller overrides merged over the configured estimation defaults.

    Per-tier bounds must be given all together or not at all.
    """

    min_budget: float | None = Field(default=None, ge=0)
    max_budget: float | None = Field(default=None, ge=0)
    model: str | None = Field(default=None, min_length=1)

    low_min: float | None = Field(default=None, ge=0)
    low_max: float | None = Field(default=None, ge=0)
    medium_min: float | None = Field(default=None, ge=0)
    medium_max: float | None = Field(default=None, ge=0)
    high_min: float | None = Field(default=None, ge=0)
    high_max: float | None = Field(default=None, ge=0)
    critical_min: float | None = Field(default=None, ge=0)
    critical_max: float | None = Field(default=None, ge=0)

    def tier_bounds(self) -> dict[str, float | None]:
        """The eight per-tier bounds keyed by field name."""
        return {
            name: getattr(self, name)
            for name in (
                "low_min",
                "low_max",
                "medium_min",
                "medium_max",
                "high_min",
                "high_max",
                "critical_min",
                "critical_max",
            )
        }


class RepoEstimateRequest(EstimationOverrides):
    """Body of ``POST /estimate-repo-issues``."""

    repo_link: str = Field(min_length=1, description="GitHub repository link")
    stream: bool = Field(default=False, description="Respond with a server-sent event stream")


class RepoBatchRequest(EstimationOverrides):
    """Body of ``POST /estimate-repo-batch`` (one slice of the issue list per call)."""

    repo_link: str = Field(min_length=1, description="GitHub repository link")
    start_index: int = Field(default=0, ge=0, description="First issue index to estimate")
    batch_size: int = Field(default=15, ge=1, le=100, description="Issues per call")


class IssueEstimateRequest(EstimationOverrides):
    """Body of ``POST /estimate-issue``."""

    issue_link: str = Field(min_length=1, description="GitHub issue link")
