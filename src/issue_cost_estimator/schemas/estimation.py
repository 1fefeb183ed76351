"""Budget, parameter and result schemas for issue estimation."""

from collections.abc import Sequence
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .base import CamelModel
from .enums import ComplexityTier


class BudgetRange(BaseModel):
    """Inclusive dollar range ``[min, max]``."""

    model_config = ConfigDict(frozen=True)

    min: float = Field(ge=0, description="Lower bound (USD)")
    max: float = Field(ge=0, description="Upper bound (USD)")

    @model_validator(mode="after")
    def _check_order(self) -> Self:
        if self.min > self.max:
            raise ValueError(f"budget min ({self.min}) must not exceed max ({self.max})")
        return self

    def contains(self, value: float) -> bool:
        """Whether ``value`` lies within the range."""
        return self.min <= value <= self.max

    def clamp(self, value: float) -> float:
        """Move ``value`` to the nearest bound if it falls outside the range."""
        return min(max(value, self.min), self.max)

    def __str__(self) -> str:
        return f"{self.min:g} - {self.max:g}"


class TierBudgets(BaseModel):
    """One budget sub-range per complexity tier."""

    model_config = ConfigDict(frozen=True)

    low: BudgetRange
    medium: BudgetRange
    high: BudgetRange
    critical: BudgetRange

    def for_tier(self, tier: ComplexityTier) -> BudgetRange:
        """Budget range configured for ``tier``."""
        return getattr(self, tier.value)

    def items(self) -> list[tuple[ComplexityTier, BudgetRange]]:
        """(tier, range) pairs in severity order."""
        return [(tier, self.for_tier(tier)) for tier in ComplexityTier.ordered()]


class EstimationParams(BaseModel):
    """Fully resolved parameters for one estimation run.

    Produced by ``resolve_params``; nothing downstream applies defaults.
    """

    model_config = ConfigDict(frozen=True)

    model: str = Field(min_length=1, description="Inference model identifier")
    min_budget: float = Field(ge=0, description="Overall lower bound (USD)")
    max_budget: float = Field(ge=0, description="Overall upper bound (USD)")
    tier_budgets: TierBudgets = Field(description="Per-tier sub-ranges")
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)


class EstimationResult(CamelModel):
    """The estimate for a single issue. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    issue_number: int = Field(description="Issue number")
    title: str = Field(description="Issue title")
    complexity: ComplexityTier = Field(description="Assigned tier")
    estimated_cost: float = Field(ge=0, description="Estimated cost (USD)")
    reasoning: str = Field(default="", description="Model rationale")
    labels: tuple[str, ...] = Field(default=(), description="Issue labels")
    url: str = Field(description="Issue URL")


class EstimationSummary(CamelModel):
    """Aggregate figures over all results of a run."""

    issue_count: int = Field(ge=0)
    total_cost: float = Field(ge=0)
    average_cost: float = Field(ge=0)
    tier_counts: dict[ComplexityTier, int] = Field(default_factory=dict)

    @classmethod
    def from_results(cls, results: Sequence[EstimationResult]) -> "EstimationSummary":
        """
        Build the summary for a completed run.

        Args:
            results: All results of the run

        Returns:
            Summary with every tier present in ``tier_counts``
        """
        total = sum(result.estimated_cost for result in results)
        counts = {tier: 0 for tier in ComplexityTier.ordered()}
        for result in results:
            counts[result.complexity] += 1
        return cls(
            issue_count=len(results),
            total_cost=total,
            average_cost=total / len(results) if results else 0.0,
            tier_counts=counts,
        )
