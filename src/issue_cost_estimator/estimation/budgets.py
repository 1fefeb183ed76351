"""Budget derivation and the single parameter-merge step."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from pydantic import ValidationError

from issue_cost_estimator.errors import InvalidInputError
from issue_cost_estimator.schemas.enums import ComplexityTier
from issue_cost_estimator.schemas.estimation import BudgetRange, EstimationParams, TierBudgets

if TYPE_CHECKING:
    from issue_cost_estimator.config import EstimationConfig
    from issue_cost_estimator.schemas.requests import EstimationOverrides

# Cumulative share of the overall range at each tier boundary
TIER_BREAKPOINTS: tuple[float, ...] = (0.0, 0.25, 0.60, 0.85, 1.0)


def _round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


def derive_tier_budgets(min_budget: float, max_budget: float) -> TierBudgets:
    """Split ``[min_budget, max_budget]`` into four contiguous tier ranges.

    Interior boundaries are rounded to the nearest integer and kept inside
    the overall range; the outer bounds are kept as given. 100..1000 yields
    100-325, 325-640, 640-865, 865-1000.

    Raises:
        InvalidInputError: If ``min_budget`` exceeds ``max_budget``
    """
    if min_budget > max_budget:
        raise InvalidInputError(
            f"minBudget ({min_budget:g}) must be less than or equal to maxBudget ({max_budget:g})"
        )

    span = max_budget - min_budget
    bounds = [float(min_budget)]
    for share in TIER_BREAKPOINTS[1:-1]:
        rounded = _round_half_up(min_budget + span * share)
        bounds.append(min(max(rounded, float(min_budget)), float(max_budget)))
    bounds.append(float(max_budget))

    ranges = {
        tier.value: BudgetRange(min=bounds[i], max=bounds[i + 1])
        for i, tier in enumerate(ComplexityTier.ordered())
    }
    return TierBudgets(**ranges)


def _explicit_tier_budgets(overrides: EstimationOverrides) -> TierBudgets | None:
    bounds = overrides.tier_bounds()
    given = [name for name, value in bounds.items() if value is not None]
    if not given:
        return None
    if len(given) != len(bounds):
        missing = sorted(set(bounds) - set(given))
        raise InvalidInputError(
            f"Per-tier budgets must be given for all tiers; missing: {', '.join(missing)}"
        )

    try:
        return TierBudgets(
            **{
                tier.value: BudgetRange(
                    min=bounds[f"{tier.value}_min"],  # type: ignore[arg-type]
                    max=bounds[f"{tier.value}_max"],  # type: ignore[arg-type]
                )
                for tier in ComplexityTier.ordered()
            }
        )
    except ValidationError as e:
        raise InvalidInputError(f"Invalid per-tier budget: {e.errors()[0]['msg']}") from e


def resolve_params(
    overrides: EstimationOverrides | None,
    defaults: EstimationConfig,
) -> EstimationParams:
    """Merge request overrides over configured defaults.

    This is the only place defaults are applied; everything downstream
    receives a fully resolved ``EstimationParams``.

    Args:
        overrides: Caller-supplied values (any may be absent)
        defaults: Configured estimation defaults

    Returns:
        Resolved parameters with per-tier ranges filled in

    Raises:
        InvalidInputError: On inverted budgets or a partial per-tier set
    """
    min_budget = defaults.min_budget
    max_budget = defaults.max_budget
    model = defaults.default_model
    tier_budgets: TierBudgets | None = None

    if overrides is not None:
        if overrides.min_budget is not None:
            min_budget = overrides.min_budget
        if overrides.max_budget is not None:
            max_budget = overrides.max_budget
        if overrides.model:
            model = overrides.model
        tier_budgets = _explicit_tier_budgets(overrides)

    if min_budget > max_budget:
        raise InvalidInputError(
            f"minBudget ({min_budget:g}) must be less than or equal to maxBudget ({max_budget:g})"
        )

    return EstimationParams(
        model=model,
        min_budget=min_budget,
        max_budget=max_budget,
        tier_budgets=tier_budgets or derive_tier_budgets(min_budget, max_budget),
        temperature=defaults.temperature,
    )
