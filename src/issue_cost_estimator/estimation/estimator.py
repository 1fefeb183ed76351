"""Single-issue complexity and cost estimation."""

from __future__ import annotations

import asyncio
import json
import math
import re
from dataclasses import dataclass
from typing import Any

from issue_cost_estimator.errors import EstimationFailure, InferenceError
from issue_cost_estimator.logging import get_logger
from issue_cost_estimator.schemas.enums import ComplexityTier
from issue_cost_estimator.schemas.estimation import EstimationParams, EstimationResult
from issue_cost_estimator.schemas.issues import EnrichedIssue, RepoContext

from .llm import InferenceClient
from .prompts import build_system_prompt, build_user_prompt

logger = get_logger(__name__)

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")


@dataclass(frozen=True)
class ParsedEstimate:
    """Tier, cost and rationale extracted from a model reply."""

    complexity: ComplexityTier
    estimated_cost: float
    reasoning: str


def parse_estimation(raw: str, issue_number: int) -> ParsedEstimate:
    """Parse a model reply into a tier and a cost.

    A reply wrapped in a markdown code fence is accepted.

    Raises:
        EstimationFailure: If the reply is not a JSON object, reports an
            error, names an unknown tier or carries a non-numeric cost
    """
    cleaned = _FENCE_OPEN.sub("", raw.strip())
    cleaned = _FENCE_CLOSE.sub("", cleaned.strip())
    try:
        payload: Any = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise EstimationFailure(issue_number, f"response is not valid JSON ({e.msg})") from e

    if not isinstance(payload, dict):
        raise EstimationFailure(issue_number, "response is not a JSON object")
    if payload.get("error"):
        raise EstimationFailure(issue_number, f"model reported an error: {payload['error']}")

    tier_name = payload.get("complexity")
    try:
        complexity = ComplexityTier(str(tier_name).strip().lower())
    except ValueError as e:
        raise EstimationFailure(issue_number, f"unknown complexity tier {tier_name!r}") from e

    cost = payload.get("estimatedCost")
    if isinstance(cost, bool) or not isinstance(cost, int | float | str):
        raise EstimationFailure(issue_number, f"non-numeric estimatedCost {cost!r}")
    try:
        value = float(cost)
    except ValueError as e:
        raise EstimationFailure(issue_number, f"non-numeric estimatedCost {cost!r}") from e
    if not math.isfinite(value):
        raise EstimationFailure(issue_number, f"non-numeric estimatedCost {cost!r}")

    reasoning = payload.get("reasoning") or ""
    return ParsedEstimate(
        complexity=complexity,
        estimated_cost=value,
        reasoning=str(reasoning).strip(),
    )


class Estimator:
    """Asks the inference collaborator for one issue's tier and cost.

    Usage:
        estimator = Estimator(OpenAIInferenceClient())
        result = await estimator.estimate(context, issue, params)
    """

    def __init__(
        self,
        client: InferenceClient,
        *,
        max_retries: int = 2,
        retry_base_delay: float = 1.0,
    ) -> None:
        """Initialize the estimator.

        Args:
            client: Inference collaborator
            max_retries: Extra attempts after a failed inference call
            retry_base_delay: First backoff delay in seconds (doubles per retry)
        """
        self._client = client
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay

    async def estimate(
        self,
        context: RepoContext,
        issue: EnrichedIssue,
        params: EstimationParams,
    ) -> EstimationResult:
        """Estimate one issue.

        Raises:
            EstimationFailure: If the call keeps failing or the reply can't be used
        """
        raw = await self._complete_with_retry(
            build_system_prompt(params),
            build_user_prompt(context, issue),
            params,
            issue.number,
        )
        parsed = parse_estimation(raw, issue.number)

        budget = params.tier_budgets.for_tier(parsed.complexity)
        cost = parsed.estimated_cost
        if not budget.contains(cost):
            clamped = budget.clamp(cost)
            logger.warning(
                "Issue #{}: cost {:g} outside {} range ({}), clamped to {:g}",
                issue.number,
                cost,
                parsed.complexity,
                budget,
                clamped,
            )
            cost = clamped

        return EstimationResult(
            issue_number=issue.number,
            title=issue.title,
            complexity=parsed.complexity,
            estimated_cost=cost,
            reasoning=parsed.reasoning,
            labels=issue.labels,
            url=issue.url,
        )

    async def _complete_with_retry(
        self,
        system: str,
        user: str,
        params: EstimationParams,
        issue_number: int,
    ) -> str:
        attempts = self._max_retries + 1
        for attempt in range(attempts):
            try:
                return await self._client.complete(
                    system,
                    user,
                    model=params.model,
                    temperature=params.temperature,
                )
            except InferenceError as e:
                if not e.retryable or attempt == attempts - 1:
                    logger.error(
                        "Issue #{}: inference failed after {} attempt(s): {}",
                        issue_number,
                        attempt + 1,
                        e,
                    )
                    raise EstimationFailure(issue_number, str(e)) from e
                delay = self._retry_base_delay * 2**attempt
                logger.warning(
                    "Issue #{}: inference error (attempt {}/{}): {}. Retrying in {:.1f}s",
                    issue_number,
                    attempt + 1,
                    attempts,
                    e,
                    delay,
                )
                await asyncio.sleep(delay)
        raise AssertionError("unreachable")
