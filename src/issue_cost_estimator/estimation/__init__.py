"""Issue estimation: budgets, prompts, inference, batching and CSV export."""

from .batch import BatchCoordinator, BatchOutcome, BatchRun, ProgressSink, RunState
from .budgets import TIER_BREAKPOINTS, derive_tier_budgets, resolve_params
from .csv_export import CSV_COLUMNS, default_filename, parse_csv, to_csv
from .estimator import Estimator, ParsedEstimate, parse_estimation
from .llm import InferenceClient, OpenAIInferenceClient
from .prompts import build_system_prompt, build_user_prompt

__all__ = [
    "CSV_COLUMNS",
    "TIER_BREAKPOINTS",
    "BatchCoordinator",
    "BatchOutcome",
    "BatchRun",
    "Estimator",
    "InferenceClient",
    "OpenAIInferenceClient",
    "ParsedEstimate",
    "ProgressSink",
    "RunState",
    "build_system_prompt",
    "build_user_prompt",
    "default_filename",
    "derive_tier_budgets",
    "parse_csv",
    "parse_estimation",
    "resolve_params",
    "to_csv",
]
