"""Issue Cost Estimator - LLM-assisted complexity and cost estimates for GitHub issues."""

__version__ = "0.1.0"
