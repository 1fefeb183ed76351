"""Prompt construction for issue estimation."""

from issue_cost_estimator.schemas.enums import ComplexityTier
from issue_cost_estimator.schemas.estimation import EstimationParams
from issue_cost_estimator.schemas.issues import EnrichedIssue, RepoContext

TIER_DESCRIPTIONS: dict[ComplexityTier, str] = {
    ComplexityTier.LOW: (
        "Simple bug fixes, minor text changes, documentation updates, configuration tweaks"
    ),
    ComplexityTier.MEDIUM: (
        "Feature enhancements, moderate refactoring, standard API integrations, UI improvements"
    ),
    ComplexityTier.HIGH: (
        "New major features, complex integrations, architectural changes, "
        "performance optimization"
    ),
    ComplexityTier.CRITICAL: (
        "Large-scale refactoring, security overhauls, complete system redesigns, "
        "complex distributed systems"
    ),
}

# Upper bound on characters taken from any single issue or comment body
MAX_BODY_CHARS = 4000


def _money(value: float) -> str:
    return f"{value:g}"


def build_system_prompt(params: EstimationParams) -> str:
    """Fixed instruction: tier definitions, budget ranges and output shape."""
    tiers = "\n\n".join(
        f"- **{tier.value.capitalize()}**: {TIER_DESCRIPTIONS[tier]}\n"
        f"  Estimate: {_money(budget.min)} - {_money(budget.max)} USD"
        for tier, budget in params.tier_budgets.items()
    )
    low, high = _money(params.min_budget), _money(params.max_budget)
    return f"""You are an expert software engineering project manager specializing in cost estimation for software development tasks.

Your task is to analyze GitHub issues and estimate their complexity and development cost based on these factors:
- Issue description and technical requirements
- Number and content of comments
- Labels (e.g., bug, feature, enhancement, documentation)
- Technical keywords and scope indicators
- Repository context (languages used, repository size)

**Complexity Categories and Budget Ranges**

Given the budget range of ${low} to ${high}, estimate the cost according to these complexity levels:

{tiers}

**Instructions**

1. Carefully analyze the issue details and repository context
2. Determine the appropriate complexity category
3. Calculate a specific cost estimate within the range for that complexity level
4. Be realistic about the cost estimation and consider open source contribution standards.
Be frugal. Consider the time and labour while estimating.
5. Provide clear reasoning for your estimation (2-3 sentences)

The estimatedCost MUST be a specific number (not a range) within the range of the chosen complexity level.

If any required GitHub issue data is missing (such as absent labels, empty repository context,
or incomplete issue description), include this in your reasoning, estimate based on the available data,
and state any limitations.

Respond only in valid JSON format as specified below.

## Output Format
{{
  "complexity": "low" | "medium" | "high" | "critical",
  "estimatedCost": number,
  "reasoning": "Brief explanation of the estimation (2-3 sentences)"
}}

If there is an error, respond with:
{{
  "error": "Explanation of the error."
}}
"""


def _truncate(text: str, limit: int = MAX_BODY_CHARS) -> str:
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "\n[truncated]"


def format_repo_context(context: RepoContext) -> str:
    """Render repository facts as a short markdown list."""
    lines = [f"- Repository: {context.full_name}"]
    if context.description:
        lines.append(f"- Description: {context.description}")
    if context.primary_language:
        lines.append(f"- Primary language: {context.primary_language}")
    shares = context.language_shares()
    if shares:
        breakdown = ", ".join(f"{name} ({share:.1f}%)" for name, share in shares[:8])
        lines.append(f"- Languages: {breakdown}")
    lines.append(f"- Stars: {context.stars}, forks: {context.forks}")
    lines.append(f"- Open issues: {context.open_issues}")
    lines.append(f"- Size: {context.size_kb} KB")
    if context.topics:
        lines.append(f"- Topics: {', '.join(context.topics)}")
    if context.license_name:
        lines.append(f"- License: {context.license_name}")
    return "\n".join(lines)


def format_issue(issue: EnrichedIssue) -> str:
    """Render an issue with its full comment thread."""
    labels = ", ".join(issue.labels) if issue.labels else "none"
    parts = [
        f"Issue #{issue.number}: {issue.title}",
        f"Author: {issue.author}",
        f"Opened: {issue.created_at.date().isoformat()}",
        f"Labels: {labels}",
        "",
        "Description:",
        _truncate(issue.body) or "(no description)",
        "",
        f"Comments ({issue.comment_count}):",
    ]
    if not issue.comments:
        parts.append("(no comments)")
    for comment in issue.comments:
        parts.append(
            f"- {comment.author} ({comment.created_at.date().isoformat()}): "
            f"{_truncate(comment.body)}"
        )
    return "\n".join(parts)


def build_user_prompt(context: RepoContext, issue: EnrichedIssue) -> str:
    """Repository summary followed by the issue to estimate."""
    return f"""**Repository Context:**
{format_repo_context(context)}

---

**Issue to Estimate:**
{format_issue(issue)}

---

Based on the repository context and issue details above, provide your complexity assessment and cost estimation in JSON format."""
