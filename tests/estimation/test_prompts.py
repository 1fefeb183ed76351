"""Tests for prompt construction."""

from issue_cost_estimator.estimation.prompts import (
    MAX_BODY_CHARS,
    build_system_prompt,
    build_user_prompt,
    format_issue,
    format_repo_context,
)
from tests.factories import make_comment, make_enriched_issue, make_repo_context


class TestSystemPrompt:
    """Tests for build_system_prompt."""

    def test_lists_every_tier_with_its_range(self, params):
        prompt = build_system_prompt(params)

        assert "**Low**" in prompt
        assert "Estimate: 100 - 325 USD" in prompt
        assert "Estimate: 325 - 640 USD" in prompt
        assert "Estimate: 640 - 865 USD" in prompt
        assert "Estimate: 865 - 1000 USD" in prompt
        assert "$100 to $1000" in prompt

    def test_asks_for_json(self, params):
        prompt = build_system_prompt(params)

        assert '"estimatedCost": number' in prompt
        assert "Be frugal" in prompt


class TestUserPrompt:
    """Tests for issue and repository rendering."""

    def test_repo_context(self):
        text = format_repo_context(make_repo_context())

        assert "- Repository: octocat/hello-world" in text
        assert "Python (75.0%)" in text
        assert "- Topics: demo" in text

    def test_issue_with_comments(self):
        issue = make_enriched_issue(
            42,
            title="Crash on start",
            labels=("bug", "ui"),
            comments=(make_comment(author="maintainer", body="Confirmed"),),
        )
        text = format_issue(issue)

        assert text.startswith("Issue #42: Crash on start")
        assert "Labels: bug, ui" in text
        assert "Comments (1):" in text
        assert "- maintainer (2024-01-12): Confirmed" in text

    def test_issue_without_comments_or_labels(self):
        text = format_issue(make_enriched_issue(1, labels=(), body=""))

        assert "Labels: none" in text
        assert "(no description)" in text
        assert "(no comments)" in text

    def test_long_body_truncated(self):
        text = format_issue(make_enriched_issue(1, body="x" * (MAX_BODY_CHARS + 500)))

        assert "[truncated]" in text
        assert "x" * (MAX_BODY_CHARS + 1) not in text

    def test_user_prompt_sections(self):
        prompt = build_user_prompt(make_repo_context(), make_enriched_issue(5))

        assert prompt.index("**Repository Context:**") < prompt.index("**Issue to Estimate:**")
        assert "Issue #5: Issue 5" in prompt
