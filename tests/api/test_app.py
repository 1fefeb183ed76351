"""Tests for the HTTP API.

Tests cover:
- Health check
- Repository, batch and single-issue endpoints
- Server-sent event streaming
- Error mapping (400, 404, 429, 502)
- Per-client rate limiting and its headers
"""

import json

import pytest
from fastapi.testclient import TestClient

from issue_cost_estimator.api import create_app
from issue_cost_estimator.config import RateLimitConfig
from issue_cost_estimator.estimation.batch import BatchCoordinator
from issue_cost_estimator.estimation.estimator import Estimator
from issue_cost_estimator.github.exceptions import GitHubClientError, GitHubNotFoundError
from issue_cost_estimator.ratelimit import ClientRateLimiter
from issue_cost_estimator.service import EstimationService
from tests.factories import (
    FakeInferenceClient,
    FakeIssueSource,
    estimation_reply,
    failing_reply,
    make_issue_model,
)

REPO_LINK = "https://github.com/octocat/hello-world"


def build_client(test_settings, source=None, inference=None, rate_limit=None) -> TestClient:
    source = source or FakeIssueSource([make_issue_model(n) for n in range(1, 4)])
    estimator = Estimator(inference or FakeInferenceClient(), max_retries=0, retry_base_delay=0)
    coordinator = BatchCoordinator(estimator, group_size=2)
    service = EstimationService(source, coordinator)  # type: ignore[arg-type]
    app = create_app(
        test_settings,
        service=service,
        rate_limiter=ClientRateLimiter(
            rate_limit or RateLimitConfig(short_limit=1000, daily_limit=1000)
        ),
    )
    return TestClient(app)


@pytest.fixture
def client(test_settings):
    with build_client(test_settings) as client:
        yield client


def parse_sse(body: str) -> list[tuple[str, dict]]:
    events = []
    for frame in body.strip().split("\n\n"):
        event_line, data_line = frame.split("\n")
        events.append(
            (event_line.removeprefix("event: "), json.loads(data_line.removeprefix("data: ")))
        )
    return events


# -----------------------------------------------------------------------------
# Health
# -----------------------------------------------------------------------------
class TestHealthcheck:
    """Tests for GET /healthcheck."""

    def test_healthcheck(self, client):
        response = client.get("/healthcheck")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["timestamp"].endswith("Z")

    def test_starts_without_inference_key(self, test_settings):
        settings = test_settings.model_copy(update={"openai_api_key": ""})

        with TestClient(create_app(settings)) as client:
            response = client.get("/healthcheck")

        assert response.status_code == 200


# -----------------------------------------------------------------------------
# Repository Estimates
# -----------------------------------------------------------------------------
class TestEstimateRepoIssues:
    """Tests for POST /estimate-repo-issues."""

    def test_json_response(self, client):
        response = client.post("/estimate-repo-issues", json={"repoLink": REPO_LINK})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["repository"] == {"owner": "octocat", "repo": "hello-world"}
        assert body["totalIssues"] == 3
        assert [e["issueNumber"] for e in body["estimations"]] == [1, 2, 3]
        assert body["summary"]["totalCost"] == 600
        assert body["csvContent"].startswith("issue_number,title")

    def test_budget_overrides_reach_the_model(self, test_settings):
        inference = FakeInferenceClient(default=estimation_reply("low", 1500))
        with build_client(test_settings, inference=inference) as client:
            response = client.post(
                "/estimate-repo-issues",
                json={
                    "repoLink": REPO_LINK,
                    "minBudget": 1000,
                    "maxBudget": 5000,
                    "model": "gpt-4o",
                },
            )

        assert response.status_code == 200
        assert inference.calls[0]["model"] == "gpt-4o"
        assert "Estimate: 1000 - 2000 USD" in inference.calls[0]["system"]
        assert response.json()["estimations"][0]["estimatedCost"] == 1500

    def test_narrow_fractional_budget(self, test_settings):
        inference = FakeInferenceClient(default=estimation_reply("low", 10.7))
        with build_client(test_settings, inference=inference) as client:
            response = client.post(
                "/estimate-repo-issues",
                json={"repoLink": REPO_LINK, "minBudget": 10.6, "maxBudget": 10.9},
            )

        assert response.status_code == 200
        assert response.json()["estimations"][0]["estimatedCost"] == 10.7

    def test_streamed_response(self, client):
        response = client.post(
            "/estimate-repo-issues", json={"repoLink": REPO_LINK, "stream": True}
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = parse_sse(response.text)
        kinds = [kind for kind, _ in events]
        assert kinds[0] == "log"
        assert kinds.count("result") == 3
        assert kinds[-1] == "complete"
        assert events[-1][1]["summary"]["issueCount"] == 3
        assert "csvContent" in events[-1][1]

    def test_streamed_failure_ends_with_error_event(self, test_settings):
        inference = FakeInferenceClient({2: failing_reply()})
        with build_client(test_settings, inference=inference) as client:
            response = client.post(
                "/estimate-repo-issues", json={"repoLink": REPO_LINK, "stream": True}
            )

        events = parse_sse(response.text)
        assert response.status_code == 200
        assert events[-1][0] == "error"
        assert "#2" in events[-1][1]["message"]
        assert not any(kind == "complete" for kind, _ in events)

    def test_invalid_link(self, client):
        response = client.post("/estimate-repo-issues", json={"repoLink": "https://example.com/x"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid GitHub repository URL"}

    def test_missing_link(self, client):
        response = client.post("/estimate-repo-issues", json={})

        assert response.status_code == 400
        assert "repoLink" in response.json()["error"]

    def test_inverted_budget(self, client):
        response = client.post(
            "/estimate-repo-issues",
            json={"repoLink": REPO_LINK, "minBudget": 900, "maxBudget": 100},
        )

        assert response.status_code == 400
        assert "minBudget" in response.json()["error"]

    def test_partial_tier_budgets(self, client):
        response = client.post(
            "/estimate-repo-issues", json={"repoLink": REPO_LINK, "lowMin": 1, "lowMax": 2}
        )

        assert response.status_code == 400
        assert "Per-tier budgets" in response.json()["error"]

    def test_repository_not_found(self, test_settings):
        source = FakeIssueSource(error=GitHubNotFoundError("Repository octocat/nope not found"))
        with build_client(test_settings, source=source) as client:
            response = client.post("/estimate-repo-issues", json={"repoLink": REPO_LINK})

        assert response.status_code == 404
        assert response.json() == {"error": "Repository octocat/nope not found"}

    def test_upstream_failure(self, test_settings):
        source = FakeIssueSource(error=GitHubClientError("GitHub API error (500): boom"))
        with build_client(test_settings, source=source) as client:
            response = client.post("/estimate-repo-issues", json={"repoLink": REPO_LINK})

        assert response.status_code == 502

    def test_estimation_failure(self, test_settings):
        inference = FakeInferenceClient({3: failing_reply("model overloaded")})
        with build_client(test_settings, inference=inference) as client:
            response = client.post("/estimate-repo-issues", json={"repoLink": REPO_LINK})

        assert response.status_code == 502
        assert "#3" in response.json()["error"]


# -----------------------------------------------------------------------------
# Batch Mode
# -----------------------------------------------------------------------------
class TestEstimateRepoBatch:
    """Tests for POST /estimate-repo-batch."""

    def test_slice(self, client):
        response = client.post(
            "/estimate-repo-batch", json={"repoLink": REPO_LINK, "startIndex": 1, "batchSize": 1}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["totalIssues"] == 3
        assert body["processedCount"] == 1
        assert body["estimations"][0]["issueNumber"] == 2
        assert body["isComplete"] is False
        assert body["nextStartIndex"] == 2

    def test_end_of_list(self, client):
        response = client.post(
            "/estimate-repo-batch", json={"repoLink": REPO_LINK, "startIndex": 3}
        )

        body = response.json()
        assert body["isComplete"] is True
        assert body["message"] == "No more issues to process"

    def test_negative_start_rejected(self, client):
        response = client.post(
            "/estimate-repo-batch", json={"repoLink": REPO_LINK, "startIndex": -1}
        )

        assert response.status_code == 400


# -----------------------------------------------------------------------------
# Single Issue
# -----------------------------------------------------------------------------
class TestEstimateIssue:
    """Tests for POST /estimate-issue."""

    def test_single_issue(self, client):
        response = client.post(
            "/estimate-issue", json={"issueLink": f"{REPO_LINK}/issues/2"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["estimation"]["issueNumber"] == 2
        assert body["message"] == "Successfully estimated issue #2"

    def test_invalid_issue_link(self, client):
        response = client.post("/estimate-issue", json={"issueLink": f"{REPO_LINK}/pull/2"})

        assert response.status_code == 400
        assert "Invalid GitHub issue URL" in response.json()["error"]

    def test_pull_request_rejected(self, test_settings):
        source = FakeIssueSource([make_issue_model(9, pull_request=True)])
        with build_client(test_settings, source=source) as client:
            response = client.post("/estimate-issue", json={"issueLink": f"{REPO_LINK}/issues/9"})

        assert response.status_code == 400
        assert "pull request" in response.json()["error"]

    def test_issue_not_found(self, client):
        response = client.post("/estimate-issue", json={"issueLink": f"{REPO_LINK}/issues/99"})

        assert response.status_code == 404


# -----------------------------------------------------------------------------
# Rate Limiting
# -----------------------------------------------------------------------------
class TestRateLimiting:
    """Tests for per-client admission control."""

    def test_short_window_exceeded(self, test_settings):
        limits = RateLimitConfig(short_limit=2, daily_limit=100)
        with build_client(test_settings, rate_limit=limits) as client:
            assert client.get("/healthcheck").status_code == 200
            assert client.get("/healthcheck").status_code == 200
            response = client.get("/healthcheck")

        assert response.status_code == 429
        body = response.json()
        assert body["error"] == "Rate limit exceeded. Maximum 2 requests per 5 minutes."
        assert 0 < body["retryAfter"] <= 300
        assert response.headers["X-RateLimit-Limit-Short"] == "2"
        assert response.headers["X-RateLimit-Remaining-Short"] == "0"
        assert response.headers["Retry-After"] == str(body["retryAfter"])
        assert response.headers["X-RateLimit-Reset-Short"].endswith("Z")

    def test_daily_window_exceeded(self, test_settings):
        limits = RateLimitConfig(short_limit=10, daily_limit=1)
        with build_client(test_settings, rate_limit=limits) as client:
            client.get("/healthcheck")
            response = client.get("/healthcheck")

        assert response.status_code == 429
        assert response.json()["error"] == "Daily rate limit exceeded. Maximum 1 requests per day."
        assert response.headers["X-RateLimit-Limit-Daily"] == "1"

    def test_forwarded_clients_counted_separately(self, test_settings):
        limits = RateLimitConfig(short_limit=1, daily_limit=100)
        with build_client(test_settings, rate_limit=limits) as client:
            first = client.get("/healthcheck", headers={"X-Forwarded-For": "10.0.0.1"})
            second = client.get("/healthcheck", headers={"X-Forwarded-For": "10.0.0.2, 10.0.0.9"})
            repeat = client.get("/healthcheck", headers={"X-Forwarded-For": "10.0.0.1"})

        assert first.status_code == 200
        assert second.status_code == 200
        assert repeat.status_code == 429

    def test_denied_request_skips_work(self, test_settings):
        inference = FakeInferenceClient()
        limits = RateLimitConfig(short_limit=1, daily_limit=100)
        with build_client(test_settings, inference=inference, rate_limit=limits) as client:
            client.get("/healthcheck")
            response = client.post("/estimate-repo-issues", json={"repoLink": REPO_LINK})

        assert response.status_code == 429
        assert inference.calls == []

    def test_supplied_limiter_is_used(self, test_settings):
        limiter = ClientRateLimiter(RateLimitConfig(short_limit=1, daily_limit=100))
        estimator = Estimator(FakeInferenceClient(), max_retries=0, retry_base_delay=0)
        source = FakeIssueSource()
        service = EstimationService(source, BatchCoordinator(estimator))  # type: ignore[arg-type]
        app = create_app(test_settings, service=service, rate_limiter=limiter)

        assert app.state.rate_limiter is limiter
        with TestClient(app) as client:
            assert client.get("/healthcheck").status_code == 200
            assert client.get("/healthcheck").status_code == 429
