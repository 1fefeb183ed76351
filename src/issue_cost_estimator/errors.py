"""Application exceptions.

GitHub collaborator errors live in ``issue_cost_estimator.github.exceptions``;
everything raised by the estimation pipeline itself lives here.
"""


class EstimatorError(Exception):
    """Base exception for estimation pipeline errors."""

    pass


class InvalidInputError(EstimatorError):
    """Raised for malformed links, budgets or missing required fields.

    Surfaced to callers as a 400 with the message; never retried.
    """

    pass


class InferenceError(EstimatorError):
    """Raised when the inference provider call itself fails (transport/API).

    ``retryable`` is false for failures another attempt cannot fix, such as
    a missing API key.
    """

    def __init__(self, message: str, *, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


class EstimationFailure(EstimatorError):
    """Raised when a single issue could not be estimated.

    Carries the issue number so the failure can be reported against the
    offending issue.
    """

    def __init__(self, issue_number: int, reason: str) -> None:
        super().__init__(f"Failed to estimate issue #{issue_number}: {reason}")
        self.issue_number = issue_number
        self.reason = reason


class StreamClosedError(EstimatorError):
    """Raised when an event is emitted after the stream's terminal event."""

    pass
