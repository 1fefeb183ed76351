"""CSV rendering of estimation results."""

import csv
import io
from collections.abc import Iterable
from datetime import UTC, date, datetime

from issue_cost_estimator.schemas.enums import ComplexityTier
from issue_cost_estimator.schemas.estimation import EstimationResult
from issue_cost_estimator.schemas.repository import RepoRef

CSV_COLUMNS = (
    "issue_number",
    "title",
    "complexity",
    "estimated_cost",
    "labels",
    "reasoning",
    "url",
)
LABEL_SEPARATOR = "; "


def _format_cost(cost: float) -> str:
    # Shortest repr that reads back to the same float
    return str(int(cost)) if float(cost).is_integer() else repr(float(cost))


def to_csv(results: Iterable[EstimationResult]) -> str:
    """Render results as CSV text with a header row.

    Fields containing commas, quotes or newlines are quoted, with embedded
    quotes doubled.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for result in results:
        writer.writerow(
            [
                result.issue_number,
                result.title,
                result.complexity.value,
                _format_cost(result.estimated_cost),
                LABEL_SEPARATOR.join(result.labels),
                result.reasoning,
                result.url,
            ]
        )
    return buffer.getvalue()


def parse_csv(text: str) -> list[EstimationResult]:
    """Read back CSV produced by ``to_csv``.

    Raises:
        ValueError: If the header doesn't match or a row is malformed
    """
    reader = csv.DictReader(io.StringIO(text))
    if tuple(reader.fieldnames or ()) != CSV_COLUMNS:
        raise ValueError(f"Unexpected CSV header: {reader.fieldnames}")

    results: list[EstimationResult] = []
    for row in reader:
        labels = row["labels"]
        results.append(
            EstimationResult(
                issue_number=int(row["issue_number"]),
                title=row["title"],
                complexity=ComplexityTier(row["complexity"]),
                estimated_cost=float(row["estimated_cost"]),
                reasoning=row["reasoning"],
                labels=tuple(labels.split(LABEL_SEPARATOR)) if labels else (),
                url=row["url"],
            )
        )
    return results


def default_filename(repo: RepoRef, on: date | None = None) -> str:
    """File name for a repository export, e.g. ``octocat-hello-world-estimates-2024-05-01.csv``."""
    day = on or datetime.now(UTC).date()
    return f"{repo.owner}-{repo.name}-estimates-{day.isoformat()}.csv"
