"""SQLAlchemy ORM models for estimation history."""

from datetime import datetime

from sqlalchemy import DateTime, Enum, Float, ForeignKey, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from issue_cost_estimator.schemas.enums import ComplexityTier


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


# ------------------------------------------------------------------------------
# EstimationRun model
# ------------------------------------------------------------------------------
class EstimationRun(Base):
    """One completed estimation of a repository (or a single issue)."""

    __tablename__ = "estimation_runs"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(primary_key=True)
    repository: Mapped[str] = mapped_column(String(200), index=True)  # "owner/name"
    model: Mapped[str] = mapped_column(String(100))

    # Resolved budget parameters
    min_budget: Mapped[float] = mapped_column(Float)
    max_budget: Mapped[float] = mapped_column(Float)
    tier_budgets: Mapped[dict[str, list[float]]] = mapped_column(JSON, default=dict)

    # Summary
    issue_count: Mapped[int] = mapped_column(default=0)
    total_cost: Mapped[float] = mapped_column(Float, default=0.0)
    average_cost: Mapped[float] = mapped_column(Float, default=0.0)
    tier_counts: Mapped[dict[str, int]] = mapped_column(JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    estimates: Mapped[list["IssueEstimate"]] = relationship(
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="IssueEstimate.position",
    )

    def __repr__(self) -> str:
        return (
            f"<EstimationRun(id={self.id}, repository='{self.repository}', "
            f"issues={self.issue_count})>"
        )


# ------------------------------------------------------------------------------
# IssueEstimate model
# ------------------------------------------------------------------------------
class IssueEstimate(Base):
    """A single issue's estimate within a run."""

    __tablename__ = "issue_estimates"

    id: Mapped[int] = mapped_column(primary_key=True)
    run_id: Mapped[int] = mapped_column(ForeignKey("estimation_runs.id", ondelete="CASCADE"))

    # Position of the issue in the run's input order
    position: Mapped[int] = mapped_column()

    issue_number: Mapped[int] = mapped_column()
    title: Mapped[str] = mapped_column(String(500))
    complexity: Mapped[ComplexityTier] = mapped_column(
        Enum(ComplexityTier, values_callable=lambda e: [m.value for m in e], native_enum=False)
    )
    estimated_cost: Mapped[float] = mapped_column(Float)
    reasoning: Mapped[str] = mapped_column(Text, default="")
    labels: Mapped[list[str]] = mapped_column(JSON, default=list)
    url: Mapped[str] = mapped_column(String(500))

    run: Mapped["EstimationRun"] = relationship(back_populates="estimates")

    def __repr__(self) -> str:
        return (
            f"<IssueEstimate(id={self.id}, run={self.run_id}, issue={self.issue_number}, "
            f"complexity={self.complexity.value})>"
        )
