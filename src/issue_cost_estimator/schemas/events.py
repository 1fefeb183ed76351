"""Progress events pushed to a remote consumer during a streamed run."""

from typing import Annotated, ClassVar, Literal

from pydantic import Field, TypeAdapter

from .base import CamelModel
from .estimation import EstimationResult, EstimationSummary


class _EventBase(CamelModel):
    terminal: ClassVar[bool] = False


class LogEvent(_EventBase):
    """Human-readable progress message."""

    type: Literal["log"] = "log"
    message: str


class ResultEvent(_EventBase):
    """One finished estimate and its position in the run."""

    type: Literal["result"] = "result"
    result: EstimationResult
    index: int = Field(ge=0)
    total: int = Field(ge=0)


class CompleteEvent(_EventBase):
    """Terminal event of a successful run."""

    terminal: ClassVar[bool] = True

    type: Literal["complete"] = "complete"
    summary: EstimationSummary
    csv_content: str
    estimations: list[EstimationResult] = Field(default_factory=list)


class ErrorEvent(_EventBase):
    """Terminal event of a failed run."""

    terminal: ClassVar[bool] = True

    type: Literal["error"] = "error"
    message: str


ProgressEvent = Annotated[
    LogEvent | ResultEvent | CompleteEvent | ErrorEvent,
    Field(discriminator="type"),
]

progress_event_adapter: TypeAdapter[ProgressEvent] = TypeAdapter(ProgressEvent)
