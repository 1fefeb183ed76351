"""Shared plumbing for history repositories."""

from typing import Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from issue_cost_estimator.db.models import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Wraps a caller-owned session for one mapped class.

    Repositories never commit; ``get_session`` does that when its block
    exits cleanly.
    """

    def __init__(self, session: AsyncSession, model_class: type[ModelT]) -> None:
        self._session = session
        self._model_class = model_class

    def add(self, entity: ModelT) -> ModelT:
        self._session.add(entity)
        return entity

    async def flush(self) -> None:
        """Send pending inserts so generated keys are populated."""
        await self._session.flush()

    async def delete(self, entity: ModelT) -> None:
        await self._session.delete(entity)

    async def count(self) -> int:
        total = await self._session.scalar(select(func.count()).select_from(self._model_class))
        return total or 0
