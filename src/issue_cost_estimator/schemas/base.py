"""Base schema classes shared across the package."""

from typing import Any, Self

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class SchemaBase(BaseModel):
    """Base class for schemas read from SQLAlchemy models."""

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
    )

    @classmethod
    def from_orm(cls, obj: Any) -> Self:
        """
        Factory method to create a schema instance from a SQLAlchemy model.

        Args:
            obj: SQLAlchemy model instance

        Returns:
            Pydantic schema instance
        """
        return cls.model_validate(obj)

    @classmethod
    def from_orm_list(cls, objs: list[Any]) -> list[Self]:
        """
        Factory method to create schema instances from a list of SQLAlchemy models.

        Args:
            objs: List of SQLAlchemy model instances

        Returns:
            List of Pydantic schema instances
        """
        return [cls.from_orm(obj) for obj in objs]


class CamelModel(BaseModel):
    """Base class for records exchanged over HTTP.

    Fields are snake_case in Python and camelCase on the wire
    (``estimated_cost`` <-> ``estimatedCost``). Both spellings are accepted
    on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
