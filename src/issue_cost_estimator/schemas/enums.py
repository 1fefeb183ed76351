"""Enums for Pydantic schemas."""

from enum import StrEnum


class ComplexityTier(StrEnum):
    """Complexity classification of an issue, in increasing severity."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def ordered(cls) -> list["ComplexityTier"]:
        """All tiers from least to most severe."""
        return [cls.LOW, cls.MEDIUM, cls.HIGH, cls.CRITICAL]

    @property
    def rank(self) -> int:
        """Position of the tier in severity order (0 = low)."""
        return ComplexityTier.ordered().index(self)
