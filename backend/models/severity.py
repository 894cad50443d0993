from enum import Enum


class SeverityLevel(str, Enum):
    """Turbulence severity bucket, ordered by its numeric value (1..5)."""

    LIGHT = "Light"
    LIGHT_TO_MODERATE = "Light to Moderate"
    MODERATE = "Moderate"
    MODERATE_TO_SEVERE = "Moderate to Severe"
    SEVERE = "Severe"

    @property
    def numeric(self) -> int:
        return _NUMERIC[self]

    @classmethod
    def from_numeric(cls, value: float) -> "SeverityLevel":
        """Bucket a blended numeric severity back onto the label scale."""
        if value <= 1.2:
            return cls.LIGHT
        if value <= 2.2:
            return cls.LIGHT_TO_MODERATE
        if value <= 3.2:
            return cls.MODERATE
        if value <= 4.2:
            return cls.MODERATE_TO_SEVERE
        return cls.SEVERE

    def step_up(self, steps: int = 1) -> "SeverityLevel":
        ordered = list(SeverityLevel)
        return ordered[min(self.numeric - 1 + steps, len(ordered) - 1)]

    # str already defines the comparison operators, so the total order is
    # spelled out here instead of relying on functools.total_ordering.
    def __lt__(self, other):
        if isinstance(other, SeverityLevel):
            return self.numeric < other.numeric
        return NotImplemented

    def __le__(self, other):
        if isinstance(other, SeverityLevel):
            return self.numeric <= other.numeric
        return NotImplemented

    def __gt__(self, other):
        if isinstance(other, SeverityLevel):
            return self.numeric > other.numeric
        return NotImplemented

    def __ge__(self, other):
        if isinstance(other, SeverityLevel):
            return self.numeric >= other.numeric
        return NotImplemented


_NUMERIC = {
    SeverityLevel.LIGHT: 1,
    SeverityLevel.LIGHT_TO_MODERATE: 2,
    SeverityLevel.MODERATE: 3,
    SeverityLevel.MODERATE_TO_SEVERE: 4,
    SeverityLevel.SEVERE: 5,
}
