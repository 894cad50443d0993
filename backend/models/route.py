from pydantic import BaseModel, field_validator, model_validator
from typing import Optional
from datetime import date, datetime


class RouteRequest(BaseModel):
    departure: str  # e.g. "JFK"
    arrival: str    # e.g. "LAX"
    date: Optional[str] = None  # YYYY-MM-DD

    @field_validator("departure", "arrival")
    @classmethod
    def _check_code(cls, value: str) -> str:
        code = (value or "").strip().upper()
        if len(code) not in (3, 4) or not code.isalnum():
            raise ValueError("Airport code must be 3 (IATA) or 4 (ICAO) characters")
        return code

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        try:
            parsed = datetime.strptime(value, "%Y-%m-%d").date()
        except ValueError:
            raise ValueError("Date must be in YYYY-MM-DD format")
        if parsed < date.today():
            raise ValueError("Date cannot be in the past")
        return value

    @model_validator(mode="after")
    def _check_distinct(self) -> "RouteRequest":
        if self.departure == self.arrival:
            raise ValueError("Departure and arrival airports must be different")
        return self


class Waypoint(BaseModel):
    lat: float
    lon: float


class AltitudeBand(BaseModel):
    """Vertical extent in feet MSL. A band with min_ft == max_ft is a single reference altitude."""
    min_ft: int
    max_ft: int

    @property
    def length(self) -> int:
        return self.max_ft - self.min_ft

    @property
    def midpoint(self) -> float:
        return (self.min_ft + self.max_ft) / 2

    def contains(self, altitude: float) -> bool:
        return self.min_ft <= altitude <= self.max_ft

    def overlaps(self, other: "AltitudeBand") -> bool:
        return self.min_ft <= other.max_ft and other.min_ft <= self.max_ft

    def overlap_length(self, other: "AltitudeBand") -> int:
        return max(0, min(self.max_ft, other.max_ft) - max(self.min_ft, other.min_ft))
