from enum import Enum
from pydantic import BaseModel
from typing import List, Optional

from .route import Waypoint, AltitudeBand
from .advisory import AdvisoryRecord, AdvisoryMatch
from .severity import SeverityLevel


class PhaseName(str, Enum):
    CLIMB = "Climb"
    CRUISE = "Cruise"
    DESCENT = "Descent"


class FlightPhase(BaseModel):
    name: PhaseName
    waypoints: List[Waypoint]
    start_index: int
    altitude_band: AltitudeBand
    phase_type: str  # "terminal" or "enroute"

    @property
    def indices(self) -> List[int]:
        return list(range(self.start_index, self.start_index + len(self.waypoints)))


class PhaseAssessment(BaseModel):
    phase: FlightPhase
    base_severity: Optional[SeverityLevel] = None
    severity: Optional[SeverityLevel] = None
    raw_severities: List[SeverityLevel] = []
    advisory_severity: Optional[SeverityLevel] = None
    advisory_matches: List[AdvisoryMatch] = []
    upgraded: bool = False


class RouteAssessment(BaseModel):
    phases: List[PhaseAssessment]
    route_severity: Optional[SeverityLevel] = None
    population_severity: Optional[SeverityLevel] = None
    weather_based_severity: Optional[SeverityLevel] = None
    confidence: float
    contributing_advisories: List[AdvisoryRecord] = []
    advisory_matches: List[AdvisoryMatch] = []

    @property
    def has_advisories(self) -> bool:
        return bool(self.contributing_advisories)
