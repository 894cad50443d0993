from pydantic import BaseModel
from typing import List, Optional, Dict
from .advisory import AdvisoryRecord
from .airport import Airport
from .route import Waypoint
from .severity import SeverityLevel
from .weather import WeatherSample


class PhaseSummary(BaseModel):
    name: str
    severity: Optional[SeverityLevel] = None
    base_severity: Optional[SeverityLevel] = None
    advisory_severity: Optional[SeverityLevel] = None
    altitude_range: str
    waypoint_count: int


class RouteInfo(BaseModel):
    id: str
    departure: Airport
    arrival: Airport
    coordinates: List[Waypoint]
    crosses_antimeridian: bool = False


class RouteTurbulenceResponse(BaseModel):
    route: RouteInfo
    turbulence_level: str  # SeverityLevel value, or "Unknown" without any data
    weather_based_level: str
    population_level: str
    confidence: float
    phases: List[PhaseSummary]
    has_advisories: bool
    advisories: List[AdvisoryRecord]
    factors: List[str]
    recommendations: List[Dict[str, str]]
    weather_data: List[WeatherSample]
    distance: int  # statute miles
    estimated_duration: str
    ai_summary: Optional[str] = None
    ai_enhanced: bool = False
    generated_at: str


class RouteSummary(BaseModel):
    id: str
    departure: Airport
    arrival: Airport
    distance: int
    estimated_duration: str
