from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Optional, Tuple

from .route import AltitudeBand
from .severity import SeverityLevel


class HazardType(str, Enum):
    TURBULENCE = "Turbulence"
    ICING = "Icing"
    MOUNTAIN_WAVE = "Mountain Wave"
    LOW_LEVEL_WIND_SHEAR = "Low Level Wind Shear"
    UNKNOWN = "Unknown"


class MatchMethod(str, Enum):
    POLYGON = "polygon"
    REGION = "region"  # coarse named-area fallback, lower confidence


class AdvisoryRecord(BaseModel):
    hazard_type: HazardType
    raw_hazard: Optional[str] = None
    severity: SeverityLevel = SeverityLevel.MODERATE  # Light, Moderate or Severe from the feed
    altitude: AltitudeBand = Field(default_factory=lambda: AltitudeBand(min_ft=0, max_ft=999999))
    polygon: List[Tuple[float, float]] = []  # (lat, lon)
    valid_time: Optional[str] = None
    area_label: str = "Area not specified"
    product: Optional[str] = None
    source: str = "AviationWeather.gov"

    @property
    def has_polygon(self) -> bool:
        return len(self.polygon) >= 3


class AdvisoryMatch(BaseModel):
    advisory: AdvisoryRecord
    method: MatchMethod
    overlap_fraction: float
    weight: float
