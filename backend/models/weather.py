from pydantic import BaseModel
from typing import Optional


class WeatherSample(BaseModel):
    """Ground-level reading taken at one waypoint."""
    index: int = 0  # waypoint position along the route
    lat: float
    lon: float
    wind_speed_mph: float
    temperature_f: float
    humidity_pct: float
    pressure_hpa: float
    description: str = "Unknown"


class AltitudeReading(BaseModel):
    altitude_ft: float
    wind_speed_mph: float
    temperature_f: float
    pressure_hpa: float
    humidity_pct: Optional[float] = None
