from pydantic import BaseModel
from typing import Optional

class Airport(BaseModel):
    code: str
    name: Optional[str] = None
    lat: float
    lon: float
    icao: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
