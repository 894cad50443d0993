import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

from services.advisories import DEFAULT_FEED_URLS
from services.airports import DEFAULT_DATA_FILE, OURAIRPORTS_URL

load_dotenv()

DEFAULT_ALLOWED_ORIGINS = "http://localhost:3000,http://localhost:5173"


def _split(value: Optional[str]) -> List[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


class Settings(BaseModel):
    openweather_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    advisory_feed_urls: List[str] = list(DEFAULT_FEED_URLS)
    airports_csv: Optional[str] = DEFAULT_DATA_FILE
    airports_download_url: Optional[str] = OURAIRPORTS_URL
    allowed_origins: List[str] = _split(DEFAULT_ALLOWED_ORIGINS)
    waypoint_count: int = 15

    @field_validator("waypoint_count")
    @classmethod
    def _check_waypoint_count(cls, value: int) -> int:
        if value < 1:
            raise ValueError("WAYPOINT_COUNT must be at least 1")
        return value


def load_settings() -> Settings:
    """Build Settings from the environment (.env already loaded)."""
    values = {
        "openweather_api_key": os.getenv("OPENWEATHER_API_KEY") or None,
        "gemini_api_key": os.getenv("GEMINI_API_KEY") or None,
        "gemini_model": os.getenv("GEMINI_MODEL"),
        "advisory_feed_urls": _split(os.getenv("ADVISORY_FEED_URLS")) or None,
        "airports_csv": os.getenv("AIRPORTS_CSV"),
        "airports_download_url": os.getenv("AIRPORTS_DOWNLOAD_URL"),
        "allowed_origins": _split(os.getenv("ALLOWED_ORIGINS")) or None,
        "waypoint_count": os.getenv("WAYPOINT_COUNT"),
    }
    return Settings(**{k: v for k, v in values.items() if v is not None})
