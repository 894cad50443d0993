import logging
import math
import requests
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional, Sequence
from models.route import AltitudeBand, Waypoint
from models.weather import AltitudeReading, WeatherSample

logger = logging.getLogger(__name__)

OPENWEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"

# Standard lapse-rate approximations, fixed for every request
WIND_GRADIENT_PER_10K_FT = 0.8
MAX_WIND_MULTIPLIER = 2.5
TEMP_LAPSE_F_PER_1K_FT = 11.7
PRESSURE_SCALE_HEIGHT_FT = 7400


class WeatherProviderError(Exception):
    pass


def wind_speed_at_altitude(base_wind_mph: float, altitude_ft: float) -> float:
    multiplier = min(1 + (altitude_ft / 10000) * WIND_GRADIENT_PER_10K_FT, MAX_WIND_MULTIPLIER)
    return base_wind_mph * multiplier


def temperature_at_altitude(base_temp_f: float, altitude_ft: float) -> float:
    return base_temp_f - (altitude_ft / 1000) * TEMP_LAPSE_F_PER_1K_FT


def pressure_at_altitude(base_pressure_hpa: float, altitude_ft: float) -> float:
    return base_pressure_hpa * math.exp(-altitude_ft / PRESSURE_SCALE_HEIGHT_FT)


def reading_for_band(sample: WeatherSample, band: AltitudeBand, apply_wind_multiplier: bool = True) -> AltitudeReading:
    """Adjusted reading at the band midpoint.

    Climb and descent bands pass apply_wind_multiplier=False: near the ground
    the multiplier overstates wind, so the surface value is kept.
    """
    altitude = band.midpoint
    wind = wind_speed_at_altitude(sample.wind_speed_mph, altitude) if apply_wind_multiplier else sample.wind_speed_mph
    return AltitudeReading(
        altitude_ft=altitude,
        wind_speed_mph=wind,
        temperature_f=temperature_at_altitude(sample.temperature_f, altitude),
        pressure_hpa=pressure_at_altitude(sample.pressure_hpa, altitude),
        humidity_pct=sample.humidity_pct,
    )


class WeatherProvider:
    """Current conditions from OpenWeatherMap in imperial units (mph, °F, hPa)."""

    def __init__(self, api_key: Optional[str], timeout: float = 8.0, session=None):
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def sample(self, lat: float, lon: float) -> WeatherSample:
        if not self.api_key:
            raise WeatherProviderError("OPENWEATHER_API_KEY not configured")

        params = {"lat": lat, "lon": lon, "appid": self.api_key, "units": "imperial"}
        try:
            r = self.session.get(OPENWEATHER_URL, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise WeatherProviderError(f"Weather request failed for [{lat:.3f}, {lon:.3f}]: {e}") from e

        if r.status_code != 200:
            raise WeatherProviderError(f"OpenWeather API error {r.status_code}: {r.text}")

        data = r.json() or {}
        main = data.get("main") or {}
        wind = data.get("wind") or {}
        conditions = data.get("weather") or [{}]
        return WeatherSample(
            lat=lat,
            lon=lon,
            wind_speed_mph=wind.get("speed") or 0,
            temperature_f=main.get("temp") or 0,
            humidity_pct=main.get("humidity") or 0,
            pressure_hpa=main.get("pressure") or 0,
            description=conditions[0].get("description") or "Unknown",
        )


def sample_route_weather(provider, waypoints: Sequence[Waypoint], batch_size: int = 5) -> List[WeatherSample]:
    """Fetch one base reading per waypoint, batch_size requests in flight at a time.

    A failed point is dropped, not retried; callers work with partial coverage.
    """
    batch_size = max(3, min(batch_size, 5))
    samples: List[WeatherSample] = []
    failed = 0

    with ThreadPoolExecutor(max_workers=batch_size) as executor:
        for start in range(0, len(waypoints), batch_size):
            batch = list(enumerate(waypoints[start:start + batch_size], start=start))
            future_to_index = {
                executor.submit(provider.sample, w.lat, w.lon): i
                for i, w in batch
            }
            for future in as_completed(future_to_index):
                idx = future_to_index[future]
                try:
                    samples.append(future.result().model_copy(update={"index": idx}))
                except Exception as e:
                    failed += 1
                    logger.warning(f"⚠️ Dropping weather sample for waypoint {idx}: {e}")

    samples.sort(key=lambda s: s.index)
    logger.info(f"🌤 Collected {len(samples)}/{len(waypoints)} weather samples ({failed} failed)")
    return samples
