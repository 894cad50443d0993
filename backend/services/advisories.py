"""G-AIRMET advisories: fetching, normalization and route/phase matching.

The feed comes back as XML, JSON or GeoJSON depending on the endpoint that
answered. Each shape has its own parser producing the same AdvisoryRecord, and
parse_feed() picks one by sniffing the payload.
"""
import json
import logging
import re
import requests
import xml.etree.ElementTree as ET
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

from models.advisory import AdvisoryMatch, AdvisoryRecord, HazardType, MatchMethod
from models.route import AltitudeBand, Waypoint
from models.severity import SeverityLevel
from .geo import any_in_us_coverage, centroid, point_in_polygon, region_label

logger = logging.getLogger(__name__)

DEFAULT_FEED_URLS = [
    "https://aviationweather.gov/api/data/gairmet?format=json",
    "https://aviationweather.gov/api/data/gairmet?format=xml",
    "https://aviationweather.gov/cgi-bin/data/gairmet.php?format=xml",
]

UNBOUNDED_TOP_FT = 999999
AREA_NOT_SPECIFIED = "Area not specified"

TURBULENCE_HAZARDS = {
    HazardType.TURBULENCE,
    HazardType.MOUNTAIN_WAVE,
    HazardType.LOW_LEVEL_WIND_SHEAR,
}

SEVERITY_WEIGHTS = {
    SeverityLevel.LIGHT: 0.6,
    SeverityLevel.LIGHT_TO_MODERATE: 0.8,
    SeverityLevel.MODERATE: 1.0,
    SeverityLevel.MODERATE_TO_SEVERE: 1.3,
    SeverityLevel.SEVERE: 1.5,
}

# Whole-route matching is referenced to typical cruise altitude
ROUTE_REFERENCE_BAND = AltitudeBand(min_ft=35000, max_ft=35000)


# --- normalization ---

def normalize_hazard_type(raw: Optional[str]) -> HazardType:
    if not raw:
        return HazardType.UNKNOWN
    code = raw.strip().upper()
    for member in HazardType:
        if code == member.value.upper():
            return member
    # AviationWeather.gov codes: TURB-HI, TURB-LO, ICE/ICG, MT_OBSC, MTW, LLWS ...
    if code.startswith("TURB"):
        return HazardType.TURBULENCE
    if code.startswith("ICG"):
        return HazardType.ICING
    if "MTW" in code:
        return HazardType.MOUNTAIN_WAVE
    if "LLWS" in code:
        return HazardType.LOW_LEVEL_WIND_SHEAR
    return HazardType.UNKNOWN


def normalize_severity(raw: Optional[str]) -> SeverityLevel:
    if not raw:
        return SeverityLevel.MODERATE
    code = str(raw).upper()
    if "SEV" in code:
        return SeverityLevel.SEVERE
    if "MOD" in code:
        return SeverityLevel.MODERATE
    if "LGT" in code or "LIGHT" in code:
        return SeverityLevel.LIGHT
    return SeverityLevel.MODERATE


def _altitude_value(value: Any) -> Optional[int]:
    """Feet MSL from 18000, "18000", "FL180", "SFC"; None when unreadable."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value)
    text = str(value).strip().upper()
    if text in ("SFC", "GND", "SURFACE"):
        return 0
    m = re.fullmatch(r"FL\s*(\d+)", text)
    if m:
        return int(m.group(1)) * 100
    try:
        return int(float(text))
    except ValueError:
        return None


def _range_value(part: str) -> Optional[int]:
    """Like _altitude_value, but a bare number under 1000 in a range string is a flight level."""
    value = _altitude_value(part)
    if value is not None and re.fullmatch(r"\d{1,3}", part.strip()):
        return value * 100
    return value


def parse_altitude(text: Optional[str]) -> AltitudeBand:
    """Parse ranges like "FL180-FL450", "180-450", "SFC-10000" or a single "FL240" (open-ended top)."""
    if not text:
        return AltitudeBand(min_ft=0, max_ft=UNBOUNDED_TOP_FT)
    parts = [p for p in re.split(r"\s*[-/]\s*", text.strip()) if p]
    low = _range_value(parts[0]) if parts else None
    high = _range_value(parts[1]) if len(parts) > 1 else None
    return _band(low, high)


def _band(low: Optional[int], high: Optional[int]) -> AltitudeBand:
    low = 0 if low is None else low
    high = UNBOUNDED_TOP_FT if high is None else high
    if high < low:
        low, high = high, low
    return AltitudeBand(min_ft=low, max_ft=high)


def _area_for(polygon: Sequence[Tuple[float, float]], fallback: Optional[str] = None) -> str:
    if polygon:
        lat, lon = centroid(polygon)
        return region_label(lat, lon)
    return fallback or AREA_NOT_SPECIFIED


# --- parsers ---

def parse_xml_feed(text: str) -> List[AdvisoryRecord]:
    """Parse the AviationWeather.gov XML layout (<GAIRMET> elements)."""
    root = ET.fromstring(text)
    records: List[AdvisoryRecord] = []
    for i, el in enumerate(root.iter("GAIRMET")):
        try:
            record = _parse_xml_entry(el)
        except (ValueError, TypeError) as e:
            logger.warning(f"⚠️ Failed to parse G-AIRMET {i + 1}: {e}")
            continue
        if record:
            records.append(record)
    logger.info(f"📊 Parsed {len(records)} G-AIRMET entries from XML")
    return records


def _parse_xml_entry(el: ET.Element) -> Optional[AdvisoryRecord]:
    hazard = el.find("hazard")
    if hazard is None or not hazard.get("type"):
        return None

    altitude = el.find("altitude")
    if altitude is not None:
        band = _band(_altitude_value(altitude.get("min_ft_msl")), _altitude_value(altitude.get("max_ft_msl")))
    else:
        band = _band(None, None)

    polygon: List[Tuple[float, float]] = []
    for point in el.iter("point"):
        lat = point.findtext("latitude")
        lon = point.findtext("longitude")
        if lat is None or lon is None:
            continue
        polygon.append((float(lat), float(lon)))

    return AdvisoryRecord(
        hazard_type=normalize_hazard_type(hazard.get("type")),
        raw_hazard=hazard.get("type"),
        severity=normalize_severity(hazard.get("severity")),
        altitude=band,
        polygon=polygon,
        valid_time=(el.findtext("valid_time") or "").strip() or None,
        area_label=_area_for(polygon),
        product=(el.findtext("product") or "").strip() or None,
    )


def parse_json_feed(data: Union[str, list, dict]) -> List[AdvisoryRecord]:
    """Parse the JSON API layout: a list of flat advisory objects."""
    if isinstance(data, str):
        data = json.loads(data)
    if isinstance(data, dict):
        data = data.get("data") or data.get("gairmets") or []
    records: List[AdvisoryRecord] = []
    for i, item in enumerate(data or []):
        if not isinstance(item, dict):
            continue
        try:
            record = _record_from_mapping(item, _coords_from_json(item.get("coords") or item.get("coordinates")))
        except (ValueError, TypeError) as e:
            logger.warning(f"⚠️ Failed to parse G-AIRMET {i + 1}: {e}")
            continue
        if record:
            records.append(record)
    logger.info(f"📊 Parsed {len(records)} G-AIRMET entries from JSON")
    return records


def parse_geojson_feed(data: Union[str, dict]) -> List[AdvisoryRecord]:
    """Parse a GeoJSON FeatureCollection; polygon rings are [lon, lat]."""
    if isinstance(data, str):
        data = json.loads(data)
    records: List[AdvisoryRecord] = []
    for i, feature in enumerate(data.get("features") or []):
        try:
            props = feature.get("properties") or {}
            polygon = _coords_from_geometry(feature.get("geometry") or {})
            record = _record_from_mapping(props, polygon)
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"⚠️ Failed to parse G-AIRMET feature {i + 1}: {e}")
            continue
        if record:
            records.append(record)
    logger.info(f"📊 Parsed {len(records)} G-AIRMET entries from GeoJSON")
    return records


def parse_feed(text: str) -> List[AdvisoryRecord]:
    """Select a parser for the payload. Raises ValueError when nothing fits."""
    stripped = (text or "").lstrip()
    if not stripped:
        raise ValueError("Empty advisory payload")
    if stripped.startswith("<"):
        try:
            return parse_xml_feed(stripped)
        except ET.ParseError as e:
            raise ValueError(f"Malformed advisory XML: {e}") from e

    try:
        data = json.loads(stripped)
    except json.JSONDecodeError as e:
        raise ValueError(f"Unrecognized advisory payload: {e}") from e

    if isinstance(data, dict) and (data.get("type") == "FeatureCollection" or "features" in data):
        return parse_geojson_feed(data)
    if isinstance(data, (list, dict)):
        return parse_json_feed(data)
    raise ValueError(f"Unrecognized advisory payload type: {type(data).__name__}")


def _record_from_mapping(item: dict, polygon: List[Tuple[float, float]]) -> Optional[AdvisoryRecord]:
    raw_hazard = item.get("hazard") or item.get("hazardType") or item.get("hazard_type")
    if not raw_hazard:
        return None

    if isinstance(item.get("altitude"), dict):
        alt = item["altitude"]
        band = _band(_altitude_value(alt.get("min")), _altitude_value(alt.get("max")))
    elif isinstance(item.get("altitude"), str):
        band = parse_altitude(item["altitude"])
    elif "altitudeLow1" in item or "altitudeHi1" in item:
        band = _band(_altitude_value(item.get("altitudeLow1")), _altitude_value(item.get("altitudeHi1")))
    else:
        band = _band(_altitude_value(item.get("base")), _altitude_value(item.get("top")))

    return AdvisoryRecord(
        hazard_type=normalize_hazard_type(raw_hazard),
        raw_hazard=raw_hazard,
        severity=normalize_severity(item.get("severity")),
        altitude=band,
        polygon=polygon,
        valid_time=item.get("validTime") or item.get("valid_time"),
        area_label=_area_for(polygon, item.get("area") or item.get("region")),
        product=item.get("product"),
    )


def _coords_from_json(coords: Optional[Iterable]) -> List[Tuple[float, float]]:
    out: List[Tuple[float, float]] = []
    for c in coords or []:
        if isinstance(c, dict):
            out.append((float(c["lat"]), float(c["lon"])))
        else:
            out.append((float(c[0]), float(c[1])))
    return out


def _coords_from_geometry(geometry: dict) -> List[Tuple[float, float]]:
    coords = geometry.get("coordinates") or []
    kind = geometry.get("type")
    if kind == "Polygon" and coords:
        ring = coords[0]
    elif kind == "MultiPolygon" and coords and coords[0]:
        ring = coords[0][0]
    else:
        return []
    return [(float(lat), float(lon)) for lon, lat, *_ in ring]


# --- fetching ---

class AdvisoryFeed:
    """Ordered fallback chain over G-AIRMET endpoints."""

    def __init__(self, urls: Optional[List[str]] = None, timeout: float = 5.0, session=None):
        self.urls = list(urls) if urls else list(DEFAULT_FEED_URLS)
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, region: str = "all", hours: int = 6) -> Optional[List[AdvisoryRecord]]:
        """First endpoint that answers with a parseable payload wins; None when all fail."""
        params = {"hours": hours, "region": region}
        for url in self.urls:
            logger.info(f"🌪️ Fetching G-AIRMETs: {url}")
            try:
                r = self.session.get(url, params=params, timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                logger.warning(f"❌ G-AIRMET request failed for {url}: {e}")
                continue

            if r.status_code != 200:
                logger.warning(f"❌ G-AIRMET API error {r.status_code} from {url}")
                continue

            try:
                records = parse_feed(r.text)
            except ValueError as e:
                logger.warning(f"⚠️ Could not parse G-AIRMET payload from {url}: {e}")
                continue

            logger.info(f"✅ {len(records)} G-AIRMETs from {url}")
            return records

        logger.warning("⚠️ No G-AIRMET endpoint available - continuing without advisories")
        return None


# --- matching ---

def altitude_overlap_fraction(band: AltitudeBand, reference: AltitudeBand) -> float:
    """Share of the reference band covered by the advisory band, in [0, 1]."""
    if reference.length <= 0:
        return 1.0 if band.contains(reference.min_ft) else 0.0
    return max(0.0, min(1.0, band.overlap_length(reference) / reference.length))


def _same_region(area_label: str, route_region: str) -> bool:
    area = (area_label or "").strip().lower()
    region = route_region.strip().lower()
    if not area or area in (AREA_NOT_SPECIFIED.lower(), "general area") or region == "general area":
        return False
    return area == region or area in region or region in area


def match_advisory(advisory: AdvisoryRecord, waypoints: Sequence[Waypoint], reference: AltitudeBand) -> Optional[AdvisoryMatch]:
    """Hazard, altitude and geometry gates for one advisory; coverage is checked by the caller."""
    if advisory.hazard_type not in TURBULENCE_HAZARDS:
        return None
    if not advisory.altitude.overlaps(reference):
        return None

    if advisory.has_polygon:
        if not any(point_in_polygon((w.lat, w.lon), advisory.polygon) for w in waypoints):
            return None
        method = MatchMethod.POLYGON
    else:
        lat, lon = centroid([(w.lat, w.lon) for w in waypoints])
        if not _same_region(advisory.area_label, region_label(lat, lon)):
            return None
        method = MatchMethod.REGION

    fraction = altitude_overlap_fraction(advisory.altitude, reference)
    return AdvisoryMatch(
        advisory=advisory,
        method=method,
        overlap_fraction=fraction,
        weight=SEVERITY_WEIGHTS[advisory.severity] * fraction,
    )


def match_advisories(advisories: Sequence[AdvisoryRecord], waypoints: Sequence[Waypoint], reference: AltitudeBand = ROUTE_REFERENCE_BAND) -> List[AdvisoryMatch]:
    if not advisories or not waypoints:
        return []
    if not any_in_us_coverage(waypoints):
        logger.info("ℹ️ Waypoints outside G-AIRMET coverage (US airspace) - skipping advisories")
        return []

    matches = []
    for advisory in advisories:
        match = match_advisory(advisory, waypoints, reference)
        if match:
            matches.append(match)
    return matches


def weighted_severity_value(matches: Sequence[AdvisoryMatch]) -> Optional[float]:
    total_weight = sum(m.weight for m in matches)
    if total_weight <= 0:
        return None
    return sum(m.advisory.severity.numeric * m.weight for m in matches) / total_weight


def recommend_severity(matches: Sequence[AdvisoryMatch]) -> Optional[SeverityLevel]:
    value = weighted_severity_value(matches)
    return SeverityLevel.from_numeric(value) if value is not None else None
