from models.route import Waypoint
from typing import List, Sequence, Tuple
import math
from geopy.distance import geodesic

# (name, min_lat, max_lat, min_lon, max_lon); advisories are only issued for US airspace
US_COVERAGE_BOXES = [
    ("Continental US", 24.0, 50.0, -125.0, -66.0),
    ("Alaska", 51.0, 72.0, -180.0, -129.0),
    ("Aleutians west of 180", 51.0, 55.0, 172.0, 180.0),
    ("Hawaii", 18.0, 23.0, -161.0, -154.0),
]

# Checked in order, first match wins: (label, min_lat, max_lat, min_lon, max_lon)
REGION_TABLE = [
    ("Northern United States & Canada", 45.0, 91.0, -180.0, -60.0),
    ("Central United States", 25.0, 45.0, -180.0, -60.0),
    ("Southern United States & Mexico", 15.0, 25.0, -180.0, -60.0),
    ("Western Europe", 35.0, 60.0, -10.0, 40.0),
    ("Eastern Europe & Western Asia", 35.0, 60.0, 40.0, 100.0),
    ("Central Asia & Indian Subcontinent", 20.0, 45.0, 60.0, 120.0),
    ("East Asia & Pacific", 20.0, 45.0, 120.0, 180.0),
    ("Tropical & Southern Hemisphere", -60.0, 20.0, -180.0, 180.0),
    ("Arctic Region", 60.0, 91.0, -180.0, 180.0),
]

CRUISE_SPEED_MPH = 500


def normalize_longitude(lon: float) -> float:
    while lon > 180:
        lon -= 360
    while lon < -180:
        lon += 360
    return lon


def angular_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Central angle in radians between two coordinates (haversine)."""
    φ1, λ1, φ2, λ2 = map(math.radians, [lat1, lon1, lat2, lon2])
    return 2 * math.asin(
        math.sqrt(
            math.sin((φ2 - φ1) / 2) ** 2
            + math.cos(φ1) * math.cos(φ2) * math.sin((λ2 - λ1) / 2) ** 2
        )
    )


def great_circle_waypoints(lat1: float, lon1: float, lat2: float, lon2: float, num_points: int = 15) -> List[Waypoint]:
    """Generate num_points + 1 waypoints along the great circle between two coords.

    Longitudes are left as interpolated; a renderer has to split the polyline
    where consecutive points jump more than 180 degrees.
    """
    if num_points < 1:
        raise ValueError("num_points must be at least 1")

    lon1 = normalize_longitude(lon1)
    lon2 = normalize_longitude(lon2)
    δ = angular_distance(lat1, lon1, lat2, lon2)
    if δ == 0:
        return [Waypoint(lat=lat1, lon=lon1) for _ in range(num_points + 1)]
    if math.isclose(math.sin(δ), 0.0, abs_tol=1e-12):
        raise ValueError("Antipodal endpoints have no unique great-circle path")

    φ1, λ1, φ2, λ2 = map(math.radians, [lat1, lon1, lat2, lon2])
    points: List[Waypoint] = []
    for i in range(num_points + 1):
        f = i / num_points
        A = math.sin((1 - f) * δ) / math.sin(δ)
        B = math.sin(f * δ) / math.sin(δ)
        x = A * math.cos(φ1) * math.cos(λ1) + B * math.cos(φ2) * math.cos(λ2)
        y = A * math.cos(φ1) * math.sin(λ1) + B * math.cos(φ2) * math.sin(λ2)
        z = A * math.sin(φ1) + B * math.sin(φ2)
        φ = math.atan2(z, math.sqrt(x * x + y * y))
        λ = math.atan2(y, x)
        points.append(Waypoint(lat=math.degrees(φ), lon=math.degrees(λ)))
    return points


def crosses_antimeridian(waypoints: Sequence[Waypoint]) -> bool:
    return any(abs(b.lon - a.lon) > 180 for a, b in zip(waypoints, waypoints[1:]))


def route_distance_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return geodesic((lat1, lon1), (lat2, lon2)).miles


def estimate_flight_time(distance_miles: float) -> str:
    hours = distance_miles / CRUISE_SPEED_MPH
    whole_hours = int(hours)
    minutes = round((hours - whole_hours) * 60)
    if minutes == 60:
        whole_hours, minutes = whole_hours + 1, 0

    if whole_hours == 0:
        return f"{minutes}m"
    if minutes == 0:
        return f"{whole_hours}h"
    return f"{whole_hours}h {minutes}m"


def point_in_polygon(point: Tuple[float, float], polygon: Sequence[Tuple[float, float]]) -> bool:
    """Ray-casting test. Points and vertices share one axis order, here (lat, lon)."""
    x, y = point
    inside = False
    j = len(polygon) - 1
    for i in range(len(polygon)):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def in_us_coverage(lat: float, lon: float) -> bool:
    for _, min_lat, max_lat, min_lon, max_lon in US_COVERAGE_BOXES:
        if min_lat <= lat <= max_lat and min_lon <= lon <= max_lon:
            return True
    return False


def any_in_us_coverage(waypoints: Sequence[Waypoint]) -> bool:
    return any(in_us_coverage(w.lat, w.lon) for w in waypoints)


def region_label(lat: float, lon: float) -> str:
    for label, min_lat, max_lat, min_lon, max_lon in REGION_TABLE:
        if min_lat <= lat < max_lat and min_lon <= lon <= max_lon:
            return label
    return "General area"


def centroid(coords: Sequence[Tuple[float, float]]) -> Tuple[float, float]:
    lat = sum(c[0] for c in coords) / len(coords)
    lon = sum(c[1] for c in coords) / len(coords)
    return lat, lon
