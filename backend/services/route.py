import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from models.advisory import AdvisoryRecord
from models.airport import Airport
from models.response import PhaseSummary, RouteInfo, RouteSummary, RouteTurbulenceResponse
from models.turbulence import RouteAssessment
from .advisories import recommend_severity
from .airports import AirportNotFoundError
from .confidence import ConfidenceEstimator
from .geo import crosses_antimeridian, estimate_flight_time, great_circle_waypoints, route_distance_miles
from .summary import passenger_recommendations, turbulence_factors
from .turbulence import assess_route
from .weather import sample_route_weather

logger = logging.getLogger(__name__)

POPULAR_PAIRS = [
    ("JFK", "LAX"),
    ("LHR", "JFK"),
    ("CDG", "LAX"),
    ("DEN", "SEA"),
    ("ATL", "LAX"),
    ("MIA", "LAX"),
    ("SFO", "JFK"),
    ("ORD", "LAX"),
    ("DFW", "LAX"),
    ("LAS", "LAX"),
]
SEARCHABLE_PAIRS = POPULAR_PAIRS + [
    ("SFO", "DEL"),
    ("JFK", "LHR"),
    ("LAX", "NRT"),
    ("CDG", "NRT"),
    ("LHR", "HKG"),
    ("JFK", "CDG"),
]


def parse_route_id(route_id: str) -> Tuple[str, str]:
    """'jfk-lax' -> ('JFK', 'LAX')."""
    parts = (route_id or "").strip().split("-")
    if len(parts) != 2 or not all(parts):
        raise ValueError("Invalid route ID format. Expected: departure-arrival")
    return parts[0].upper(), parts[1].upper()


def _route_id(departure: Airport, arrival: Airport) -> str:
    return f"{departure.code.lower()}-{arrival.code.lower()}"


class TurbulenceRouteService:
    """Wires the collaborators around assess_route() for one request at a time."""

    def __init__(
        self,
        airports,
        weather_provider,
        advisory_feed,
        narrator=None,
        confidence: Optional[ConfidenceEstimator] = None,
        waypoint_count: int = 15,
        weather_batch_size: int = 5,
        advisory_timeout: float = 8.0,
        narrative_timeout: float = 25.0,
    ):
        self.airports = airports
        self.weather_provider = weather_provider
        self.advisory_feed = advisory_feed
        self.narrator = narrator
        self.confidence = confidence or ConfidenceEstimator()
        self.waypoint_count = waypoint_count
        self.weather_batch_size = weather_batch_size
        self.advisory_timeout = advisory_timeout
        self.narrative_timeout = narrative_timeout

    def _resolve_pair(self, departure: str, arrival: str) -> Tuple[Airport, Airport]:
        dep = self.airports.resolve(departure)
        if dep is None:
            raise AirportNotFoundError(departure.upper())
        arr = self.airports.resolve(arrival)
        if arr is None:
            raise AirportNotFoundError(arrival.upper())
        return dep, arr

    def _await_advisories(self, future, deadline: float) -> List[AdvisoryRecord]:
        try:
            advisories = future.result(timeout=max(0.0, deadline - time.monotonic()))
        except FuturesTimeout:
            logger.warning(f"⏱ G-AIRMET fetch exceeded {self.advisory_timeout}s - continuing without advisories")
            return []
        except Exception as e:
            logger.warning(f"❌ G-AIRMET fetch failed - continuing without advisories: {e}")
            return []
        return advisories or []

    def _narrative(self, context: dict) -> Optional[str]:
        if self.narrator is None:
            return None
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(self.narrator.summarize, context)
        try:
            return future.result(timeout=self.narrative_timeout)
        except FuturesTimeout:
            logger.warning(f"⏱ AI summary exceeded {self.narrative_timeout}s - skipping")
            return None
        except Exception as e:
            logger.warning(f"💥 AI summary failed: {e}")
            return None
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def generate_route(self, departure: str, arrival: str) -> RouteTurbulenceResponse:
        logger.info(f"🛫 Generating turbulence forecast {departure} → {arrival}")
        dep, arr = self._resolve_pair(departure, arrival)
        waypoints = great_circle_waypoints(dep.lat, dep.lon, arr.lat, arr.lon, self.waypoint_count)

        # Weather and advisories are independent; the advisory branch gets its own deadline
        executor = ThreadPoolExecutor(max_workers=2)
        try:
            deadline = time.monotonic() + self.advisory_timeout
            advisory_future = executor.submit(self.advisory_feed.fetch)
            weather_future = executor.submit(
                sample_route_weather, self.weather_provider, waypoints, self.weather_batch_size
            )
            samples = weather_future.result()
            advisories = self._await_advisories(advisory_future, deadline)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        assessment = assess_route(waypoints, samples, advisories, self.confidence)
        level = assessment.route_severity.value if assessment.route_severity else "Unknown"

        ai_summary = self._narrative({
            "departure": dep.name or dep.code,
            "arrival": arr.name or arr.code,
            "turbulence_level": level,
            "weather_data": samples,
            "advisories": assessment.contributing_advisories,
        })

        distance = route_distance_miles(dep.lat, dep.lon, arr.lat, arr.lon)
        return RouteTurbulenceResponse(
            route=RouteInfo(
                id=_route_id(dep, arr),
                departure=dep,
                arrival=arr,
                coordinates=waypoints,
                crosses_antimeridian=crosses_antimeridian(waypoints),
            ),
            turbulence_level=level,
            weather_based_level=assessment.weather_based_severity.value if assessment.weather_based_severity else "Unknown",
            population_level=assessment.population_severity.value if assessment.population_severity else "Unknown",
            confidence=assessment.confidence,
            phases=_phase_summaries(assessment),
            has_advisories=assessment.has_advisories,
            advisories=assessment.contributing_advisories,
            factors=turbulence_factors(
                assessment.route_severity,
                assessment.advisory_matches,
                recommend_severity(assessment.advisory_matches),
            ),
            recommendations=passenger_recommendations(assessment.route_severity, distance, assessment.has_advisories),
            weather_data=samples,
            distance=round(distance),
            estimated_duration=estimate_flight_time(distance),
            ai_summary=ai_summary,
            ai_enhanced=ai_summary is not None,
            generated_at=datetime.now(timezone.utc).isoformat(),
        )

    def get_route_by_id(self, route_id: str) -> RouteTurbulenceResponse:
        departure, arrival = parse_route_id(route_id)
        return self.generate_route(departure, arrival)

    def route_summary(self, departure: str, arrival: str) -> RouteSummary:
        dep, arr = self._resolve_pair(departure, arrival)
        distance = route_distance_miles(dep.lat, dep.lon, arr.lat, arr.lon)
        return RouteSummary(
            id=_route_id(dep, arr),
            departure=dep,
            arrival=arr,
            distance=round(distance),
            estimated_duration=estimate_flight_time(distance),
        )

    def _summaries(self, pairs, limit: int) -> List[RouteSummary]:
        routes = []
        for departure, arrival in pairs:
            if len(routes) >= limit:
                break
            try:
                routes.append(self.route_summary(departure, arrival))
            except AirportNotFoundError as e:
                logger.warning(f"⚠️ Skipping route {departure}-{arrival}: {e}")
        return routes

    def popular_routes(self, limit: int = 10) -> List[RouteSummary]:
        return self._summaries(POPULAR_PAIRS, limit)

    def search_routes(self, query: str, limit: int = 10) -> List[RouteSummary]:
        q = (query or "").strip().upper()
        if not q:
            return []
        pairs = [(d, a) for d, a in SEARCHABLE_PAIRS if q in d or q in a]
        return self._summaries(pairs, limit)

    def current_advisories(self) -> List[AdvisoryRecord]:
        return self.advisory_feed.fetch() or []


def _phase_summaries(assessment: RouteAssessment) -> List[PhaseSummary]:
    return [
        PhaseSummary(
            name=a.phase.name.value,
            severity=a.severity,
            base_severity=a.base_severity,
            advisory_severity=a.advisory_severity,
            altitude_range=f"{a.phase.altitude_band.min_ft:,}-{a.phase.altitude_band.max_ft:,} ft",
            waypoint_count=len(a.phase.waypoints),
        )
        for a in assessment.phases
    ]
