import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from models.advisory import AdvisoryMatch, AdvisoryRecord
from models.route import AltitudeBand, Waypoint
from models.severity import SeverityLevel
from models.turbulence import FlightPhase, PhaseAssessment, PhaseName, RouteAssessment
from models.weather import WeatherSample
from .advisories import ROUTE_REFERENCE_BAND, match_advisories, recommend_severity
from .weather import reading_for_band

logger = logging.getLogger(__name__)

TERMINAL_PHASE_SHARE = 0.20
TERMINAL_BAND = AltitudeBand(min_ft=0, max_ft=30000)
CRUISE_BAND = AltitudeBand(min_ft=30000, max_ft=40000)
CRUISE_REFERENCE_ALTITUDE = AltitudeBand(min_ft=35000, max_ft=35000)
TERMINAL_SAMPLE_BANDS = [AltitudeBand(min_ft=lo, max_ft=lo + 5000) for lo in range(0, 30000, 5000)]

# Upper bounds in mph, checked in order; anything above the last is Severe.
# Cruise applies to altitude-adjusted wind, terminal phases to surface wind.
CRUISE_WIND_THRESHOLDS = [
    (110, SeverityLevel.LIGHT),
    (140, SeverityLevel.LIGHT_TO_MODERATE),
    (170, SeverityLevel.MODERATE),
    (200, SeverityLevel.MODERATE_TO_SEVERE),
]
TERMINAL_WIND_THRESHOLDS = [
    (50, SeverityLevel.LIGHT),
    (75, SeverityLevel.LIGHT_TO_MODERATE),
    (100, SeverityLevel.MODERATE),
    (125, SeverityLevel.MODERATE_TO_SEVERE),
]

# Assumed share of flight time spent in each phase
PHASE_WEIGHTS = {
    PhaseName.CLIMB: 0.15,
    PhaseName.CRUISE: 0.70,
    PhaseName.DESCENT: 0.15,
}


def severity_from_wind(wind_speed_mph: float, thresholds: Sequence[Tuple[float, SeverityLevel]]) -> SeverityLevel:
    for limit, level in thresholds:
        if wind_speed_mph < limit:
            return level
    return SeverityLevel.SEVERE


def mode_severity(levels: Iterable[SeverityLevel]) -> Optional[SeverityLevel]:
    """Most frequent bucket; on a tie the first one seen wins."""
    counts = Counter(levels)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def segment_phases(waypoints: Sequence[Waypoint]) -> List[FlightPhase]:
    """Climb = first 20%, Cruise = middle 60%, Descent = last 20% of the waypoints."""
    n = len(waypoints)
    if n == 0:
        return []
    terminal = max(1, round(n * TERMINAL_PHASE_SHARE))
    if 2 * terminal > n:
        terminal = n // 2
    climb_end = terminal
    descent_start = n - terminal

    def phase(name: PhaseName, start: int, end: int, band: AltitudeBand, phase_type: str) -> FlightPhase:
        return FlightPhase(
            name=name,
            waypoints=list(waypoints[start:end]),
            start_index=start,
            altitude_band=band,
            phase_type=phase_type,
        )

    return [
        phase(PhaseName.CLIMB, 0, climb_end, TERMINAL_BAND, "terminal"),
        phase(PhaseName.CRUISE, climb_end, descent_start, CRUISE_BAND, "enroute"),
        phase(PhaseName.DESCENT, descent_start, n, TERMINAL_BAND, "terminal"),
    ]


def raw_phase_severities(phase: FlightPhase, samples_by_index: Dict[int, WeatherSample]) -> List[SeverityLevel]:
    """One severity per (waypoint, band) pair that has a weather sample."""
    levels: List[SeverityLevel] = []
    for idx in phase.indices:
        sample = samples_by_index.get(idx)
        if sample is None:
            continue
        if phase.name == PhaseName.CRUISE:
            reading = reading_for_band(sample, CRUISE_REFERENCE_ALTITUDE)
            levels.append(severity_from_wind(reading.wind_speed_mph, CRUISE_WIND_THRESHOLDS))
        else:
            for band in TERMINAL_SAMPLE_BANDS:
                reading = reading_for_band(sample, band, apply_wind_multiplier=False)
                levels.append(severity_from_wind(reading.wind_speed_mph, TERMINAL_WIND_THRESHOLDS))
    return levels


def apply_phase_advisory(phase_name: PhaseName, base: Optional[SeverityLevel], recommended: Optional[SeverityLevel]) -> Optional[SeverityLevel]:
    """Cruise adopts a higher recommendation outright; climb/descent rise one step at most."""
    if recommended is None:
        return base
    if base is None:
        return recommended
    if recommended <= base:
        return base
    if phase_name == PhaseName.CRUISE:
        return recommended
    return min(recommended, base.step_up())


def classify_phase(phase: FlightPhase, samples_by_index: Dict[int, WeatherSample], advisories: Sequence[AdvisoryRecord] = ()) -> PhaseAssessment:
    raw = raw_phase_severities(phase, samples_by_index)
    base = mode_severity(raw)

    matches = match_advisories(advisories, phase.waypoints, phase.altitude_band) if phase.waypoints else []
    recommended = recommend_severity(matches)
    severity = apply_phase_advisory(phase.name, base, recommended)

    return PhaseAssessment(
        phase=phase,
        base_severity=base,
        severity=severity,
        raw_severities=raw,
        advisory_severity=recommended,
        advisory_matches=matches,
        upgraded=severity is not None and base is not None and severity > base,
    )


def population_severity(raw: Sequence[SeverityLevel], recommended: Optional[SeverityLevel] = None) -> Optional[SeverityLevel]:
    """Legacy route severity: mode of every raw severity, escalated by population share.

    The advisory blend is asymmetric: Light adopts any higher
    recommendation, Light to Moderate only Moderate or above, and higher
    buckets follow the recommendation either way.
    """
    level = mode_severity(raw)
    if level is None:
        return recommended

    counts = Counter(raw)
    total = len(raw)
    severe = counts[SeverityLevel.SEVERE]
    mod_to_sev = counts[SeverityLevel.MODERATE_TO_SEVERE]
    moderate = counts[SeverityLevel.MODERATE]

    if severe / total > 0.2:
        level = SeverityLevel.SEVERE
    elif (severe + mod_to_sev) / total > 0.3:
        level = SeverityLevel.MODERATE_TO_SEVERE
    elif (severe + mod_to_sev + moderate) / total > 0.4:
        level = SeverityLevel.MODERATE

    if recommended is None:
        return level
    if level == SeverityLevel.LIGHT:
        return recommended if recommended > level else level
    if level == SeverityLevel.LIGHT_TO_MODERATE:
        return recommended if recommended >= SeverityLevel.MODERATE else level
    if recommended.numeric > level.numeric + 0.2 or recommended.numeric < level.numeric - 0.8:
        return recommended
    return level


def phase_weighted_severity(phases: Sequence[PhaseAssessment]) -> Optional[SeverityLevel]:
    """Authoritative route severity: flight-time weighted mean of the phase severities.

    Phases without any severity are left out and the remaining weights renormalized.
    """
    total_weight = 0.0
    weighted = 0.0
    for assessment in phases:
        if assessment.severity is None:
            continue
        weight = PHASE_WEIGHTS[assessment.phase.name]
        total_weight += weight
        weighted += assessment.severity.numeric * weight
    if total_weight == 0:
        return None
    return SeverityLevel.from_numeric(weighted / total_weight)


def _unique_advisories(matches: Iterable[AdvisoryMatch]) -> Tuple[List[AdvisoryRecord], List[AdvisoryMatch]]:
    records: List[AdvisoryRecord] = []
    kept: List[AdvisoryMatch] = []
    for match in matches:
        if match.advisory in records:
            continue
        records.append(match.advisory)
        kept.append(match)
    return records, kept


def assess_route(waypoints: Sequence[Waypoint], samples: Sequence[WeatherSample], advisories: Sequence[AdvisoryRecord], confidence_estimator) -> RouteAssessment:
    """Run phase classification, both route aggregations and confidence scoring."""
    samples_by_index = {s.index: s for s in samples}
    phases = segment_phases(waypoints)

    assessments = [classify_phase(p, samples_by_index, advisories) for p in phases]
    weather_only = [classify_phase(p, samples_by_index) for p in phases]

    route_matches = match_advisories(advisories, waypoints, ROUTE_REFERENCE_BAND)
    pooled = [level for a in assessments for level in a.raw_severities]

    contributing, matches = _unique_advisories(m for a in assessments for m in a.advisory_matches if m.weight > 0)
    route_severity = phase_weighted_severity(assessments)
    confidence = confidence_estimator.estimate(matches)

    logger.info(
        f"🧭 Route severity {route_severity.value if route_severity else 'Unknown'} "
        f"from {len(samples)} samples, {len(contributing)} contributing advisories"
    )
    return RouteAssessment(
        phases=assessments,
        route_severity=route_severity,
        population_severity=population_severity(pooled, recommend_severity(route_matches)),
        weather_based_severity=phase_weighted_severity(weather_only),
        confidence=confidence,
        contributing_advisories=contributing,
        advisory_matches=matches,
    )
