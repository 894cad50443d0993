"""Tests for phase segmentation, phase classification and route aggregation."""

import random
import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))
from models.advisory import AdvisoryRecord, HazardType
from models.route import AltitudeBand, Waypoint
from models.severity import SeverityLevel
from models.turbulence import FlightPhase, PhaseAssessment, PhaseName
from models.weather import WeatherSample
from services.confidence import ConfidenceEstimator
from services.turbulence import (
    CRUISE_BAND, CRUISE_WIND_THRESHOLDS, TERMINAL_BAND, TERMINAL_WIND_THRESHOLDS,
    apply_phase_advisory, assess_route, classify_phase, mode_severity,
    phase_weighted_severity, population_severity, segment_phases,
    severity_from_wind,
)

L = SeverityLevel.LIGHT
LM = SeverityLevel.LIGHT_TO_MODERATE
M = SeverityLevel.MODERATE
MS = SeverityLevel.MODERATE_TO_SEVERE
S = SeverityLevel.SEVERE


def route(n, lat=39.0, start_lon=-100.0):
    return [Waypoint(lat=lat, lon=start_lon + i) for i in range(n)]


def samples_for(waypoints, wind):
    return [
        WeatherSample(index=i, lat=w.lat, lon=w.lon, wind_speed_mph=wind,
                      temperature_f=60, humidity_pct=40, pressure_hpa=1015)
        for i, w in enumerate(waypoints)
    ]


def assessment(name, severity):
    band = CRUISE_BAND if name == PhaseName.CRUISE else TERMINAL_BAND
    phase = FlightPhase(name=name, waypoints=[], start_index=0, altitude_band=band, phase_type="enroute")
    return PhaseAssessment(phase=phase, severity=severity)


class TestSeverityOrder(unittest.TestCase):

    def test_total_order(self):
        self.assertTrue(L < LM < M < MS < S)
        self.assertEqual(max([M, S, L]), S)
        self.assertEqual(sorted([S, L, M]), [L, M, S])

    def test_step_up_caps(self):
        self.assertEqual(L.step_up(), LM)
        self.assertEqual(S.step_up(), S)
        self.assertEqual(M.step_up(5), S)


class TestSegmentation(unittest.TestCase):

    def test_sixteen_waypoints(self):
        phases = segment_phases(route(16))
        self.assertEqual([p.name for p in phases], [PhaseName.CLIMB, PhaseName.CRUISE, PhaseName.DESCENT])
        self.assertEqual([len(p.waypoints) for p in phases], [3, 10, 3])
        self.assertEqual(phases[1].start_index, 3)
        self.assertEqual(phases[2].indices, [13, 14, 15])

    def test_short_route_keeps_terminal_phases(self):
        phases = segment_phases(route(3))
        self.assertEqual([len(p.waypoints) for p in phases], [1, 1, 1])

    def test_two_waypoints(self):
        phases = segment_phases(route(2))
        self.assertEqual([len(p.waypoints) for p in phases], [1, 0, 1])

    def test_bands(self):
        climb, cruise, descent = segment_phases(route(16))
        self.assertEqual(climb.altitude_band, AltitudeBand(min_ft=0, max_ft=30000))
        self.assertEqual(cruise.altitude_band, AltitudeBand(min_ft=30000, max_ft=40000))
        self.assertEqual(descent.phase_type, "terminal")
        self.assertEqual(cruise.phase_type, "enroute")


class TestClassification(unittest.TestCase):

    def test_cruise_thresholds(self):
        self.assertEqual(severity_from_wind(109.9, CRUISE_WIND_THRESHOLDS), L)
        self.assertEqual(severity_from_wind(110, CRUISE_WIND_THRESHOLDS), LM)
        self.assertEqual(severity_from_wind(169, CRUISE_WIND_THRESHOLDS), M)
        self.assertEqual(severity_from_wind(199, CRUISE_WIND_THRESHOLDS), MS)
        self.assertEqual(severity_from_wind(200, CRUISE_WIND_THRESHOLDS), S)

    def test_terminal_thresholds(self):
        self.assertEqual(severity_from_wind(49, TERMINAL_WIND_THRESHOLDS), L)
        self.assertEqual(severity_from_wind(75, TERMINAL_WIND_THRESHOLDS), M)
        self.assertEqual(severity_from_wind(130, TERMINAL_WIND_THRESHOLDS), S)

    def test_mode_ties_first_seen(self):
        self.assertEqual(mode_severity([M, L, L, M]), M)
        self.assertEqual(mode_severity([L, M, M]), M)
        self.assertIsNone(mode_severity([]))

    def test_cruise_uses_adjusted_wind(self):
        """45 mph at the surface is 112.5 mph at FL350."""
        waypoints = route(16)
        samples = {s.index: s for s in samples_for(waypoints, 45)}
        climb, cruise, _ = segment_phases(waypoints)
        self.assertEqual(classify_phase(cruise, samples).base_severity, LM)
        climb_result = classify_phase(climb, samples)
        self.assertEqual(climb_result.base_severity, L)
        # six bands per terminal waypoint
        self.assertEqual(len(climb_result.raw_severities), 18)

    def test_phase_without_samples(self):
        _, cruise, _ = segment_phases(route(16))
        result = classify_phase(cruise, {})
        self.assertIsNone(result.base_severity)
        self.assertIsNone(result.severity)


class TestPhaseAdvisory(unittest.TestCase):

    def test_cruise_adopts_higher(self):
        self.assertEqual(apply_phase_advisory(PhaseName.CRUISE, L, S), S)

    def test_terminal_one_step(self):
        self.assertEqual(apply_phase_advisory(PhaseName.CLIMB, L, S), LM)
        self.assertEqual(apply_phase_advisory(PhaseName.DESCENT, M, MS), MS)

    def test_never_downgrades(self):
        self.assertEqual(apply_phase_advisory(PhaseName.CRUISE, MS, L), MS)
        self.assertEqual(apply_phase_advisory(PhaseName.CLIMB, M, None), M)

    def test_no_weather_adopts_recommendation(self):
        self.assertEqual(apply_phase_advisory(PhaseName.CLIMB, None, M), M)


class TestAggregation(unittest.TestCase):

    def test_population_escalation(self):
        self.assertEqual(population_severity([L] * 7 + [S] * 3), S)
        self.assertEqual(population_severity([L] * 6 + [MS] * 4), MS)
        self.assertEqual(population_severity([L] * 11 + [M] * 9), M)
        self.assertEqual(population_severity([L] * 9 + [M]), L)

    def test_population_blend_asymmetry(self):
        self.assertEqual(population_severity([L] * 10, LM), LM)
        self.assertEqual(population_severity([LM] * 10, LM), LM)
        self.assertEqual(population_severity([LM] * 10, L), LM)
        self.assertEqual(population_severity([LM] * 10, M), M)
        # higher buckets follow the recommendation in either direction
        self.assertEqual(population_severity([M] * 10, L), L)
        self.assertEqual(population_severity([M] * 10, S), S)

    def test_population_empty(self):
        self.assertIsNone(population_severity([]))
        self.assertEqual(population_severity([], M), M)

    def test_phase_weighted(self):
        phases = [
            assessment(PhaseName.CLIMB, L),
            assessment(PhaseName.CRUISE, S),
            assessment(PhaseName.DESCENT, L),
        ]
        # 0.15 + 3.5 + 0.15 = 3.8
        self.assertEqual(phase_weighted_severity(phases), MS)

    def test_phase_weighted_renormalizes(self):
        phases = [
            assessment(PhaseName.CLIMB, None),
            assessment(PhaseName.CRUISE, M),
            assessment(PhaseName.DESCENT, None),
        ]
        self.assertEqual(phase_weighted_severity(phases), M)
        self.assertIsNone(phase_weighted_severity([assessment(PhaseName.CRUISE, None)]))


class TestAssessRoute(unittest.TestCase):

    def test_calm_route_without_advisories(self):
        waypoints = route(16)
        result = assess_route(waypoints, samples_for(waypoints, 40), [], ConfidenceEstimator(random.Random(7)))
        self.assertEqual(result.route_severity, L)
        self.assertEqual(result.weather_based_severity, L)
        self.assertFalse(result.has_advisories)
        self.assertTrue(0.30 <= result.confidence <= 0.98)

    def test_cruise_advisory_raises_route(self):
        waypoints = route(16)
        cruise_only = [(38.0, -96.6), (40.0, -96.6), (40.0, -88.4), (38.0, -88.4)]
        advisory = AdvisoryRecord(
            hazard_type=HazardType.TURBULENCE,
            severity=S,
            altitude=AltitudeBand(min_ft=30000, max_ft=40000),
            polygon=cruise_only,
        )
        result = assess_route(waypoints, samples_for(waypoints, 40), [advisory], ConfidenceEstimator(random.Random(7)))
        climb, cruise, descent = result.phases
        self.assertEqual(cruise.severity, S)
        self.assertTrue(cruise.upgraded)
        self.assertEqual(climb.severity, L)
        self.assertEqual(descent.severity, L)
        self.assertEqual(result.route_severity, MS)
        self.assertEqual(result.weather_based_severity, L)
        self.assertTrue(result.has_advisories)
        self.assertEqual(result.contributing_advisories, [advisory])

    def test_edge_touching_advisory_does_not_contribute(self):
        """An FL400-410 advisory meets cruise only at its edge and carries no weight."""
        waypoints = route(16)
        cruise_only = [(38.0, -96.6), (40.0, -96.6), (40.0, -88.4), (38.0, -88.4)]
        advisory = AdvisoryRecord(
            hazard_type=HazardType.TURBULENCE,
            severity=S,
            altitude=AltitudeBand(min_ft=40000, max_ft=41000),
            polygon=cruise_only,
        )
        samples = samples_for(waypoints, 40)
        without = assess_route(waypoints, samples, [], ConfidenceEstimator(random.Random(7)))
        result = assess_route(waypoints, samples, [advisory], ConfidenceEstimator(random.Random(7)))

        cruise = result.phases[1]
        self.assertEqual([m.weight for m in cruise.advisory_matches], [0.0])
        self.assertFalse(cruise.upgraded)
        self.assertEqual(result.route_severity, L)
        self.assertFalse(result.has_advisories)
        self.assertEqual(result.contributing_advisories, [])
        self.assertEqual(result.advisory_matches, [])
        self.assertEqual(result.confidence, without.confidence)

    def test_no_samples(self):
        waypoints = route(16)
        result = assess_route(waypoints, [], [], ConfidenceEstimator(random.Random(1)))
        self.assertIsNone(result.route_severity)
        self.assertIsNone(result.population_severity)


if __name__ == '__main__':
    unittest.main()
