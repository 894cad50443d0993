"""Tests for confidence scoring."""

import random
import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))
from models.advisory import AdvisoryMatch, AdvisoryRecord, HazardType, MatchMethod
from models.route import AltitudeBand
from models.severity import SeverityLevel
from services.confidence import MAX_ADVISORY_BOOST, ConfidenceEstimator, advisory_boost


def match(severity=SeverityLevel.MODERATE, method=MatchMethod.POLYGON, area="Central United States", low=30000, high=40000):
    advisory = AdvisoryRecord(
        hazard_type=HazardType.TURBULENCE,
        severity=severity,
        altitude=AltitudeBand(min_ft=low, max_ft=high),
        area_label=area,
    )
    return AdvisoryMatch(advisory=advisory, method=method, overlap_fraction=1.0, weight=1.0)


class TestConfidenceEstimator(unittest.TestCase):

    def test_bounds(self):
        estimator = ConfidenceEstimator(random.Random(0))
        for _ in range(500):
            value = estimator.estimate([])
            self.assertTrue(0.30 <= value <= 0.98)
            self.assertEqual(value, round(value, 2))

    def test_seeded_is_reproducible(self):
        first = ConfidenceEstimator(random.Random(42)).estimate([match()])
        second = ConfidenceEstimator(random.Random(42)).estimate([match()])
        self.assertEqual(first, second)

    def test_advisories_raise_average(self):
        """Over many draws the advisory boost shows through the noise."""
        plain = ConfidenceEstimator(random.Random(3))
        boosted = ConfidenceEstimator(random.Random(3))
        matches = [match(SeverityLevel.SEVERE)] * 3
        plain_mean = sum(plain.estimate([]) for _ in range(300)) / 300
        boosted_mean = sum(boosted.estimate(matches) for _ in range(300)) / 300
        self.assertGreater(boosted_mean, plain_mean + 0.15)


class TestAdvisoryBoost(unittest.TestCase):

    def test_empty(self):
        self.assertEqual(advisory_boost([]), 0.0)

    def test_single_light_region_match(self):
        m = match(SeverityLevel.LIGHT, MatchMethod.REGION, "Western Europe", low=10000, high=20000)
        # 0.15 + 0.6 * 0.15 + 0.05 + 0 coverage + 0.03 + 0.02
        self.assertAlmostEqual(advisory_boost([m]), 0.34)

    def test_capped(self):
        matches = [match(SeverityLevel.SEVERE, low=20000, high=50000) for _ in range(4)]
        self.assertEqual(advisory_boost(matches), MAX_ADVISORY_BOOST)

    def test_deterministic(self):
        matches = [match(), match(SeverityLevel.LIGHT, MatchMethod.REGION)]
        self.assertEqual(advisory_boost(matches), advisory_boost(matches))


if __name__ == '__main__':
    unittest.main()
