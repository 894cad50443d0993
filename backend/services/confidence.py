import random
from typing import Optional, Sequence

from models.advisory import AdvisoryMatch, MatchMethod
from models.severity import SeverityLevel
from .advisories import SEVERITY_WEIGHTS

MIN_CONFIDENCE = 0.30
MAX_CONFIDENCE = 0.98
MAX_ADVISORY_BOOST = 0.45
CRUISE_ALTITUDE_FT = 35000

# Half-widths of the uniform noise terms, one per uncertainty category
NOISE_TERMS = {
    "weather_data_quality": 0.10,
    "atmospheric_uncertainty": 0.10,
    "weather_model_accuracy": 0.09,
    "route_complexity": 0.08,
    "prediction_reliability": 0.07,
}
NO_ADVISORY_NOISE = 0.075

SEVERITY_MIX = {
    SeverityLevel.LIGHT: 0.05,
    SeverityLevel.MODERATE: 0.10,
    SeverityLevel.SEVERE: 0.20,
}


class ConfidenceEstimator:
    """Confidence score in [0.30, 0.98].

    Most of the score is uniform noise standing in for uncertainty categories
    that are not measured; only the advisory boost is driven by real input.
    Pass a seeded random.Random to pin the output.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def _noise(self, half_width: float) -> float:
        return (self.rng.random() - 0.5) * 2 * half_width

    def estimate(self, matches: Sequence[AdvisoryMatch]) -> float:
        confidence = 0.35 + self.rng.random() * 0.4

        if matches:
            confidence += advisory_boost(matches)
        else:
            confidence += self._noise(NO_ADVISORY_NOISE)

        for half_width in NOISE_TERMS.values():
            confidence += self._noise(half_width)

        confidence = max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence))
        return round(confidence, 2)


def advisory_boost(matches: Sequence[AdvisoryMatch]) -> float:
    """Deterministic boost from advisory count, severity mix, altitude coverage and specificity."""
    if not matches:
        return 0.0
    count = len(matches)
    advisories = [m.advisory for m in matches]

    weights = []
    for adv in advisories:
        weight = SEVERITY_WEIGHTS[adv.severity]
        if adv.altitude.contains(CRUISE_ALTITUDE_FT):
            weight *= 1.5
        weights.append(weight)
    boost = 0.15 + (sum(weights) / count) * 0.15

    boost += sum(SEVERITY_MIX.get(adv.severity, 0.08) for adv in advisories) / count

    coverage = []
    for adv in advisories:
        covered = (min(adv.altitude.max_ft, 45000) - max(adv.altitude.min_ft, 25000)) / 20000
        coverage.append(max(0.0, min(1.0, covered)))
    boost += sum(coverage) / count * 0.12

    boost += sum(_specificity(m) for m in matches) / count

    if count >= 3:
        boost += 0.08
    elif count >= 2:
        boost += 0.05
    else:
        boost += 0.02

    return min(boost, MAX_ADVISORY_BOOST)


def _specificity(match: AdvisoryMatch) -> float:
    if match.method == MatchMethod.POLYGON:
        return 0.08
    area = match.advisory.area_label
    if "Central United States" in area or "Eastern United States" in area:
        return 0.06
    if "United States" in area:
        return 0.05
    return 0.03
