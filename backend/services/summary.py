import json
import logging
from typing import Dict, List, Optional, Sequence

import requests
from models.advisory import AdvisoryMatch
from models.severity import SeverityLevel
from models.weather import WeatherSample

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

SEVERITY_FACTORS = {
    SeverityLevel.LIGHT: [
        "Stable high-altitude atmospheric conditions",
        "Normal cruising winds at 30,000+ feet",
        "Smooth flying conditions expected",
    ],
    SeverityLevel.LIGHT_TO_MODERATE: [
        "Some wind variations at cruising altitude",
        "Minor atmospheric instability",
        "Generally comfortable flying conditions",
    ],
    SeverityLevel.MODERATE: [
        "Moderate wind speeds at cruising altitude",
        "Some atmospheric instability present",
        "Passengers may notice some movement",
    ],
    SeverityLevel.MODERATE_TO_SEVERE: [
        "Strong wind patterns at cruising altitude",
        "Significant atmospheric instability",
        "Pilots may consider route adjustments",
    ],
    SeverityLevel.SEVERE: [
        "High wind speeds and severe turbulence",
        "Major atmospheric disturbances",
        "Route diversion recommended if possible",
    ],
}

LEVEL_RECOMMENDATIONS = {
    SeverityLevel.LIGHT: [
        ("🌤️", "What to Expect", "You may feel gentle movements - similar to driving on a slightly bumpy road"),
        ("💧", "Hydration", "Stay hydrated - this helps with any minor motion sensitivity"),
    ],
    SeverityLevel.LIGHT_TO_MODERATE: [
        ("🌤️", "What to Expect", "Some noticeable movement - like driving on a country road with occasional bumps"),
        ("🎵", "Comfort", "Listening to music or podcasts can help you relax during any bumps"),
    ],
    SeverityLevel.MODERATE: [
        ("⛈️", "What to Expect", "Moderate movement - similar to driving on a gravel road. This is normal and safe"),
        ("🧘", "Relaxation", "Practice deep breathing - turbulence is temporary and your pilots are in control"),
    ],
    SeverityLevel.MODERATE_TO_SEVERE: [
        ("⛈️", "What to Expect", "More noticeable movement - like driving on a rough road. Still completely safe"),
        ("👨‍✈️", "Pilot Expertise", "Your pilots may adjust altitude or route to find smoother air"),
    ],
    SeverityLevel.SEVERE: [
        ("⚡", "What to Expect", "Significant movement - pilots will actively work to minimize this"),
        ("🔄", "Pilot Actions", "Your pilots will likely change altitude or route to find calmer conditions"),
    ],
}


def _flight_levels(min_ft: int, max_ft: int) -> str:
    top = "UNL" if max_ft >= 999999 else f"FL{round(max_ft / 100)}"
    return f"FL{round(min_ft / 100)}-{top}"


def turbulence_factors(level: Optional[SeverityLevel], matches: Sequence[AdvisoryMatch], advisory_level: Optional[SeverityLevel] = None) -> List[str]:
    factors = list(SEVERITY_FACTORS.get(level, ["Weather data unavailable for analysis"]))

    if not matches:
        factors.append("No active G-AIRMET advisories (prediction based on weather models only)")
        return factors

    factors.append("Official G-AIRMET turbulence advisory in effect")
    if advisory_level:
        factors.append(f"G-AIRMET analysis indicates {advisory_level.value} turbulence")
    for m in matches:
        adv = m.advisory
        factors.append(
            f"G-AIRMET: {adv.severity.value} {adv.hazard_type.value.lower()} in {adv.area_label} "
            f"at {_flight_levels(adv.altitude.min_ft, adv.altitude.max_ft)}"
        )

    total_weight = sum(m.weight for m in matches)
    if total_weight > 2.0:
        factors.append("High-confidence G-AIRMET data (multiple high-quality advisories)")
    elif total_weight > 1.5:
        factors.append("Medium-confidence G-AIRMET data (good advisory coverage)")
    else:
        factors.append("Limited G-AIRMET coverage (fewer advisories)")
    return factors


def passenger_recommendations(level: Optional[SeverityLevel], distance_miles: float, has_advisories: bool) -> List[Dict[str, str]]:
    tips = [
        ("✈️", "Flight Info", "Your pilots are highly trained professionals who handle these conditions daily"),
        ("🛡️", "Safety", "Keep your seatbelt fastened when seated - this is standard safety practice"),
    ]
    tips.extend(LEVEL_RECOMMENDATIONS.get(level, [
        ("ℹ️", "General", "Your flight crew is monitoring conditions and will keep you informed"),
    ]))

    if distance_miles > 2000:
        tips.append(("🌍", "Long Flight", "On longer flights, pilots have more options to find optimal routes"))
    if has_advisories:
        tips.append(("📡", "Advanced Warning", "G-AIRMET data gives pilots early warning to plan optimal routes"))

    return [{"icon": icon, "type": kind, "text": text} for icon, kind, text in tips]


class NarrativeGenerator:
    """Short passenger-facing briefing from Gemini. Never changes the numeric result."""

    def __init__(self, api_key: Optional[str], model: str = "gemini-2.5-flash", timeout: float = 25.0):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    def _build_prompt(self, context: dict) -> str:
        samples: List[WeatherSample] = context.get("weather_data") or []
        weather_summary = [
            {
                "waypoint": s.index + 1,
                "coordinates": [round(s.lat, 3), round(s.lon, 3)],
                "windSpeed": s.wind_speed_mph,
                "temperature": s.temperature_f,
                "pressure": s.pressure_hpa,
                "description": s.description,
            }
            for s in samples
        ]
        advisories = context.get("advisories") or []
        advisory_text = (
            "G-AIRMET advisories: " + json.dumps([a.model_dump(mode="json", exclude={"polygon"}) for a in advisories], indent=2)
            if advisories else "No active G-AIRMET advisories"
        )
        level = context.get("turbulence_level")

        return f"""You are an expert aviation meteorologist analyzing turbulence conditions for a commercial flight.

Route: {context.get("departure")} → {context.get("arrival")}
FINAL predicted turbulence level (already enhanced with G-AIRMET data): {level}

Weather data along the route:
{json.dumps(weather_summary, indent=2)}

{advisory_text}

IMPORTANT: The turbulence level above ({level}) is the FINAL prediction. Do not change this level in your response.

Please provide a concise 4-5 sentence summary that includes:
1. The FINAL predicted turbulence level: {level} (include full airport names)
2. The main atmospheric factor causing it
3. Historical context about this route's typical turbulence patterns
4. A brief, reassuring statement for an anxious passenger

Keep it clear, professional, and easy to understand."""

    def summarize(self, context: dict) -> Optional[str]:
        if not self.api_key:
            logger.info("ℹ️ No Gemini API key configured - skipping AI summary")
            return None

        payload = {"contents": [{"parts": [{"text": self._build_prompt(context)}]}]}
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

        try:
            logger.info(f"🤖 Calling Gemini {self.model}...")
            response = requests.post(GEMINI_URL.format(model=self.model), json=payload, headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout:
            logger.warning("⏱ Gemini API request timed out")
            return None
        except requests.exceptions.RequestException as e:
            logger.warning(f"💥 Error calling Gemini API: {e}")
            return None

        if response.status_code != 200:
            logger.warning(f"❌ Gemini API Error {response.status_code}: {response.text}")
            return None

        result = response.json()
        try:
            text = result["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            logger.warning("❌ Unexpected Gemini response structure")
            return None

        logger.info("✅ Successfully got AI summary")
        return text.strip()
