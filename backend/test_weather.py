"""Tests for the altitude weather model and route weather sampling."""

import math
import sys
import unittest
from pathlib import Path
from unittest import mock

import requests

sys.path.insert(0, str(Path(__file__).parent))
from models.route import AltitudeBand, Waypoint
from models.weather import WeatherSample
from services.weather import (
    WeatherProvider, WeatherProviderError, pressure_at_altitude,
    reading_for_band, sample_route_weather, temperature_at_altitude,
    wind_speed_at_altitude,
)


def make_sample(wind=40.0, temp=70.0, pressure=1013.0, lat=0.0, lon=0.0):
    return WeatherSample(
        lat=lat, lon=lon, wind_speed_mph=wind, temperature_f=temp,
        humidity_pct=50, pressure_hpa=pressure, description="clear sky",
    )


class TestAltitudeModel(unittest.TestCase):

    def test_wind_multiplier(self):
        self.assertAlmostEqual(wind_speed_at_altitude(40, 0), 40)
        self.assertAlmostEqual(wind_speed_at_altitude(40, 10000), 72)
        # capped at 2.5x from 18,750 ft up
        self.assertAlmostEqual(wind_speed_at_altitude(40, 35000), 100)
        self.assertAlmostEqual(wind_speed_at_altitude(40, 60000), 100)

    def test_temperature_lapse(self):
        self.assertAlmostEqual(temperature_at_altitude(70, 10000), 70 - 117)

    def test_pressure_decay(self):
        self.assertAlmostEqual(pressure_at_altitude(1013, 7400), 1013 / math.e)

    def test_reading_at_band_midpoint(self):
        reading = reading_for_band(make_sample(), AltitudeBand(min_ft=0, max_ft=10000))
        self.assertEqual(reading.altitude_ft, 5000)
        self.assertAlmostEqual(reading.wind_speed_mph, 40 * 1.4)
        self.assertAlmostEqual(reading.temperature_f, 70 - 58.5)

    def test_reading_without_wind_multiplier(self):
        """Low bands keep surface wind; temperature and pressure still adjust."""
        reading = reading_for_band(make_sample(), AltitudeBand(min_ft=20000, max_ft=30000), apply_wind_multiplier=False)
        self.assertEqual(reading.wind_speed_mph, 40)
        self.assertLess(reading.temperature_f, 70)


class FakeProvider:
    """Returns a fixed sample, failing at the given coordinates."""

    def __init__(self, fail_at=()):
        self.fail_at = set(fail_at)
        self.calls = 0

    def sample(self, lat, lon):
        self.calls += 1
        if (lat, lon) in self.fail_at:
            raise WeatherProviderError("boom")
        return make_sample(lat=lat, lon=lon)


class TestSampleRouteWeather(unittest.TestCase):

    WAYPOINTS = [Waypoint(lat=float(i), lon=float(-i)) for i in range(12)]

    def test_all_samples_ordered(self):
        samples = sample_route_weather(FakeProvider(), self.WAYPOINTS)
        self.assertEqual([s.index for s in samples], list(range(12)))
        self.assertEqual(samples[7].lat, 7.0)

    def test_failed_points_dropped(self):
        provider = FakeProvider(fail_at={(3.0, -3.0), (8.0, -8.0)})
        samples = sample_route_weather(provider, self.WAYPOINTS, batch_size=4)
        self.assertEqual(len(samples), 10)
        self.assertNotIn(3, [s.index for s in samples])
        self.assertNotIn(8, [s.index for s in samples])
        # no retries
        self.assertEqual(provider.calls, 12)

    def test_empty_route(self):
        self.assertEqual(sample_route_weather(FakeProvider(), []), [])


class TestWeatherProvider(unittest.TestCase):

    def test_missing_key(self):
        with self.assertRaises(WeatherProviderError):
            WeatherProvider(None).sample(40.0, -73.0)

    def test_parses_response(self):
        session = mock.Mock()
        session.get.return_value = mock.Mock(status_code=200, json=lambda: {
            "main": {"temp": 61.5, "humidity": 72, "pressure": 1009},
            "wind": {"speed": 14.2},
            "weather": [{"description": "broken clouds"}],
        })
        sample = WeatherProvider("key", session=session).sample(40.0, -73.0)
        self.assertEqual(sample.wind_speed_mph, 14.2)
        self.assertEqual(sample.temperature_f, 61.5)
        self.assertEqual(sample.description, "broken clouds")
        params = session.get.call_args.kwargs["params"]
        self.assertEqual(params["units"], "imperial")
        self.assertEqual(session.get.call_args.kwargs["timeout"], 8.0)

    def test_http_error(self):
        session = mock.Mock()
        session.get.return_value = mock.Mock(status_code=401, text="invalid key")
        with self.assertRaises(WeatherProviderError):
            WeatherProvider("key", session=session).sample(40.0, -73.0)

    def test_request_exception(self):
        session = mock.Mock()
        session.get.side_effect = requests.exceptions.Timeout("slow")
        with self.assertRaises(WeatherProviderError):
            WeatherProvider("key", session=session).sample(40.0, -73.0)


if __name__ == '__main__':
    unittest.main()
