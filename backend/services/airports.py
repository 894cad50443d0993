import logging
import os
import tempfile
import threading
from io import StringIO
from typing import Dict, List, Optional, Tuple

import pandas as pd
import requests
from cachetools import TTLCache
from models.airport import Airport

logger = logging.getLogger(__name__)

OURAIRPORTS_URL = "https://davidmegginson.github.io/ourairports-data/airports.csv"
DEFAULT_DATA_FILE = os.path.normpath(os.path.join(os.path.dirname(__file__), "..", "data", "airports.csv"))
MAX_CACHED_AIRPORTS = 2048  # Max resolved airports kept per service

# Used when the dataset is unavailable or lacks an entry: code -> (name, lat, lon, icao)
FALLBACK_AIRPORTS: Dict[str, Tuple[str, float, float, str]] = {
    "JFK": ("John F. Kennedy International Airport", 40.6413, -73.7781, "KJFK"),
    "LAX": ("Los Angeles International Airport", 33.9416, -118.4085, "KLAX"),
    "LHR": ("London Heathrow Airport", 51.4700, -0.4543, "EGLL"),
    "CDG": ("Charles de Gaulle Airport", 49.0097, 2.5479, "LFPG"),
    "DEN": ("Denver International Airport", 39.8561, -104.6737, "KDEN"),
    "SEA": ("Seattle-Tacoma International Airport", 47.4502, -122.3088, "KSEA"),
    "ATL": ("Hartsfield-Jackson Atlanta International Airport", 33.6407, -84.4277, "KATL"),
    "MIA": ("Miami International Airport", 25.7932, -80.2906, "KMIA"),
    "SFO": ("San Francisco International Airport", 37.6189, -122.3750, "KSFO"),
    "OAK": ("Oakland International Airport", 37.7214, -122.2208, "KOAK"),
    "DEL": ("Indira Gandhi International Airport", 28.5562, 77.1000, "VIDP"),
    "ORD": ("O'Hare International Airport", 41.9786, -87.9048, "KORD"),
    "DFW": ("Dallas/Fort Worth International Airport", 32.8968, -97.0380, "KDFW"),
    "LAS": ("Harry Reid International Airport", 36.0840, -115.1537, "KLAS"),
    "PHX": ("Phoenix Sky Harbor International Airport", 33.4342, -112.0116, "KPHX"),
    "IAH": ("George Bush Intercontinental Airport", 29.9902, -95.3368, "KIAH"),
    "CLT": ("Charlotte Douglas International Airport", 35.2140, -80.9431, "KCLT"),
    "MCO": ("Orlando International Airport", 28.4312, -81.3081, "KMCO"),
    "EWR": ("Newark Liberty International Airport", 40.6895, -74.1745, "KEWR"),
    "BOS": ("Logan International Airport", 42.3656, -71.0096, "KBOS"),
    "DTW": ("Detroit Metropolitan Airport", 42.2162, -83.3554, "KDTW"),
    "NRT": ("Narita International Airport", 35.7720, 140.3929, "RJAA"),
    "HKG": ("Hong Kong International Airport", 22.3080, 113.9185, "VHHH"),
    "ANC": ("Ted Stevens Anchorage International Airport", 61.1743, -149.9982, "PANC"),
    "HNL": ("Daniel K. Inouye International Airport", 21.3187, -157.9225, "PHNL"),
}


class AirportNotFoundError(Exception):
    def __init__(self, code: str):
        super().__init__(f"Airport not found: {code}")
        self.code = code


class AirportDataService:
    """Keyed airport lookup over the OurAirports CSV with a hardcoded fallback table.

    Resolved airports are cached per instance for cache_ttl seconds. A failed
    dataset load is not remembered, so the next lookup tries again.
    """

    def __init__(self, data_file: Optional[str] = DEFAULT_DATA_FILE, download_url: Optional[str] = None, cache_ttl: float = 24 * 60 * 60):
        self.data_file = data_file
        self.download_url = download_url
        self.cache_ttl = cache_ttl
        self.airports_df: Optional[pd.DataFrame] = None
        self._load_lock = threading.Lock()
        self._cache_lock = threading.Lock()
        self._cache: TTLCache = TTLCache(maxsize=MAX_CACHED_AIRPORTS, ttl=cache_ttl)

    def load_airports_data(self) -> pd.DataFrame:
        """Load OurAirports CSV data (download if not exists and a URL is configured)."""
        if self.airports_df is not None:
            return self.airports_df

        with self._load_lock:
            if self.airports_df is not None:
                return self.airports_df
            try:
                if self.data_file and os.path.exists(self.data_file):
                    logger.info("📂 Loading airports from local CSV...")
                    df = pd.read_csv(self.data_file, keep_default_na=False, low_memory=False)
                elif self.download_url:
                    logger.info("🌐 Downloading OurAirports data...")
                    response = requests.get(self.download_url, timeout=30)
                    response.raise_for_status()
                    df = pd.read_csv(StringIO(response.text), keep_default_na=False, low_memory=False)
                    if self.data_file:
                        self._save_csv(response.text)
                else:
                    df = pd.DataFrame()
            except (OSError, requests.exceptions.RequestException, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
                logger.warning(f"❌ Could not load airports dataset, using fallback table only: {e}")
                return pd.DataFrame()

            self.airports_df = df
            logger.info(f"✅ Loaded {len(df)} airports")
            return df

    def _save_csv(self, text: str):
        """Write the downloaded CSV next to data_file, then move it into place."""
        directory = os.path.dirname(self.data_file) or "."
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_path, self.data_file)
        except OSError as e:
            logger.warning(f"⚠️ Could not save airports CSV to {self.data_file}: {e}")
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)

    def _lookup_dataset(self, code: str) -> Optional[Airport]:
        df = self.load_airports_data()
        if df.empty:
            return None

        columns = ["iata_code"] if len(code) == 3 else ["icao_code", "ident", "gps_code"]
        for column in columns:
            if column not in df.columns:
                continue
            rows = df[df[column].astype(str).str.upper() == code]
            if rows.empty:
                continue
            airport = _row_to_airport(rows.iloc[0], code)
            if airport:
                return airport
        return None

    def _lookup_fallback(self, code: str) -> Optional[Airport]:
        entry = FALLBACK_AIRPORTS.get(code)
        if entry is None:
            for candidate in FALLBACK_AIRPORTS.values():
                if candidate[3] == code:
                    entry = candidate
                    break
        if entry is None:
            return None
        name, lat, lon, icao = entry
        return Airport(code=code, name=name, lat=lat, lon=lon, icao=icao)

    def resolve(self, code: str) -> Optional[Airport]:
        """Coordinates and name for an IATA or ICAO code, None if unknown."""
        code = (code or "").strip().upper()
        if not code:
            return None

        with self._cache_lock:
            cached = self._cache.get(code)
        if cached is not None:
            return cached

        airport = self._lookup_dataset(code) or self._lookup_fallback(code)
        if airport:
            with self._cache_lock:
                self._cache[code] = airport
        else:
            logger.warning(f"❌ Airport {code} not found")
        return airport

    def search(self, query: str, limit: int = 10) -> List[Airport]:
        """Airports whose IATA code, ICAO code, name or city contains the query.

        Exact code matches come first. Queries shorter than two characters match nothing.
        """
        q = (query or "").strip()
        if len(q) < 2:
            return []
        upper = q.upper()

        results: Dict[str, Airport] = {}
        df = self.load_airports_data()
        if not df.empty and "iata_code" in df.columns:
            candidates = df[df["iata_code"].astype(str).str.len() == 3]
            mask = pd.Series(False, index=candidates.index)
            for column in ("iata_code", "icao_code", "name", "municipality"):
                if column in candidates.columns:
                    mask |= candidates[column].astype(str).str.upper().str.contains(upper, regex=False)
            for _, row in candidates[mask].iterrows():
                code = str(row["iata_code"]).upper()
                if code in results:
                    continue
                airport = _row_to_airport(row, code)
                if airport:
                    results[code] = airport

        for code, (name, lat, lon, icao) in FALLBACK_AIRPORTS.items():
            if code in results:
                continue
            if upper in code or upper in icao or upper in name.upper():
                results[code] = Airport(code=code, name=name, lat=lat, lon=lon, icao=icao)

        ranked = sorted(results.values(), key=lambda a: 0 if upper in (a.code, a.icao) else 1)
        return ranked[:limit]


def _row_to_airport(row, code: str) -> Optional[Airport]:
    try:
        lat = float(row["latitude_deg"])
        lon = float(row["longitude_deg"])
    except (KeyError, TypeError, ValueError):
        return None
    return Airport(
        code=code,
        name=row.get("name") or None,
        lat=lat,
        lon=lon,
        icao=row.get("icao_code") or row.get("ident") or None,
        city=row.get("municipality") or None,
        country=row.get("iso_country") or None,
    )
