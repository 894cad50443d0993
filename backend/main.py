import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from config import Settings, load_settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

settings = load_settings()

logger.info("🔧 Environment Check:")
logger.info(f"   OPENWEATHER_API_KEY: {'✅' if settings.openweather_api_key else '❌ MISSING'}")
logger.info(f"   GEMINI_API_KEY: {'✅' if settings.gemini_api_key else '❌ MISSING (AI summaries disabled)'}")
if not settings.openweather_api_key:
    logger.warning("Without OPENWEATHER_API_KEY every weather sample fails and severities will be Unknown")

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from models.advisory import AdvisoryRecord
from models.airport import Airport
from models.response import RouteSummary, RouteTurbulenceResponse
from models.route import RouteRequest
from services.advisories import AdvisoryFeed
from services.airports import AirportDataService, AirportNotFoundError
from services.route import TurbulenceRouteService
from services.summary import NarrativeGenerator
from services.weather import WeatherProvider


def build_route_service(settings: Settings) -> TurbulenceRouteService:
    return TurbulenceRouteService(
        airports=AirportDataService(settings.airports_csv, settings.airports_download_url),
        weather_provider=WeatherProvider(settings.openweather_api_key),
        advisory_feed=AdvisoryFeed(settings.advisory_feed_urls),
        narrator=NarrativeGenerator(settings.gemini_api_key, settings.gemini_model),
        waypoint_count=settings.waypoint_count,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.route_service = build_route_service(settings)
    yield


app = FastAPI(
    title="Route Turbulence Forecast",
    description="Phase-aware turbulence forecasts for great-circle routes from weather samples and G-AIRMET advisories",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "HEAD", "OPTIONS"],
    allow_headers=["*"],
)


def get_route_service(request: Request) -> TurbulenceRouteService:
    return request.app.state.route_service


@app.get("/")
@app.head("/")
def health():
    """Health check endpoint"""
    return {
        "status": "ok",
        "service": "Route Turbulence Forecast",
        "version": "1.0.0",
        "openweather_configured": bool(settings.openweather_api_key),
        "gemini_configured": bool(settings.gemini_api_key),
    }


@app.get("/health")
def detailed_health():
    """Detailed health check for monitoring"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "openweather": "configured" if settings.openweather_api_key else "missing",
            "gemini": "configured" if settings.gemini_api_key else "missing",
            "gairmet_endpoints": len(settings.advisory_feed_urls),
        },
    }


@app.post("/turbulence/predict", response_model=RouteTurbulenceResponse)
def predict_turbulence(req: RouteRequest, service: TurbulenceRouteService = Depends(get_route_service)):
    logger.info(f"🛫 Turbulence request: {req.departure} → {req.arrival} ({req.date or 'today'})")
    try:
        return service.generate_route(req.departure, req.arrival)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AirportNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.get("/routes/popular", response_model=List[RouteSummary])
def popular_routes(limit: int = Query(10, ge=1, le=10), service: TurbulenceRouteService = Depends(get_route_service)):
    return service.popular_routes(limit)


@app.get("/routes/search", response_model=List[RouteSummary])
def search_routes(q: str = "", limit: int = Query(10, ge=1, le=20), service: TurbulenceRouteService = Depends(get_route_service)):
    if len(q.strip()) < 2:
        return []
    return service.search_routes(q, limit)


@app.get("/routes/{route_id}", response_model=RouteTurbulenceResponse)
def route_by_id(route_id: str, service: TurbulenceRouteService = Depends(get_route_service)):
    try:
        return service.get_route_by_id(route_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AirportNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.get("/airport-info")
def airport_info(codes: Optional[str] = None, service: TurbulenceRouteService = Depends(get_route_service)):
    """Return basic info for IATA/ICAO codes.

    Returns objects: {code, icao, name, latitude_deg, longitude_deg}; name is None for unknown codes.
    """
    if not codes:
        return []
    results = []
    for raw in codes.replace(",", " ").split():
        info = service.airports.resolve(raw)
        if info:
            results.append({
                "code": info.code,
                "icao": info.icao,
                "name": info.name,
                "latitude_deg": info.lat,
                "longitude_deg": info.lon,
            })
        else:
            results.append({"code": raw.upper(), "icao": None, "name": None})
    return results


@app.get("/airports/search", response_model=List[Airport])
def search_airports(q: str = "", limit: int = Query(10, ge=1, le=50), service: TurbulenceRouteService = Depends(get_route_service)):
    """Airports matching a code, name or city; at least 2 characters."""
    if len(q.strip()) < 2:
        raise HTTPException(status_code=400, detail="Search query must be at least 2 characters")
    return service.airports.search(q, limit)


@app.get("/airports/{code}/routes", response_model=List[RouteSummary])
def routes_by_airport(code: str, limit: int = Query(10, ge=1, le=20), service: TurbulenceRouteService = Depends(get_route_service)):
    airport = service.airports.resolve(code)
    if airport is None:
        raise HTTPException(status_code=404, detail=f"Airport not found: {code.upper()}")
    return service.search_routes(airport.code, limit)


@app.get("/gairmets", response_model=List[AdvisoryRecord])
def gairmets(service: TurbulenceRouteService = Depends(get_route_service)):
    """All current G-AIRMETs, empty when every endpoint is down."""
    return service.current_advisories()
