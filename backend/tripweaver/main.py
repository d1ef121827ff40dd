import logging
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tripweaver import __version__
from tripweaver.config import Settings, settings

# ─── Logging setup (file + console) ───
_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_LOG_DIR.mkdir(exist_ok=True)

_log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

logging.basicConfig(
    level=_log_level,
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[
        logging.StreamHandler(),
        RotatingFileHandler(
            _LOG_DIR / "tripweaver.log",
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        ),
    ],
)

# Quiet noisy libraries
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

from tripweaver.routers import cache, flights, hotels, itinerary, weather  # noqa: E402
from tripweaver.services.cache_service import CacheService  # noqa: E402
from tripweaver.services.flights_service import FlightsService  # noqa: E402
from tripweaver.services.hotels_service import HotelsService  # noqa: E402
from tripweaver.services.itinerary_orchestrator import ItineraryOrchestrator  # noqa: E402
from tripweaver.services.llm_client import LLMClient  # noqa: E402
from tripweaver.services.weather_service import WeatherService  # noqa: E402
from tripweaver.telemetry import Telemetry  # noqa: E402

logger = logging.getLogger(__name__)


def build_services(app: FastAPI, config: Settings) -> None:
    """Wire every service onto ``app.state`` with one shared cache and telemetry root."""
    telemetry = Telemetry(logging.getLogger("tripweaver"))
    app.state.cache = CacheService(
        config.redis_url,
        default_ttl=config.cache_default_ttl,
        telemetry=telemetry.child("cache"),
    )
    app.state.flights = FlightsService(app.state.cache, config, telemetry=telemetry.child("flights"))
    app.state.hotels = HotelsService(app.state.cache, config, telemetry=telemetry.child("hotels"))
    app.state.weather = WeatherService(app.state.cache, config, telemetry=telemetry.child("weather"))
    app.state.llm = LLMClient(config, telemetry=telemetry.child("llm"))
    app.state.orchestrator = ItineraryOrchestrator(
        app.state.cache,
        app.state.llm,
        config,
        flights=app.state.flights,
        hotels=app.state.hotels,
        weather=app.state.weather,
        telemetry=telemetry.child("itinerary"),
    )


async def close_services(app: FastAPI) -> None:
    for name in ("flights", "hotels", "weather", "llm", "cache"):
        service = getattr(app.state, name, None)
        if service is None:
            continue
        try:
            await service.close()
        except Exception as e:
            logger.warning(f"Closing {name} failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    build_services(app, settings)
    if await app.state.cache.ping():
        logger.info("Redis cache connected")
    else:
        logger.warning("Redis unavailable, requests will bypass the cache")
    if not app.state.llm.available:
        logger.warning("No LLM provider configured, itineraries will use the templated fallback")

    yield

    # Shutdown
    await close_services(app)
    logger.info("Services closed")


def create_app(with_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="Tripweaver",
        description="Travel data aggregation and AI itinerary planning",
        version=__version__,
        lifespan=lifespan if with_lifespan else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(flights.router, prefix="/api/flights", tags=["flights"])
    app.include_router(hotels.router, prefix="/api/hotels", tags=["hotels"])
    app.include_router(weather.router, prefix="/api/weather", tags=["weather"])
    app.include_router(itinerary.router, prefix="/api/ai-planner", tags=["ai-planner"])
    app.include_router(cache.router, prefix="/api/cache", tags=["cache"])

    @app.get("/api/health")
    async def health_check():
        cache_service = getattr(app.state, "cache", None)
        llm = getattr(app.state, "llm", None)
        return {
            "status": "ok",
            "service": "tripweaver",
            "version": __version__,
            "cache": bool(cache_service and await cache_service.ping()),
            "llm": bool(llm and llm.available),
        }

    return app


app = create_app()
