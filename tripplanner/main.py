import logging
import re
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from tripplanner.api import trips
from tripplanner.api.schemas import HealthResponse
from tripplanner.core.errors import InvalidInput, MalformedPlan, PlanningError
from tripplanner.core.planning.cache import InMemoryGeocodeCache
from tripplanner.core.planning.enricher import ItineraryEnricher
from tripplanner.core.planning.generator import GeminiPlanGenerator
from tripplanner.core.planning.geocoding import GeocodingClient
from tripplanner.core.planning.orchestrator import TripPlanner
from tripplanner.core.planning.prompt import PromptBuilder
from tripplanner.core.settings import Settings, get_settings
from tripplanner.core.trip_store import InMemoryTripStore
from tripplanner.middleware.logging import RequestLoggingMiddleware

VERSION = "1.0.0"

_KEY_PARAM_RE = re.compile(r'([?&]key=)[^&\s]+')
_GOOGLE_KEY_RE = re.compile(r'AIza[0-9A-Za-z\-_]{35}')


# Redaction processor to scrub API keys from any string values in the event dict
def redact_api_keys(logger, method_name, event_dict):
    def scrub(v):
        if isinstance(v, str):
            # redact Google/other API keys in query params
            v = _KEY_PARAM_RE.sub(r'\1REDACTED', v)
            # Gemini keys share the Google "AIza" prefix
            v = _GOOGLE_KEY_RE.sub('REDACTED', v)
            return v
        if isinstance(v, list):
            return [scrub(x) for x in v]
        if isinstance(v, tuple):
            return tuple(scrub(x) for x in v)
        if isinstance(v, dict):
            return {k: scrub(vv) for k, vv in v.items()}
        return v

    for k, v in list(event_dict.items()):
        event_dict[k] = scrub(v)
    return event_dict


def configure_logging(settings: Settings) -> None:
    # Configure structured logging with JSON output
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_api_keys,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Standard library logging is the sink: console, plus a file when configured
    handlers = [logging.StreamHandler()]
    if settings.LOG_FILE:
        handlers.append(logging.FileHandler(settings.LOG_FILE))
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(message)s',  # structlog handles formatting
        handlers=handlers,
    )


settings = get_settings()
configure_logging(settings)

logger = structlog.get_logger(__name__)


def build_trip_planner(settings: Settings) -> TripPlanner:
    """Wire the planning pipeline from settings. Raises ConfigError on a bad template."""
    prompt_builder = PromptBuilder.from_file(settings.PROMPT_TEMPLATE_PATH, destination=settings.DESTINATION_AREA)
    enricher = ItineraryEnricher(
        client=GeocodingClient.from_settings(settings),
        cache=InMemoryGeocodeCache(ttl_seconds=settings.GEOCODE_CACHE_TTL_SECONDS),
        min_delay_seconds=settings.GEOCODE_MIN_DELAY_SECONDS,
    )
    return TripPlanner(
        prompt_builder=prompt_builder,
        generator=GeminiPlanGenerator.from_settings(settings),
        enricher=enricher,
        destination=settings.DESTINATION_AREA,
        max_days=settings.MAX_ITINERARY_DAYS,
        excerpt_length=settings.RAW_EXCERPT_LENGTH,
        timeout=settings.PLAN_TIMEOUT_SECONDS or None,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting application...")
    try:
        app.state.planner = build_trip_planner(settings)
    except Exception:
        logger.exception("Failed to initialize trip planner")
        raise
    app.state.trip_store = InMemoryTripStore()
    logger.info(
        "trip_planner_ready",
        generation_enabled=app.state.planner.generation_enabled,
        destination=settings.DESTINATION_AREA,
    )

    yield

    # Shutdown
    logger.info("Shutting down application...")


app = FastAPI(
    title="Trip Planner API",
    description="AI-generated, geocoded trip itineraries",
    version=VERSION,
    lifespan=lifespan
)

# Add rate limiter to app state
app.state.limiter = trips.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add request logging middleware
app.add_middleware(RequestLoggingMiddleware)

# Enable CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PlanningError)
async def planning_exception_handler(request: Request, exc: PlanningError):
    log = logger.warning if isinstance(exc, InvalidInput) else logger.error
    log(
        "planning_failed",
        kind=exc.kind,
        error=exc.message,
        raw_text=exc.raw_text if isinstance(exc, MalformedPlan) else None,
        path=request.url.path,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "")})
    invalid = InvalidInput(
        "Missing or invalid trip parameters. Please ensure all fields are provided.",
        errors=errors,
    )
    logger.warning("request_validation_failed", path=request.url.path, errors=errors)
    return JSONResponse(status_code=invalid.status_code, content=invalid.to_dict())


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "message": "An unexpected error occurred while processing the request."}
    )


# Health check endpoint
@app.get("/")
def health_check():
    return {"status": "API active", "version": VERSION}


@app.get("/health", response_model=HealthResponse)
async def health_check_detailed(request: Request):
    """Detailed health check endpoint"""
    planner = getattr(request.app.state, "planner", None)
    generation = "configured" if planner is not None and planner.generation_enabled else "disabled"
    template = "loaded" if planner is not None else "missing"
    return {
        "status": "healthy" if generation == "configured" else "degraded",
        "version": VERSION,
        "components": {
            "generation": generation,
            "prompt_template": template,
            "api": "healthy",
        },
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


app.include_router(trips.router)
