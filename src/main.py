"""FastAPI application entry point for the APME visit rating service."""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.middleware.error_handler import global_exception_handler, rating_error_handler
from src.api.middleware.logging import StructuredLoggingMiddleware
from src.api.routes.churches import router as churches_router
from src.api.routes.health import router as health_router
from src.api.routes.ratings import router as ratings_router
from src.api.routes.visits import router as visits_router
from src.config import settings
from src.domains.ratings.aggregator import ChurchRatingAggregator
from src.domains.ratings.config import RatingEngineConfig
from src.domains.ratings.errors import RatingError
from src.domains.ratings.scheduler import RecalculationScheduler
from src.domains.ratings.scoring import VisitRatingScorer
from src.domains.ratings.service import VisitRatingService
from src.domains.ratings.storage import RatingStore
from src.domains.ratings.validation import RatingValidator
from src.shared.logging import setup_logging

logger = structlog.get_logger()

# Track app start time for uptime calculation
APP_START_TIME: float = 0.0


def build_rating_service(
    store: RatingStore, config: RatingEngineConfig | None = None
) -> VisitRatingService:
    """Wire the rating engine components around one storage backend."""
    config = config or RatingEngineConfig.from_env()
    aggregator = ChurchRatingAggregator(store, config)
    scheduler = RecalculationScheduler(aggregator, store, config)
    return VisitRatingService(
        store,
        aggregator,
        scheduler,
        scorer=VisitRatingScorer(config),
        validator=RatingValidator(config),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown logic."""
    global APP_START_TIME
    APP_START_TIME = time.time()
    setup_logging(settings.log_level)

    logger.info(
        "apme_ratings_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
    )

    from src.db.database import async_session_factory, init_db
    from src.db.repositories import SqlRatingStore

    if settings.auto_create_tables:
        await init_db()

    service = build_rating_service(SqlRatingStore(async_session_factory))
    app.state.rating_service = service

    yield

    await service.scheduler.aclose()
    logger.info("apme_ratings_shutting_down")


app = FastAPI(
    title="APME Visit Ratings",
    description="Church visit rating and star rating aggregation service",
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Structured logging middleware
app.add_middleware(StructuredLoggingMiddleware)

app.add_exception_handler(RatingError, rating_error_handler)
app.add_exception_handler(Exception, global_exception_handler)

# Register routers
app.include_router(health_router)
app.include_router(visits_router)
app.include_router(churches_router)
app.include_router(ratings_router)


def get_uptime() -> int:
    """Get application uptime in seconds."""
    if APP_START_TIME == 0.0:
        return 0
    return int(time.time() - APP_START_TIME)


def run() -> None:
    """Serve the application with uvicorn using the configured host and port."""
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
