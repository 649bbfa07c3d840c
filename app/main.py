from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from app.core.error_handlers import setup_exception_handlers
from app.core.database import db_manager
from app.core.middleware import setup_middleware
from app.core.clock import system_clock
from app.core.logging_utils import (
    setup_logging,
    get_logger,
    log_business_event,
)
from app.core.config import (
    validate_config,
    APP_NAME,
    APP_VERSION,
    CORS_ORIGINS,
    DEBUG,
    LOG_LEVEL,
    LOG_FORMAT,
)
from app.clubs.services.notification_service import EmailNotifier

from app.clubs.routers import clubs
from app.clubs.routers import units
from app.clubs.routers import memberships
from app.clubs.routers import regionals
from app.clubs.routers import exams

# Logging
setup_logging(LOG_LEVEL, LOG_FORMAT)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate config and prepare the database on startup, release it on shutdown"""

    # Startup
    logger.info(f"Starting {APP_NAME} v{APP_VERSION}")

    try:
        validate_config()
        logger.info("Configuration validated")

        await db_manager.check_connection()
        logger.info("Database connection established")

        await db_manager.create_tables()
        logger.info("Database initialized")

        log_business_event(
            "application_started",
            "system",
            0,
            details={
                "version": APP_VERSION,
                "environment": "development" if DEBUG else "production",
            },
        )

        logger.info("Application startup completed")

    except Exception as e:
        logger.error(f"Application startup failed: {str(e)}")
        raise

    yield

    # Shutdown
    logger.info("Shutting down application...")
    await db_manager.close_connections()
    logger.info("Application shutdown completed")


app = FastAPI(
    title=APP_NAME,
    description="Clubs, units, memberships and exams of Pathfinder clubs",
    version=APP_VERSION,
    lifespan=lifespan,
    debug=DEBUG,
)

# membership notifications and age checks; tests swap these on app.state
app.state.notifier = EmailNotifier()
app.state.clock = system_clock

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)

setup_middleware(
    app,
    {
        "slow_request_threshold": 5.0,
        "exclude_paths": [
            "/health",
            "/docs",
            "/openapi.json",
            "/redoc",
            "/favicon.ico",
        ],
    },
)

# Include routers with API version prefix
app.include_router(clubs.router, prefix="/api/v1")
app.include_router(units.router, prefix="/api/v1")
app.include_router(memberships.router, prefix="/api/v1")
app.include_router(regionals.router, prefix="/api/v1")
app.include_router(exams.router, prefix="/api/v1")


@app.get("/health", tags=["System"])
async def health_check():
    return {"status": "ok", "version": APP_VERSION}
