"""
Textile Inventory Service
Thread purchases, dyeing, fabric production, the inventory ledger and sales
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import subprocess
import os

from textile_inventory.core import ServiceHealth, setup_logging, RequestLoggingMiddleware, get_logger
from textile_inventory.core_settings import get_settings
from textile_inventory.api.dashboard_routes import router as dashboard_router
from textile_inventory.api.errors import register_exception_handlers
from textile_inventory.api.inventory_routes import router as inventory_router
from textile_inventory.api.party_routes import router as party_router
from textile_inventory.api.production_routes import router as production_router
from textile_inventory.api.sales_routes import router as sales_router
from textile_inventory.infrastructure.db import get_engine, init_models

settings = get_settings()

SERVICE_NAME = settings.SERVICE_NAME
SERVICE_VERSION = settings.SERVICE_VERSION
SERVICE_DESCRIPTION = "Textile inventory and sales service"

ALEMBIC_INI = os.path.join(os.path.dirname(__file__), "alembic.ini")

# Setup structured logging
setup_logging(
    service_name=SERVICE_NAME,
    level=settings.LOG_LEVEL,
    environment=settings.ENVIRONMENT,
    version=SERVICE_VERSION,
)

logger = get_logger(__name__)


def run_migrations():
    logger.info("Running database migrations")
    result = subprocess.run(
        ["alembic", "-c", ALEMBIC_INI, "upgrade", "head"],
        capture_output=True,
        text=True,
        check=False
    )
    if result.returncode != 0:
        logger.warning(f"Migration output: {result.stderr}")
    else:
        logger.info("Database migrations completed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management"""
    logger.info(f"Starting {SERVICE_NAME} version {SERVICE_VERSION}")

    if settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            run_migrations()
        except OSError as e:
            logger.error(f"Migration error: {e}")

    # Tables the migrations did not create (e.g. SQLite during development)
    try:
        init_models()
        logger.info("Database models initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database models: {e}")
        raise

    logger.info(f"{SERVICE_NAME} started successfully")

    yield

    logger.info(f"Shutting down {SERVICE_NAME}")


app = FastAPI(
    title=SERVICE_NAME,
    description=SERVICE_DESCRIPTION,
    version=SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

health_service = ServiceHealth(SERVICE_NAME, SERVICE_VERSION, get_engine, settings.ENVIRONMENT)
app.include_router(health_service.create_health_router())

app.include_router(party_router)
app.include_router(production_router)
app.include_router(inventory_router)
app.include_router(sales_router)
app.include_router(dashboard_router)


@app.get("/")
async def root():
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "status": "running",
        "docs": "/api/docs"
    }


@app.get("/info")
async def info():
    """Service information endpoint"""
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "description": SERVICE_DESCRIPTION,
        "environment": settings.ENVIRONMENT,
        "endpoints": {
            "health": "/health",
            "ready": "/health/ready",
            "live": "/health/live",
            "metrics": "/metrics",
            "docs": "/api/docs",
            "inventory": "/api/inventory",
            "sync_tasks": "/api/inventory/sync-tasks",
            "dashboard": "/api/dashboard/summary"
        }
    }
