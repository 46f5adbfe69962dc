"""
Solar Orders service
Orders, bundle-aware inventory and duplicate order merging
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import subprocess
import os

from solar_orders.core import ServiceHealth, setup_logging, RequestLoggingMiddleware, get_logger
from solar_orders.core_settings import get_settings
from solar_orders.domain.errors import OrderProcessingError
from solar_orders.infrastructure.db import engine, init_models
from solar_orders.api.orders import router as orders_router
from solar_orders.api.products import router as products_router
from solar_orders.api.warehouses import router as warehouses_router
from solar_orders.api.inventory import router as inventory_router

settings = get_settings()

SERVICE_NAME = settings.SERVICE_NAME
SERVICE_VERSION = settings.SERVICE_VERSION
SERVICE_DESCRIPTION = "Orders, bundle-aware inventory and order merging"

setup_logging(
    service_name=SERVICE_NAME,
    level=settings.LOG_LEVEL,
    version=SERVICE_VERSION,
    environment=settings.ENVIRONMENT,
)

logger = get_logger(__name__)

def _run_migrations():
    logger.info("Running database migrations")
    result = subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=os.path.join(os.path.dirname(__file__), ".."),
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

    if settings.RUN_MIGRATIONS:
        try:
            _run_migrations()
        except OSError as e:
            logger.error(f"Migration error: {e}")

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

@app.exception_handler(OrderProcessingError)
async def order_processing_error_handler(request: Request, exc: OrderProcessingError):
    logger.warning(
        f"{type(exc).__name__}: {exc.message}",
        extra={'extra_fields': {
            'path': request.url.path,
            'status_code': exc.status_code,
            'details': exc.details,
        }}
    )
    content = {"error": exc.message}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)

health_service = ServiceHealth(SERVICE_NAME, engine, SERVICE_VERSION)
app.include_router(health_service.create_health_router())

app.include_router(products_router)
app.include_router(warehouses_router)
app.include_router(inventory_router)
app.include_router(orders_router)

@app.get("/")
async def root():
    """Root endpoint"""
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
            "docs": "/api/docs"
        }
    }
