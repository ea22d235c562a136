from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from driftwatch.core.config import settings
from driftwatch.core.logging import setup_logging
from driftwatch.drift import MonitorRegistry, RedisSessionStorage, get_monitor_registry
from driftwatch.routers import drift


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown events"""
    setup_logging()
    logger.info("Starting Driftwatch API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Session storage: {settings.STORAGE_BACKEND}")

    yield

    logger.info("Shutting down Driftwatch API")


app = FastAPI(
    title=settings.APP_NAME,
    description="Behavioral drift signals and overload intervention",
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(drift.router, prefix="/api/drift", tags=["drift"])


@app.get("/")
async def root():
    return JSONResponse(
        content={
            "message": "Driftwatch API",
            "version": settings.APP_VERSION,
            "docs": "/docs",
        }
    )


@app.get("/health")
def health_check(registry: MonitorRegistry = Depends(get_monitor_registry)):
    """
    Health check endpoint with session storage verification
    """
    health_status = {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": settings.APP_VERSION,
        "active_sessions": len(registry),
        "services": {}
    }

    storage = registry.storage
    if isinstance(storage, RedisSessionStorage):
        try:
            storage.client.ping()
            health_status["services"]["redis"] = "healthy"
        except Exception as e:
            logger.error(f"Redis health check failed: {e}")
            health_status["status"] = "degraded"
            health_status["services"]["redis"] = "unhealthy"
    else:
        health_status["services"]["storage"] = "memory"

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JSONResponse(content=health_status, status_code=status_code)
