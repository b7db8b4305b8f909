"""
Main FastAPI application entry point
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from halal_tools.api.routes import (auth, contracts, evaluate, health,
                                    metal_rates, metrics)
from halal_tools.core.config import get_settings
from halal_tools.core.errors import HalalToolsError, StorageError
from halal_tools.core.logging_config import LoggingConfig
from halal_tools.core.middleware import LoggingContextMiddleware
from halal_tools.core.middleware_metrics import MetricsMiddleware
from halal_tools.services.background_jobs import (start_background_tasks,
                                                  stop_background_tasks)

# Configure logging first
LoggingConfig.configure()

logger = LoggingConfig.get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for FastAPI app"""
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} in {settings.app_env} mode...")

    if settings.enable_background_tasks:
        await start_background_tasks(settings)

    yield

    logger.info(f"Shutting down {settings.app_name}...")
    await stop_background_tasks()


_settings = get_settings()
app = FastAPI(
    title=_settings.app_name,
    description="Contract generation, Shariah screening and precious metal rates",
    version=VERSION,
    lifespan=lifespan,
)

# Add logging context middleware (before CORS to capture all requests)
app.add_middleware(LoggingContextMiddleware)
app.add_middleware(MetricsMiddleware)

_origins = _settings.allowed_origins_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials="*" not in _origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HalalToolsError)
async def halal_tools_error_handler(request: Request, exc: HalalToolsError):
    """Render domain errors with their status code and public message"""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        f"{type(exc).__name__}: {exc.message}",
        extra={
            "error_type": type(exc).__name__,
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
            **exc.metadata,
        },
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(
        "Database error",
        exc_info=exc,
        extra={"error_type": type(exc).__name__, "path": request.url.path, "method": request.method},
    )
    error = StorageError(str(exc))
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler to log all unhandled errors"""
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={
            "error": str(exc),
            "error_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": "internal_error"},
    )


# Include routers
app.include_router(health.router)
app.include_router(metrics.router)
app.include_router(auth.router)
app.include_router(contracts.router)
app.include_router(evaluate.router)
app.include_router(metal_rates.router)


@app.get("/api")
async def root():
    """Root API endpoint"""
    settings = get_settings()
    return {
        "name": settings.app_name,
        "version": VERSION,
        "status": "running",
        "environment": settings.app_env,
    }


def run():
    """Console entry point"""
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "halal_tools.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.app_env == "development",
    )


if __name__ == "__main__":
    run()
