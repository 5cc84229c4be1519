"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from portfolio_analytics.core.config import settings
from portfolio_analytics.core.exceptions import AnalyticsError
from portfolio_analytics.core.telemetry import configure_telemetry, instrument_app
from portfolio_analytics.api.errors import analytics_error_handler, unhandled_exception_handler
from portfolio_analytics.api.routes import backtest, metrics, monte_carlo, trades
from portfolio_analytics.db.session import check_database_async

SERVICE_NAME = "Portfolio Analytics API"
SERVICE_VERSION = "0.1.0"

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

if settings.otel_enabled:
    configure_telemetry()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for startup and shutdown events."""
    logger.info(f"Starting {SERVICE_NAME}...")
    logger.info(f"Environment: {settings.environment}")
    yield
    logger.info(f"Shutting down {SERVICE_NAME}...")


app = FastAPI(
    title=SERVICE_NAME,
    description="Portfolio risk metrics, Monte Carlo projections and strategy backtests",
    version=SERVICE_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AnalyticsError, analytics_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(metrics.router)
app.include_router(monte_carlo.router)
app.include_router(backtest.router)
app.include_router(trades.router)

if settings.otel_enabled:
    instrument_app(app)


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic service info."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Verifies database connectivity (executes SELECT 1). Returns 200 when the
    database answers, 503 otherwise.
    """
    health_status = {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "checks": {}
    }

    try:
        await check_database_async()
        health_status["checks"]["database"] = {
            "status": "healthy",
            "message": "Connected"
        }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = {
            "status": "unhealthy",
            "message": "Connection failed"
        }

    status_code = status.HTTP_200_OK if health_status["status"] == "healthy" else status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(content=health_status, status_code=status_code)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "portfolio_analytics.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower()
    )
