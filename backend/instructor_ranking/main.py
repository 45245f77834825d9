# backend/instructor_ranking/main.py
"""
FastAPI application for the instructor ranking engine.

Run with:
    uvicorn instructor_ranking.main:app --reload
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
from typing import Any, AsyncGenerator, Dict

from fastapi import APIRouter, FastAPI, Response

from . import __version__
from .core.config import settings
from .database import Base, engine
from .errors import register_error_handlers
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes.v1 import instructor_stats as instructor_stats_v1
from .routes.v1 import rankings as rankings_v1
from .routes.v1 import reviews as reviews_v1

# Configure logging
logging.basicConfig(
    level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info(f"{settings.app_name} starting up...")
    logger.info(f"Environment: {settings.environment}")

    # Registers every table on Base.metadata
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    yield
    logger.info(f"{settings.app_name} shutting down...")


app = FastAPI(
    title=settings.app_name,
    description="Instructor performance aggregation, tiers, badges and rankings",
    version=__version__,
    lifespan=app_lifespan,
)
register_error_handlers(app)

# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(instructor_stats_v1.router, prefix="/instructors")
api_v1.include_router(rankings_v1.router, prefix="/rankings")
api_v1.include_router(reviews_v1.router, prefix="/reviews")
app.include_router(api_v1)


@app.get("/health", tags=["health"])
def health() -> Dict[str, Any]:
    return {
        "status": "healthy",
        "service": "instructor-ranking",
        "version": __version__,
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }


@app.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    """Prometheus exposition of the service metrics."""
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
