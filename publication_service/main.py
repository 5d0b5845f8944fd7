"""FastAPI application entrypoint."""
from contextlib import asynccontextmanager

from fastapi import FastAPI

from publication_service import __version__
from publication_service.config import get_settings
from publication_service.db import async_session_factory
from publication_service.error_handlers import register_exception_handlers
from publication_service.infrastructure.publish_queue import PublishQueue
from publication_service.logging_config import configure_logging, get_logger
from publication_service.middleware.correlation_id import CorrelationIdMiddleware
from publication_service.middleware.rate_limit import RateLimitMiddleware
from publication_service.platforms import build_platform_clients
from publication_service.retry_policy import RetryPolicy
from publication_service.routers import (
    health_router,
    posts_router,
    scheduled_posts_router,
    scheduler_router,
)
from publication_service.services import PublishWorker

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown: logging, publish queue, publish worker."""
    configure_logging()
    settings = get_settings()
    app.state.publish_queue = PublishQueue(settings.redis_url)
    app.state.publish_worker = PublishWorker(
        session_factory=async_session_factory,
        clients=build_platform_clients(settings),
        policy=RetryPolicy.from_settings(settings),
        settings=settings,
        queue=app.state.publish_queue,
    )
    logger.info("app_started", version=__version__, scheduler_enabled=settings.scheduler_enabled)
    await app.state.publish_worker.start()
    yield
    await app.state.publish_worker.stop()
    logger.info("app_shutdown")


app = FastAPI(
    title="Publication Service",
    version=__version__,
    lifespan=lifespan,
)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(CorrelationIdMiddleware)
register_exception_handlers(app)

app.include_router(health_router)
app.include_router(posts_router)
app.include_router(scheduled_posts_router)
app.include_router(scheduler_router)


@app.get("/")
def root() -> dict[str, str]:
    """Root endpoint: app name and version."""
    return {"name": "publication_service", "version": __version__}
