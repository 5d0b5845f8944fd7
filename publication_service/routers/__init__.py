"""API routers."""
from publication_service.routers.health_router import router as health_router
from publication_service.routers.posts_router import router as posts_router
from publication_service.routers.scheduled_posts_router import router as scheduled_posts_router
from publication_service.routers.scheduler_router import router as scheduler_router

__all__ = [
    "health_router",
    "posts_router",
    "scheduled_posts_router",
    "scheduler_router",
]
