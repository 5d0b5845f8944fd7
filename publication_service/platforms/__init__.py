"""Publishing clients for external platforms."""
from publication_service.platforms.base import PlatformClient, build_platform_clients
from publication_service.platforms.linkedin_client import LinkedInClient
from publication_service.platforms.x_client import XClient, split_into_thread

__all__ = [
    "PlatformClient",
    "build_platform_clients",
    "LinkedInClient",
    "XClient",
    "split_into_thread",
]
