"""Platform client base: shared httpx request handling and error classification."""
from typing import Any, Dict, Optional

import httpx

from publication_service.config import Settings, get_settings
from publication_service.enums import Platform
from publication_service.exceptions import PublishError
from publication_service.logging_config import get_logger

logger = get_logger(__name__)


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except Exception:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(body, dict):
        for key in ("message", "detail", "title", "error_description", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return resp.text or f"HTTP {resp.status_code}"


def classify_status(status_code: int) -> str:
    if status_code in (401, 403):
        return "auth"
    if status_code == 429:
        return "rate_limit"
    return "api"


class PlatformClient:
    """
    Base for per-platform publishers. Subclasses implement `publish` and use
    `_request`, which turns every transport or HTTP failure into PublishError.
    """

    platform: Platform

    def __init__(
        self,
        access_token: Optional[str],
        api_base: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.access_token = access_token
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_base,
            timeout=self.timeout,
            transport=self.transport,
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "Content-Type": "application/json",
            },
        )

    async def _request(
        self,
        client: httpx.AsyncClient,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            resp = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise PublishError(f"{self.platform.value} timeout: {e}", kind="network") from e
        except httpx.RequestError as e:
            raise PublishError(f"{self.platform.value} network error: {e}", kind="network") from e
        if resp.status_code >= 400:
            kind = classify_status(resp.status_code)
            message = f"{self.platform.value} API error {resp.status_code}: {_error_message(resp)}"
            logger.warning("platform.http_error", platform=self.platform.value, status_code=resp.status_code, kind=kind)
            raise PublishError(message, kind=kind, status_code=resp.status_code)
        return resp

    def _require_token(self) -> None:
        if not self.access_token:
            raise PublishError(f"{self.platform.value} access token not configured", kind="config")

    async def publish(self, content: str, options: Optional[Dict[str, Any]] = None) -> str:
        """Publish `content`; return the platform's id for the new post."""
        raise NotImplementedError


def build_platform_clients(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[Platform, PlatformClient]:
    """One client per supported platform, configured from settings."""
    from publication_service.platforms.linkedin_client import LinkedInClient
    from publication_service.platforms.x_client import XClient

    settings = settings or get_settings()
    return {
        Platform.LINKEDIN: LinkedInClient(
            access_token=settings.linkedin_access_token,
            api_base=settings.linkedin_api_base,
            timeout=settings.platform_http_timeout_seconds,
            transport=transport,
        ),
        Platform.X: XClient(
            access_token=settings.x_access_token,
            api_base=settings.x_api_base,
            timeout=settings.platform_http_timeout_seconds,
            transport=transport,
            thread_delay_seconds=settings.x_thread_delay_seconds,
        ),
    }
