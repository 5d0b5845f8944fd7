"""LinkedIn publishing via the UGC Posts API."""
from typing import Any, Dict, Optional

from publication_service.enums import Platform
from publication_service.exceptions import PublishError
from publication_service.logging_config import get_logger
from publication_service.platforms.base import PlatformClient

logger = get_logger(__name__)

RESTLI_HEADERS = {"X-Restli-Protocol-Version": "2.0.0"}


class LinkedInClient(PlatformClient):
    """Posts text shares as the authenticated member."""

    platform = Platform.LINKEDIN

    async def publish(self, content: str, options: Optional[Dict[str, Any]] = None) -> str:
        self._require_token()
        visibility = (options or {}).get("visibility") or "PUBLIC"
        async with self._client() as client:
            # Member id comes from the OpenID userinfo endpoint ("sub").
            me = await self._request(client, "GET", "/v2/userinfo")
            member_id = me.json().get("sub")
            if not member_id:
                raise PublishError("linkedin userinfo response has no member id", kind="api")

            payload = {
                "author": f"urn:li:person:{member_id}",
                "lifecycleState": "PUBLISHED",
                "specificContent": {
                    "com.linkedin.ugc.ShareContent": {
                        "shareCommentary": {"text": content},
                        "shareMediaCategory": "NONE",
                    }
                },
                "visibility": {"com.linkedin.ugc.MemberNetworkVisibility": visibility},
            }
            resp = await self._request(client, "POST", "/v2/ugcPosts", json=payload, headers=RESTLI_HEADERS)

        external_id = resp.headers.get("x-restli-id")
        if not external_id:
            try:
                external_id = resp.json().get("id")
            except Exception:
                external_id = None
        if not external_id:
            raise PublishError("linkedin response has no post id", kind="api", status_code=resp.status_code)
        logger.info("linkedin.published", external_post_id=external_id)
        return external_id
