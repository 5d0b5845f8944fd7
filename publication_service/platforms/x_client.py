"""X (Twitter) publishing via API v2; long content becomes a numbered thread."""
import asyncio
from typing import Any, Dict, List, Optional

import httpx

from publication_service.enums import Platform
from publication_service.exceptions import PartialPublishError, PublishError
from publication_service.logging_config import get_logger
from publication_service.platforms.base import PlatformClient

logger = get_logger(__name__)

DEFAULT_MAX_TWEET_LENGTH = 280
# Room left in each chunk for the "n/m: " prefix.
THREAD_NUMBERING_RESERVE = 10


def split_into_thread(content: str, max_length: int = DEFAULT_MAX_TWEET_LENGTH) -> List[str]:
    """
    Split content on spaces into tweets of at most max_length characters.
    Content that already fits is returned as a single unnumbered tweet.
    """
    if len(content) <= max_length:
        return [content]

    budget = max_length - THREAD_NUMBERING_RESERVE
    chunks: List[str] = []
    current = ""
    for word in content.split(" "):
        candidate = f"{current} {word}" if current else word
        if len(candidate) <= budget:
            current = candidate
            continue
        if current:
            chunks.append(current)
        # A single word longer than the budget is hard-wrapped.
        while len(word) > budget:
            chunks.append(word[:budget])
            word = word[budget:]
        current = word
    if current:
        chunks.append(current)

    total = len(chunks)
    return [f"{i}/{total}: {chunk}" for i, chunk in enumerate(chunks, start=1)]


class XClient(PlatformClient):
    """Creates a tweet, or a reply chain when the content is too long."""

    platform = Platform.X

    def __init__(self, *args: Any, thread_delay_seconds: float = 1.0, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.thread_delay_seconds = thread_delay_seconds

    async def _create_tweet(self, client: httpx.AsyncClient, text: str, reply_to: Optional[str]) -> str:
        payload: Dict[str, Any] = {"text": text}
        if reply_to:
            payload["reply"] = {"in_reply_to_tweet_id": reply_to}
        resp = await self._request(client, "POST", "/2/tweets", json=payload)
        tweet_id = (resp.json().get("data") or {}).get("id")
        if not tweet_id:
            raise PublishError("x response has no tweet id", kind="api", status_code=resp.status_code)
        return str(tweet_id)

    async def publish(self, content: str, options: Optional[Dict[str, Any]] = None) -> str:
        """
        Returns the id of the first tweet. If a reply fails after the first tweet
        went out, raises PartialPublishError carrying the ids already posted.
        """
        self._require_token()
        max_length = int((options or {}).get("max_tweet_length") or DEFAULT_MAX_TWEET_LENGTH)
        tweets = split_into_thread(content, max_length)

        ids: List[str] = []
        async with self._client() as client:
            for index, text in enumerate(tweets):
                try:
                    tweet_id = await self._create_tweet(client, text, ids[-1] if ids else None)
                except PublishError as e:
                    if ids:
                        raise PartialPublishError(
                            f"Failed to post tweet {index + 1}/{len(tweets)} of thread {ids[0]}: {e.message}",
                            external_post_id=ids[0],
                            posted_ids=ids,
                            kind=e.kind,
                            status_code=e.status_code,
                        ) from e
                    raise
                ids.append(tweet_id)
                if index < len(tweets) - 1 and self.thread_delay_seconds > 0:
                    await asyncio.sleep(self.thread_delay_seconds)

        logger.info("x.published", external_post_id=ids[0], tweets=len(ids))
        return ids[0]
