"""Platform clients against httpx.MockTransport: payloads, ids, thread splitting and error kinds."""
import json

import httpx
import pytest

from publication_service.config import Settings
from publication_service.enums import Platform
from publication_service.exceptions import PartialPublishError, PublishError
from publication_service.platforms import LinkedInClient, XClient, build_platform_clients, split_into_thread


def _linkedin(handler, token="li-token") -> LinkedInClient:
    return LinkedInClient(access_token=token, api_base="https://api.linkedin.test", transport=httpx.MockTransport(handler))


def _x(handler, token="x-token") -> XClient:
    return XClient(
        access_token=token,
        api_base="https://api.x.test",
        transport=httpx.MockTransport(handler),
        thread_delay_seconds=0,
    )


def test_short_content_is_single_unnumbered_tweet() -> None:
    assert split_into_thread("hello world") == ["hello world"]


def test_long_content_becomes_numbered_thread() -> None:
    content = " ".join(f"word{i}" for i in range(120))
    tweets = split_into_thread(content, 280)
    assert len(tweets) > 1
    total = len(tweets)
    for i, tweet in enumerate(tweets, start=1):
        assert tweet.startswith(f"{i}/{total}: ")
        assert len(tweet) <= 280
    rebuilt = " ".join(t.split(": ", 1)[1] for t in tweets)
    assert rebuilt == content


def test_overlong_word_is_hard_wrapped() -> None:
    tweets = split_into_thread("x" * 600, 280)
    assert all(len(t) <= 280 for t in tweets)
    assert "".join(t.split(": ", 1)[1] for t in tweets) == "x" * 600


@pytest.mark.asyncio
async def test_linkedin_publish_returns_restli_id() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer li-token"
        if request.url.path == "/v2/userinfo":
            return httpx.Response(200, json={"sub": "abc123"})
        assert request.url.path == "/v2/ugcPosts"
        assert request.headers["X-Restli-Protocol-Version"] == "2.0.0"
        seen["payload"] = json.loads(request.content)
        return httpx.Response(201, headers={"x-restli-id": "urn:li:share:123"}, json={})

    external_id = await _linkedin(handler).publish("Hello LinkedIn", {"visibility": "CONNECTIONS"})
    assert external_id == "urn:li:share:123"
    payload = seen["payload"]
    assert payload["author"] == "urn:li:person:abc123"
    assert payload["specificContent"]["com.linkedin.ugc.ShareContent"]["shareCommentary"]["text"] == "Hello LinkedIn"
    assert payload["visibility"]["com.linkedin.ugc.MemberNetworkVisibility"] == "CONNECTIONS"


@pytest.mark.asyncio
async def test_linkedin_falls_back_to_body_id() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v2/userinfo":
            return httpx.Response(200, json={"sub": "abc123"})
        return httpx.Response(201, json={"id": "urn:li:share:456"})

    assert await _linkedin(handler).publish("Hi") == "urn:li:share:456"


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code, kind", [(401, "auth"), (403, "auth"), (429, "rate_limit"), (500, "api")])
async def test_http_errors_are_classified(status_code, kind) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json={"message": "nope"})

    with pytest.raises(PublishError) as exc_info:
        await _linkedin(handler).publish("Hi")
    assert exc_info.value.kind == kind
    assert exc_info.value.status_code == status_code
    assert "nope" in exc_info.value.message


@pytest.mark.asyncio
async def test_transport_error_is_network_kind() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(PublishError) as exc_info:
        await _x(handler).publish("Hi")
    assert exc_info.value.kind == "network"


@pytest.mark.asyncio
async def test_missing_token_is_config_kind() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(PublishError) as exc_info:
        await _x(handler, token=None).publish("Hi")
    assert exc_info.value.kind == "config"


@pytest.mark.asyncio
async def test_x_thread_replies_to_previous_tweet() -> None:
    payloads = []

    def handler(request: httpx.Request) -> httpx.Response:
        payloads.append(json.loads(request.content))
        return httpx.Response(201, json={"data": {"id": str(1000 + len(payloads))}})

    content = " ".join(["thread"] * 100)
    external_id = await _x(handler).publish(content, {"platform": "x", "max_tweet_length": 280})
    assert external_id == "1001"
    assert len(payloads) > 1
    assert "reply" not in payloads[0]
    for i, payload in enumerate(payloads[1:], start=1):
        assert payload["reply"] == {"in_reply_to_tweet_id": str(1000 + i)}


@pytest.mark.asyncio
async def test_x_mid_thread_failure_names_the_thread() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 2:
            return httpx.Response(429, json={"detail": "Too Many Requests"})
        return httpx.Response(201, json={"data": {"id": "1"}})

    with pytest.raises(PartialPublishError) as exc_info:
        await _x(handler).publish(" ".join(["long"] * 100))
    assert exc_info.value.kind == "rate_limit"
    assert "tweet 2/" in exc_info.value.message
    assert exc_info.value.external_post_id == "1"
    assert exc_info.value.posted_ids == ["1"]


@pytest.mark.asyncio
async def test_x_first_tweet_failure_is_a_plain_publish_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"detail": "Service Unavailable"})

    with pytest.raises(PublishError) as exc_info:
        await _x(handler).publish(" ".join(["long"] * 100))
    assert not isinstance(exc_info.value, PartialPublishError)


def test_build_platform_clients_from_settings() -> None:
    settings = Settings(_env_file=None, LINKEDIN_ACCESS_TOKEN="li", X_ACCESS_TOKEN="xx")
    clients = build_platform_clients(settings)
    assert isinstance(clients[Platform.LINKEDIN], LinkedInClient)
    assert isinstance(clients[Platform.X], XClient)
    assert clients[Platform.X].access_token == "xx"
