"""Per-client request limit: counted in a fake Redis, answered with the 429 error envelope once exceeded."""
import pytest

from publication_service.config import Settings
from publication_service.middleware import rate_limit

from tests.conftest import FakeRedis


@pytest.fixture
def limited_redis(monkeypatch) -> FakeRedis:
    """Enable the limiter at 2 requests/min with every Redis connection served by one FakeRedis."""
    redis = FakeRedis()

    class RedisFactory:
        @staticmethod
        def from_url(url, **kwargs):
            return redis

    settings = Settings(_env_file=None, REDIS_URL="redis://fake:6379/0", RATE_LIMIT_PER_MIN=2)
    monkeypatch.setattr(rate_limit, "Redis", RedisFactory)
    monkeypatch.setattr(rate_limit, "get_settings", lambda: settings)
    return redis


@pytest.mark.asyncio
async def test_third_request_in_window_gets_429_envelope(client, limited_redis) -> None:
    headers = {"X-Client-ID": "dashboard"}
    for _ in range(2):
        assert (await client.get("/api/scheduled-posts", headers=headers)).status_code == 200

    resp = await client.get("/api/scheduled-posts", headers=headers)
    assert resp.status_code == 429
    assert resp.headers["Retry-After"] == "60"
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["code"] == "rate_limited"
    assert "2 requests/min" in body["error"]["message"]
    assert limited_redis.zcard("rl:client:dashboard") == 3


@pytest.mark.asyncio
async def test_clients_are_counted_separately(client, limited_redis) -> None:
    for _ in range(3):
        await client.get("/api/scheduled-posts", headers={"X-Client-ID": "dashboard"})
    resp = await client.get("/api/scheduled-posts", headers={"X-Client-ID": "ops-cli"})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_anonymous_and_health_requests_are_not_limited(client, limited_redis) -> None:
    for _ in range(4):
        assert (await client.get("/api/scheduled-posts")).status_code == 200
        assert (await client.get("/health", headers={"X-Client-ID": "monitor"})).status_code == 200
    assert limited_redis.sorted_sets == {}


@pytest.mark.asyncio
async def test_redis_failure_lets_requests_through(client, monkeypatch) -> None:
    class BrokenRedis:
        @staticmethod
        def from_url(url, **kwargs):
            raise ConnectionError("redis unreachable")

    settings = Settings(_env_file=None, REDIS_URL="redis://down:6379/0", RATE_LIMIT_PER_MIN=1)
    monkeypatch.setattr(rate_limit, "Redis", BrokenRedis)
    monkeypatch.setattr(rate_limit, "get_settings", lambda: settings)

    for _ in range(3):
        resp = await client.get("/api/scheduled-posts", headers={"X-Client-ID": "dashboard"})
        assert resp.status_code == 200
