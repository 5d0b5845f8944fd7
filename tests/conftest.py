"""
Shared fixtures. The test database is a temporary SQLite file; DATABASE_URL is
set before publication_service is imported so the engine binds to it.
"""
import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

_DB_DIR = tempfile.mkdtemp(prefix="publication_service_tests_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ["APP_ENV"] = "test"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["REDIS_URL"] = ""

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from publication_service.config import get_settings  # noqa: E402
from publication_service.db import async_session_factory, create_all, drop_all, engine  # noqa: E402
from publication_service.enums import Platform, PostStatus  # noqa: E402
from publication_service.exceptions import PublishError  # noqa: E402
from publication_service.infrastructure.publish_queue import PublishQueue  # noqa: E402
from publication_service.lifecycle import PublicationStateMachine  # noqa: E402
from publication_service.models import Post  # noqa: E402
from publication_service.platforms import PlatformClient  # noqa: E402
from publication_service.repositories import PostRepository, ScheduledPostRepository  # noqa: E402
from publication_service.retry_policy import PlatformRetryRule, RetryPolicy  # noqa: E402
from publication_service.services import PublishWorker  # noqa: E402

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakePlatformClient(PlatformClient):
    """Returns queued outcomes in order: a string is an external id, an exception is raised."""

    def __init__(self, platform: Platform, outcomes: Optional[List] = None) -> None:
        super().__init__(access_token="test-token", api_base="http://fake")
        self.platform = platform
        self.outcomes = list(outcomes or [])
        self.calls: List[Dict] = []

    async def publish(self, content, options=None) -> str:
        self.calls.append({"content": content, "options": options})
        outcome = self.outcomes.pop(0) if self.outcomes else f"{self.platform.value}-ext-{len(self.calls)}"
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeRedis:
    """In-memory stand-in for the redis.asyncio commands used by the publish queue and rate limiter."""

    def __init__(self) -> None:
        self.sorted_sets: Dict[str, Dict[str, float]] = {}
        self.values: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.closed = 0

    def pipeline(self, transaction: bool = True) -> "FakePipeline":
        return FakePipeline(self)

    async def aclose(self) -> None:
        self.closed += 1

    def zadd(self, key: str, mapping: Dict[str, float]) -> int:
        members = self.sorted_sets.setdefault(key, {})
        added = sum(1 for member in mapping if member not in members)
        members.update(mapping)
        return added

    def zrem(self, key: str, *names: str) -> int:
        members = self.sorted_sets.get(key, {})
        return sum(1 for name in names if members.pop(name, None) is not None)

    def zremrangebyscore(self, key: str, low, high) -> int:
        low, high = float(low), float(high)
        members = self.sorted_sets.get(key, {})
        stale = [m for m, score in members.items() if low <= score <= high]
        for member in stale:
            del members[member]
        return len(stale)

    def zcard(self, key: str) -> int:
        return len(self.sorted_sets.get(key, {}))

    def setex(self, key: str, seconds: int, value: str) -> bool:
        self.values[key] = value
        self.ttls[key] = seconds
        return True

    def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            removed += int(self.values.pop(key, None) is not None or self.sorted_sets.pop(key, None) is not None)
            self.ttls.pop(key, None)
        return removed

    def expire(self, key: str, seconds: int) -> bool:
        self.ttls[key] = seconds
        return True

    def queued_jobs(self, key: str = "publish_queue") -> List[str]:
        return sorted(self.sorted_sets.get(key, {}))


class FakePipeline:
    """Buffers commands and runs them against FakeRedis on execute."""

    def __init__(self, redis: FakeRedis) -> None:
        self.redis = redis
        self.commands: List = []

    def __getattr__(self, name: str):
        command = getattr(self.redis, name)

        def queue(*args, **kwargs) -> "FakePipeline":
            self.commands.append((command, args, kwargs))
            return self

        return queue

    async def execute(self) -> List:
        results = [command(*args, **kwargs) for command, args, kwargs in self.commands]
        self.commands = []
        return results


@pytest.fixture(autouse=True)
async def database():
    await create_all()
    yield
    await drop_all()
    # Pooled aiosqlite connections are bound to this test's event loop.
    await engine.dispose()


@pytest.fixture
async def session():
    async with async_session_factory() as s:
        yield s


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def machine(session, clock) -> PublicationStateMachine:
    return PublicationStateMachine(ScheduledPostRepository(session), PostRepository(session), clock=clock)


@pytest.fixture
def make_post(session):
    async def _make(content: str = "Five lessons from shipping a scheduler", platform: str = "linkedin",
                    status: PostStatus = PostStatus.APPROVED) -> Post:
        post = await PostRepository(session).create(content=content, platform=platform, status=status.value)
        await session.commit()
        return post

    return _make


@pytest.fixture
def retry_policy() -> RetryPolicy:
    return RetryPolicy(
        {
            Platform.LINKEDIN: PlatformRetryRule(max_retries=3, delays=(60, 300, 900)),
            Platform.X: PlatformRetryRule(max_retries=5, delays=(60, 180, 300, 600, 900)),
        }
    )


@pytest.fixture
def fake_clients() -> Dict[Platform, FakePlatformClient]:
    return {
        Platform.LINKEDIN: FakePlatformClient(Platform.LINKEDIN),
        Platform.X: FakePlatformClient(Platform.X),
    }


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def redis_queue(fake_redis, monkeypatch) -> PublishQueue:
    """A PublishQueue that is enabled but talks to FakeRedis."""
    queue = PublishQueue("redis://fake:6379/0")
    monkeypatch.setattr(queue, "_client", lambda: fake_redis)
    return queue


@pytest.fixture
def worker(fake_clients, retry_policy, clock) -> PublishWorker:
    return PublishWorker(
        session_factory=async_session_factory,
        clients=fake_clients,
        policy=retry_policy,
        settings=get_settings(),
        clock=clock,
    )


@pytest.fixture
async def client(fake_clients, retry_policy):
    """API client. ASGITransport skips lifespan, so app.state is wired here with fake platform clients."""
    from publication_service.main import app

    app.state.publish_queue = PublishQueue(None)
    app.state.publish_worker = PublishWorker(
        session_factory=async_session_factory,
        clients=fake_clients,
        policy=retry_policy,
        settings=get_settings(),
        queue=app.state.publish_queue,
    )
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def network_error(message: str = "network timeout") -> PublishError:
    return PublishError(message, kind="network")
