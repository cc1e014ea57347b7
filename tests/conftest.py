import fakeredis
import httpx
import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_daily_quota, get_pass_store, get_redis, get_scanner
from app.services.passes import ProcessingPassStore
from app.services.quota import DailyQuota
from app.services.scanner import LinkScanner
from fakes import FakeWeb
from main import app


@pytest.fixture
def web():
    return FakeWeb()


@pytest.fixture
def scanner(web):
    return LinkScanner(transport=httpx.MockTransport(web), concurrency=4)


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def passes(redis_client):
    return ProcessingPassStore(redis_client)


@pytest.fixture
def quota(redis_client):
    return DailyQuota(redis_client)


@pytest.fixture
def client(scanner, redis_client, passes, quota):
    app.dependency_overrides[get_redis] = lambda: redis_client
    app.dependency_overrides[get_scanner] = lambda: scanner
    app.dependency_overrides[get_pass_store] = lambda: passes
    app.dependency_overrides[get_daily_quota] = lambda: quota
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
