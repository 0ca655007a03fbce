import os

# Settings are read at import time, so the key must exist before the app is imported
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import copy
import time
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt

from edgehomes.backend import BackendClient, get_backend
from edgehomes.cache import ResponseCache
from edgehomes.config import settings
from edgehomes.constants import ADMIN_COOKIE_NAME, USER_COOKIE_NAME
from edgehomes.limits import ALL_LIMITERS
from edgehomes.main import app

BACKEND_BASE_URL = "http://backend.test"


# --- In-memory stand-ins ---

class FakeRedis:
    """The handful of redis.asyncio calls ResponseCache makes, kept in dicts."""

    def __init__(self):
        self.values = {}
        self.sets = {}
        self.expiries = {}

    async def get(self, key):
        return self.values.get(key)

    async def set(self, key, value, ex=None):
        self.values[key] = value
        self.expiries[key] = ex

    async def expire(self, key, seconds):
        self.expiries[key] = seconds

    async def sadd(self, key, *members):
        self.sets.setdefault(key, set()).update(members)

    async def smembers(self, key):
        return set(self.sets.get(key, set()))

    async def delete(self, *keys):
        for key in keys:
            self.values.pop(key, None)
            self.sets.pop(key, None)


class FakeBackend:
    """
    Routes requests made through httpx.MockTransport to canned responses and
    records every request so tests can assert on what was sent.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, method, path, json=None, status_code=200):
        self.routes[(method.upper(), path)] = (status_code, json)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": "Not Found", "message": f"No route for {request.url.path}"})
        status_code, body = route
        if callable(body):
            return body(request)
        return httpx.Response(status_code, json=body)

    def calls(self, method, path):
        return [r for r in self.requests if r.method == method.upper() and r.url.path == path]


def build_backend_client(fake: FakeBackend, cache=None) -> BackendClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(fake.handler), base_url=BACKEND_BASE_URL)
    return BackendClient(http, cache)


# --- Test data ---

@pytest.fixture
def make_token():
    def _make_token(sub="user-1", is_admin=False, expires_in=3600, secret=None, **claims):
        now = int(time.time())
        payload = {
            "sub": sub,
            "name": "Ada Lovelace",
            "email": "ada@example.com",
            "isAdmin": is_admin,
            "iat": now,
            "exp": now + expires_in,
        }
        payload.update(claims)
        return jwt.encode(payload, secret or settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    return _make_token


PROPERTY = {
    "_id": "prop-1",
    "title": "Lekki Waterfront Loft",
    "location": "Lekki, Lagos",
    "type": "Short-let",
    "price": {"amount": 200000, "currency": "₦", "duration": "night"},
    "images": [
        {"url": "https://cdn.test/a.jpg", "publicId": "img-a", "order": 0},
        {"url": "https://cdn.test/b.jpg", "publicId": "img-b", "order": 1},
    ],
    "video": {"url": "https://cdn.test/tour.mp4", "publicId": "vid-1"},
    "beds": 2,
    "baths": 2,
    "available": True,
    "isVerified": False,
    "features": ["Wifi", "Pool"],
    "createdBy": {"_id": "owner-1", "name": "Tunde Owner", "phone": "+2348012345678", "email": "tunde@example.com"},
}


@pytest.fixture
def property_json():
    def _property_json(**overrides):
        body = copy.deepcopy(PROPERTY)
        body.update(overrides)
        return body

    return _property_json


@pytest.fixture
def property_model(property_json):
    from edgehomes.schemas import Property

    def _property_model(**overrides):
        return Property.model_validate(property_json(**overrides))

    return _property_model


# --- App wiring ---

@pytest.fixture(scope="function", autouse=True)
def mock_lifespan_services(mocker):
    """Keeps the app lifespan from touching a real Redis."""
    redis_client = MagicMock()
    redis_client.close = AsyncMock()
    mocker.patch("edgehomes.main.redis.from_url", return_value=redis_client)
    mocker.patch("edgehomes.main.FastAPILimiter.init", new_callable=AsyncMock)
    return redis_client


@pytest.fixture
def fake_backend():
    fake = FakeBackend()
    fake.add("GET", "/user/profile", {"_id": "user-1", "name": "Ada Lovelace", "email": "ada@example.com", "listingCredits": 3})
    return fake


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def backend(fake_backend, fake_redis):
    return build_backend_client(fake_backend, ResponseCache(fake_redis))


@pytest.fixture(scope="function")
def client(backend):
    """TestClient with the backend swapped for the fake and rate limits disabled."""
    app.dependency_overrides[get_backend] = lambda: backend
    for limiter in ALL_LIMITERS:
        app.dependency_overrides[limiter] = lambda: None

    with TestClient(app) as c:
        # The websocket route reads the client from app state
        app.state.backend = backend
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def user_client(client, make_token):
    client.cookies.set(USER_COOKIE_NAME, make_token())
    return client


@pytest.fixture
def admin_client(client, make_token):
    client.cookies.set(ADMIN_COOKIE_NAME, make_token(sub="admin-1", is_admin=True))
    return client
