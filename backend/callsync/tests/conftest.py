import os

os.environ["DATABASE_URL"] = "sqlite:///./test.db"

import httpx
import pytest
from fastapi.testclient import TestClient

from callsync.core.config import Settings, get_settings
from callsync.core.database import Base, SessionLocal, engine
from callsync.core.deps import get_vapi_client
from callsync.main import app
from callsync.models import CallLog
from callsync.services.vapi_client import VapiClient


class FakeVapi:
    """Canned Vapi responses keyed by path, recording every request."""

    def __init__(self):
        self.routes = {
            "/logs": (200, {"results": []}),
            "/call": (200, []),
        }
        self.requests: list[httpx.Request] = []

    def respond(self, path, body, status_code=200):
        self.routes[path] = (status_code, body)

    def fail(self, path, exc_type=httpx.ConnectError):
        self.routes[path] = exc_type

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes[request.url.path]
        if isinstance(route, type):
            raise route("upstream down", request=request)
        status_code, body = route
        return httpx.Response(status_code, json=body)

    def requests_to(self, path):
        return [request for request in self.requests if request.url.path == path]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_call_logs():
    yield
    with engine.begin() as connection:
        connection.execute(CallLog.__table__.delete())


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def fake_vapi():
    return FakeVapi()


@pytest.fixture()
def test_settings():
    return Settings(
        database_url="sqlite:///./test.db",
        vapi_api_key="test-key",
        vapi_base_url="https://vapi.test",
        vapi_webhook_secret=None,
        vapi_page_limit=200,
    )


@pytest.fixture()
def vapi_client(fake_vapi, test_settings):
    client = VapiClient.from_settings(test_settings, transport=fake_vapi.transport)
    yield client
    client.close()


@pytest.fixture()
def client(fake_vapi, test_settings):
    def override_get_vapi_client():
        vapi = VapiClient.from_settings(test_settings, transport=fake_vapi.transport)
        try:
            yield vapi
        finally:
            vapi.close()

    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_vapi_client] = override_get_vapi_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
