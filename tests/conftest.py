from typing import Callable, Optional

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from app.main import app
from app.models.internal import MediaRequest, Platform
from app.services.adapters import AdapterOutput, BackendAdapter
from app.services.resolver import ResolutionService, get_resolution_service
from app.services.stream import RelayStreamer

MEDIA_URL = "https://cdn.test/media/abc123"
MEDIA_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"x" * 2048


class FakeAdapter(BackendAdapter):
    """Adapter returning a canned remote-converter payload"""
    name = "fake"

    def __init__(self, link: Optional[str] = MEDIA_URL, error: Optional[Exception] = None):
        super().__init__()
        self.link = link
        self.error = error
        self.calls = 0

    async def fetch(self, request: MediaRequest) -> AdapterOutput:
        self.calls += 1
        if self.error:
            raise self.error
        data = {"title": "Never Gonna Give You Up", "author": "Rick Astley", "duration": 213}
        if self.link:
            data["link"] = self.link
        return AdapterOutput(source="tiered", request=request, payload={"bucket": "720", "data": data})


def media_transport(handler: Optional[Callable[[httpx.Request], httpx.Response]] = None) -> httpx.MockTransport:
    def default(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=MEDIA_BYTES, headers={"content-type": "application/octet-stream"})
    return httpx.MockTransport(handler or default)


@pytest.fixture
def fake_adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def resolution_service(fake_adapter) -> ResolutionService:
    streamer = RelayStreamer(client=httpx.AsyncClient(transport=media_transport()))
    return ResolutionService({Platform.YOUTUBE: fake_adapter}, streamer=streamer)


@pytest.fixture
def client_factory(resolution_service):
    """AsyncClient bound to the app with the resolver dependency overridden"""
    app.dependency_overrides[get_resolution_service] = lambda: resolution_service

    def factory() -> AsyncClient:
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

    yield factory
    app.dependency_overrides.clear()
