import json

import httpx
import pytest

from app.core.errors import UpstreamError
from app.models.internal import BackendInstance, MediaKind, MediaRequest, Platform
from app.services.adapters.cobalt import CobaltAdapter

INSTANCES = [
    BackendInstance(name="a", url="https://a.test/"),
    BackendInstance(name="b", url="https://b.test/", api_key="secret"),
    BackendInstance(name="c", url="https://c.test/"),
]

VIDEO_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


def make_adapter(handler) -> CobaltAdapter:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CobaltAdapter(INSTANCES, timeout=5, client=client)


def request(kind=MediaKind.AUDIO, quality="highest") -> MediaRequest:
    return MediaRequest(url=VIDEO_URL, kind=kind, quality=quality)


@pytest.mark.asyncio
async def test_failover_stops_at_first_success():
    seen = []

    def handler(req: httpx.Request) -> httpx.Response:
        seen.append(req.url.host)
        if req.url.host == "a.test":
            return httpx.Response(429, json={"status": "rate-limit", "text": "slow down"})
        assert req.headers["authorization"] == "Api-Key secret"
        return httpx.Response(200, json={
            "status": "tunnel",
            "url": "https://b.test/tunnel?id=1",
            "filename": "Never Gonna Give You Up.mp3",
        })

    adapter = make_adapter(handler)
    resolved = await adapter.resolve(request(), Platform.YOUTUBE)

    assert seen == ["a.test", "b.test"]
    assert resolved.service == "cobalt:b"
    assert resolved.title == "Never Gonna Give You Up"
    assert resolved.primary_url(MediaKind.AUDIO) == "https://b.test/tunnel?id=1"
    assert resolved.format == "mp3"


@pytest.mark.asyncio
async def test_every_instance_receives_the_same_body():
    bodies = []

    def handler(req: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(req.content))
        return httpx.Response(200, json={"status": "error", "error": {"code": "error.api.fetch.fail"}})

    adapter = make_adapter(handler)
    with pytest.raises(UpstreamError) as excinfo:
        await adapter.fetch(request(MediaKind.VIDEO, "720"))

    assert len(bodies) == 3
    assert all(body == bodies[0] for body in bodies)
    assert bodies[0]["videoQuality"] == "720"
    assert bodies[0]["downloadMode"] == "auto"
    assert excinfo.value.message == "all resolver instances unavailable"
    assert "error.api.fetch.fail" in str(excinfo.value.cause)


@pytest.mark.asyncio
async def test_transport_errors_fall_through():
    def handler(req: httpx.Request) -> httpx.Response:
        if req.url.host != "c.test":
            raise httpx.ConnectError("refused", request=req)
        return httpx.Response(200, json={"status": "redirect", "url": "https://cdn.test/x.mp4"})

    output = await make_adapter(handler).fetch(request(MediaKind.VIDEO))
    assert output.payload["instance"] == "c"
    assert output.payload["status"] == "redirect"


@pytest.mark.asyncio
async def test_unrecognized_status_is_a_failure():
    def handler(req: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "local-processing"})

    with pytest.raises(UpstreamError):
        await make_adapter(handler).fetch(request())


@pytest.mark.asyncio
async def test_picker_takes_first_item():
    def handler(req: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={
            "status": "picker",
            "picker": [
                {"type": "photo", "url": "https://cdn.test/1.jpg", "thumb": "https://cdn.test/t1.jpg"},
                {"type": "photo", "url": "https://cdn.test/2.jpg"},
            ],
        })

    resolved = await make_adapter(handler).resolve(request(MediaKind.VIDEO), Platform.TIKTOK)
    assert resolved.media_type == "image-set"
    assert [link.url for link in resolved.links] == ["https://cdn.test/1.jpg"]
    assert resolved.thumbnail == "https://cdn.test/t1.jpg"


@pytest.mark.parametrize("quality, expected", [
    ("highest", "max"),
    ("lowest", "144"),
    ("720", "720"),
    ("700", "720"),
    ("600", "480"),
])
def test_video_quality_mapping(quality, expected):
    assert CobaltAdapter.video_quality(request(MediaKind.VIDEO, quality)) == expected


def test_audio_body():
    body = CobaltAdapter(INSTANCES).build_body(request(MediaKind.AUDIO))
    assert body["downloadMode"] == "audio"
    assert body["audioFormat"] == "mp3"
    assert body["audioBitrate"] == "128"
    assert body["url"] == VIDEO_URL


@pytest.mark.parametrize("picker", [["https://cdn.test/x.jpg"], [None], "https://cdn.test/x.jpg"])
@pytest.mark.asyncio
async def test_malformed_picker_falls_through_to_next_instance(picker):
    seen = []

    def handler(req: httpx.Request) -> httpx.Response:
        seen.append(req.url.host)
        if req.url.host == "a.test":
            return httpx.Response(200, json={"status": "picker", "picker": picker})
        return httpx.Response(200, json={"status": "tunnel", "url": "https://b.test/tunnel?id=2"})

    output = await make_adapter(handler).fetch(request(MediaKind.VIDEO))

    assert seen == ["a.test", "b.test"]
    assert output.payload["instance"] == "b"
    assert output.payload["url"] == "https://b.test/tunnel?id=2"
