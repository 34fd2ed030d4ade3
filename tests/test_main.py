import re
import sys

import httpx
import pytest

from app.core.errors import UpstreamError
from app.main import app
from app.models.internal import RelayTarget
from app.api.search import get_search_service
from app.services.search import YouTubeSearchService

from conftest import MEDIA_BYTES, MEDIA_URL

VIDEO_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


@pytest.mark.asyncio
async def test_root_descriptor(client_factory):
    """Root endpoint lists capabilities"""
    async with client_factory() as ac:
        response = await ac.get("/")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["platforms"] == ["youtube"]
    assert "recherche" in body["endpoints"]


@pytest.mark.asyncio
async def test_health_check(client_factory):
    async with client_factory() as ac:
        response = await ac.get("/health")
    assert response.status_code == 200
    assert response.json() == {"success": True, "status": "ok", "redis": "disabled"}


@pytest.mark.asyncio
async def test_download_returns_descriptor_with_stream_url(client_factory, fake_adapter):
    async with client_factory() as ac:
        response = await ac.get("/download", params={"urlytb": VIDEO_URL, "type": "MP4"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["platform"] == "youtube"
    assert body["type"] == "MP4"
    assert body["title"] == "Never Gonna Give You Up"
    assert body["url"] == MEDIA_URL
    assert body["streamUrl"].startswith("http://test/stream?")
    assert "type=MP4" in body["streamUrl"]
    assert body["timestamp"].endswith("Z")
    assert fake_adapter.calls == 1


@pytest.mark.parametrize("bad_type", ["", "MP5", "flac", "wav"])
@pytest.mark.asyncio
async def test_invalid_type_rejected_before_adapter(client_factory, fake_adapter, bad_type):
    async with client_factory() as ac:
        response = await ac.get("/download", params={"url": VIDEO_URL, "type": bad_type})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "type" in body["error"]
    assert "timestamp" in body
    assert fake_adapter.calls == 0


@pytest.mark.parametrize("good_type", ["mp3", "MP3", "Audio", "video", "mp4"])
@pytest.mark.asyncio
async def test_type_tokens_case_insensitive(client_factory, good_type):
    async with client_factory() as ac:
        response = await ac.get("/download", params={"url": VIDEO_URL, "type": good_type})
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_missing_url(client_factory, fake_adapter):
    async with client_factory() as ac:
        response = await ac.get("/download", params={"type": "MP3"})
    assert response.status_code == 400
    assert "url" in response.json()["error"]
    assert fake_adapter.calls == 0


@pytest.mark.asyncio
async def test_invalid_quality_rejected(client_factory, fake_adapter):
    async with client_factory() as ac:
        response = await ac.get("/download", params={"url": VIDEO_URL, "type": "MP4", "quality": "ultra"})
    assert response.status_code == 400
    assert fake_adapter.calls == 0


@pytest.mark.asyncio
async def test_unknown_platform_lists_supported(client_factory, fake_adapter):
    async with client_factory() as ac:
        response = await ac.get("/download", params={"url": "https://example.com/v/1", "type": "MP4"})
    assert response.status_code == 400
    assert "YouTube" in response.json()["error"]
    assert fake_adapter.calls == 0


@pytest.mark.asyncio
async def test_platform_without_adapter_rejected(client_factory, fake_adapter):
    async with client_factory() as ac:
        response = await ac.get(
            "/download",
            params={"url": "https://www.instagram.com/reel/Cxyz123/", "type": "MP4"},
        )
    assert response.status_code == 400
    assert fake_adapter.calls == 0


@pytest.mark.asyncio
async def test_youtube_url_without_video_id_rejected(client_factory, fake_adapter):
    async with client_factory() as ac:
        response = await ac.get("/download", params={"url": "https://www.youtube.com/feed/trending", "type": "MP4"})
    assert response.status_code == 400
    assert fake_adapter.calls == 0


@pytest.mark.asyncio
async def test_upstream_error_is_500_with_message(client_factory, fake_adapter):
    fake_adapter.error = UpstreamError("all resolver instances unavailable")
    async with client_factory() as ac:
        response = await ac.get("/download", params={"url": VIDEO_URL, "type": "MP3"})
    assert response.status_code == 500
    assert response.json()["error"] == "all resolver instances unavailable"


@pytest.mark.asyncio
async def test_reply_without_link_is_upstream_error(client_factory, fake_adapter):
    fake_adapter.link = None
    async with client_factory() as ac:
        response = await ac.get("/download", params={"url": VIDEO_URL, "type": "MP3"})
    assert response.status_code == 500
    assert "no download link" in response.json()["error"]


@pytest.mark.asyncio
async def test_french_error_messages(client_factory):
    async with client_factory() as ac:
        response = await ac.get(
            "/download",
            params={"url": VIDEO_URL, "type": "ogg"},
            headers={"Accept-Language": "fr-FR,fr;q=0.9"},
        )
    assert response.json()["error"].startswith("Paramètre \"type\" invalide")


@pytest.mark.asyncio
async def test_stream_relays_bytes_with_headers(client_factory):
    async with client_factory() as ac:
        response = await ac.get("/stream", params={"url": VIDEO_URL, "type": "MP3"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "audio/mpeg"
    disposition = response.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="Never Gonna Give You Up.mp3"')
    assert response.content == MEDIA_BYTES


@pytest.mark.asyncio
async def test_stream_url_round_trip(client_factory):
    async with client_factory() as ac:
        descriptor = await ac.get("/download", params={"url": VIDEO_URL, "type": "MP4", "quality": "720p"})
        stream_url = descriptor.json()["streamUrl"]
        response = await ac.get(stream_url)

    assert "quality=720" in stream_url
    assert response.status_code == 200
    assert response.headers["content-type"] == "video/mp4"


@pytest.mark.asyncio
async def test_stream_error_before_bytes_is_json(client_factory, fake_adapter):
    fake_adapter.error = UpstreamError("tunnel expired")
    async with client_factory() as ac:
        response = await ac.get("/stream", params={"url": VIDEO_URL, "type": "MP4"})
    assert response.status_code == 500
    body = response.json()
    assert body == {"success": False, "error": "tunnel expired", "timestamp": body["timestamp"]}


@pytest.mark.asyncio
async def test_stream_extractor_failure_before_bytes_is_json(client_factory, fake_adapter, monkeypatch):
    async def failing_target(request, resolved):
        return RelayTarget(
            command=[
                sys.executable,
                "-c",
                "import sys; sys.stderr.write('ERROR: Video unavailable\\n'); sys.exit(1)",
            ],
            content_type="video/mp4",
            filename="clip.mp4",
        )

    monkeypatch.setattr(fake_adapter, "relay_target", failing_target)
    async with client_factory() as ac:
        response = await ac.get("/stream", params={"url": VIDEO_URL, "type": "MP4"})

    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/json")
    body = response.json()
    assert body["success"] is False
    assert "Video unavailable" in body["error"]


def _search_service(handler) -> YouTubeSearchService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return YouTubeSearchService(url="https://search.test/yts", limit=6, client=client)


def _search_results(request: httpx.Request) -> httpx.Response:
    videos = [
        {
            "title": f"Metamorphosis {i}",
            "duration": "3:0{i}",
            "url": f"https://youtube.com/watch?v=vid{i:08d}",
            "thumb": f"https://i.ytimg.com/vi/{i}/hq.jpg",
            "channel": "Interworld" if i % 2 else None,
        }
        for i in range(9)
    ]
    assert request.url.params["title"] == "metamorphosis"
    return httpx.Response(200, json={"videos": videos})


@pytest.mark.asyncio
async def test_recherche_truncates_and_defaults_channel(client_factory):
    app.dependency_overrides[get_search_service] = lambda: _search_service(_search_results)
    async with client_factory() as ac:
        response = await ac.get("/recherche", params={"titre": "metamorphosis"})

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["query"] == "metamorphosis"
    assert body["count"] == 6
    assert [v["index"] for v in body["videos"]] == [1, 2, 3, 4, 5, 6]
    assert body["videos"][0]["channel"] == "N/A"
    assert body["videos"][1]["channel"] == "Interworld"


@pytest.mark.asyncio
async def test_recherche_is_idempotent(client_factory):
    app.dependency_overrides[get_search_service] = lambda: _search_service(_search_results)
    async with client_factory() as ac:
        first = (await ac.get("/recherche", params={"titre": "metamorphosis"})).json()
        second = (await ac.get("/recherche", params={"titre": "metamorphosis"})).json()

    assert first["count"] == second["count"]
    assert first["videos"] == second["videos"]


@pytest.mark.asyncio
async def test_recherche_missing_title(client_factory):
    async with client_factory() as ac:
        response = await ac.get("/recherche")
    assert response.status_code == 400
    assert re.search(r"titre", response.json()["error"])


@pytest.mark.asyncio
async def test_recherche_upstream_error_text(client_factory):
    def failing(request):
        return httpx.Response(503, json={"error": "quota exceeded"})

    app.dependency_overrides[get_search_service] = lambda: _search_service(failing)
    async with client_factory() as ac:
        response = await ac.get("/recherche", params={"titre": "x"})

    assert response.status_code == 500
    assert response.json()["error"] == "quota exceeded"
