import pytest

from app.models.internal import Platform
from app.services.classifier import classify, extract_video_id, is_valid_video_url


@pytest.mark.parametrize("url, platform", [
    ("https://www.youtube.com/watch?v=dQw4w9WgXcQ", Platform.YOUTUBE),
    ("youtu.be/dQw4w9WgXcQ", Platform.YOUTUBE),
    ("https://music.youtube.com/watch?v=dQw4w9WgXcQ", Platform.YOUTUBE),
    ("https://www.youtube.com/shorts/abcdefghijk", Platform.YOUTUBE),
    ("https://www.tiktok.com/@someone/video/7312345678901234567", Platform.TIKTOK),
    ("https://vm.tiktok.com/ZMabc123/", Platform.TIKTOK),
    ("https://www.tiktok.com/@someone/photo/7312345678901234567", Platform.TIKTOK),
    ("https://www.instagram.com/reel/Cxyz123/", Platform.INSTAGRAM),
    ("https://x.com/someone/status/1712345678901234567", Platform.TWITTER),
    ("https://www.facebook.com/watch/?v=123456789", Platform.FACEBOOK),
    ("https://fb.watch/abcDEF/", Platform.FACEBOOK),
    ("https://www.reddit.com/r/videos/comments/abc123/title/", Platform.REDDIT),
    ("HTTPS://WWW.YOUTUBE.COM/watch?v=dQw4w9WgXcQ", Platform.YOUTUBE),
])
def test_classify_known_platforms(url, platform):
    assert classify(url) is platform


@pytest.mark.parametrize("url", [
    "",
    "https://example.com/video/1",
    "https://vimeo.com/123456",
    "not a url",
    "https://www.tiktok.com/",
])
def test_classify_unknown(url):
    assert classify(url) is Platform.UNKNOWN


def test_classify_is_deterministic():
    url = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    assert {classify(url) for _ in range(5)} == {Platform.YOUTUBE}


@pytest.mark.parametrize("url, video_id", [
    ("https://www.youtube.com/watch?v=dQw4w9WgXcQ", "dQw4w9WgXcQ"),
    ("https://www.youtube.com/watch?list=PL1&v=dQw4w9WgXcQ", "dQw4w9WgXcQ"),
    ("https://youtu.be/dQw4w9WgXcQ?t=10", "dQw4w9WgXcQ"),
    ("https://www.youtube.com/embed/dQw4w9WgXcQ", "dQw4w9WgXcQ"),
    ("https://www.youtube.com/feed/trending", None),
    ("https://www.youtube.com/watch?v=short", None),
])
def test_extract_video_id(url, video_id):
    assert extract_video_id(url) == video_id


def test_video_url_validation():
    assert is_valid_video_url("https://youtu.be/dQw4w9WgXcQ")
    assert not is_valid_video_url("https://www.youtube.com/@channel")
    assert not is_valid_video_url("https://vimeo.com/dQw4w9WgXcQ")
