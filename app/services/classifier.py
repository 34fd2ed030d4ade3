import re
from typing import Dict, List, Optional

from app.models.internal import Platform

# Order matters: first platform with a matching pattern wins
PLATFORM_PATTERNS: Dict[Platform, List[re.Pattern]] = {
    Platform.YOUTUBE: [
        re.compile(r"^(?:https?://)?(?:www\.|m\.|music\.)?youtube\.com/", re.IGNORECASE),
        re.compile(r"^(?:https?://)?youtu\.be/", re.IGNORECASE),
        re.compile(r"^(?:https?://)?(?:www\.)?youtube-nocookie\.com/embed/", re.IGNORECASE),
    ],
    Platform.TIKTOK: [
        re.compile(r"^(?:https?://)?(?:www\.|m\.)?tiktok\.com/@[\w.-]+/(?:video|photo)/\d+", re.IGNORECASE),
        re.compile(r"^(?:https?://)?(?:vm|vt)\.tiktok\.com/[\w-]+", re.IGNORECASE),
        re.compile(r"^(?:https?://)?(?:www\.)?tiktok\.com/t/[\w-]+", re.IGNORECASE),
    ],
    Platform.INSTAGRAM: [
        re.compile(r"^(?:https?://)?(?:www\.)?instagram\.com/(?:p|reel|reels|tv|stories)/[\w.-]+", re.IGNORECASE),
        re.compile(r"^(?:https?://)?(?:www\.)?instagram\.com/[\w.]+/(?:p|reel)/[\w-]+", re.IGNORECASE),
    ],
    Platform.TWITTER: [
        re.compile(r"^(?:https?://)?(?:www\.|mobile\.)?(?:twitter|x)\.com/\w+/status/\d+", re.IGNORECASE),
    ],
    Platform.FACEBOOK: [
        re.compile(r"^(?:https?://)?(?:www\.|m\.|web\.)?facebook\.com/.+/videos/", re.IGNORECASE),
        re.compile(r"^(?:https?://)?(?:www\.|m\.)?facebook\.com/watch/?\?v=\d+", re.IGNORECASE),
        re.compile(r"^(?:https?://)?(?:www\.|m\.)?facebook\.com/(?:reel|share/[rv])/[\w-]+", re.IGNORECASE),
        re.compile(r"^(?:https?://)?fb\.watch/[\w-]+", re.IGNORECASE),
    ],
    Platform.REDDIT: [
        re.compile(r"^(?:https?://)?(?:www\.|old\.)?reddit\.com/r/\w+/(?:comments|s)/\w+", re.IGNORECASE),
        re.compile(r"^(?:https?://)?v\.redd\.it/\w+", re.IGNORECASE),
    ],
}

VIDEO_ID_PATTERNS = [
    re.compile(r"(?:youtube\.com|youtube-nocookie\.com)/(?:watch\?(?:.*&)?v=|embed/|shorts/|live/|v/)([\w-]{11})(?![\w-])", re.IGNORECASE),
    re.compile(r"youtu\.be/([\w-]{11})(?![\w-])", re.IGNORECASE),
]


def classify(url: str) -> Platform:
    """Detect which platform a URL belongs to. Pure, never raises."""
    if not url:
        return Platform.UNKNOWN
    candidate = url.strip()
    for platform, patterns in PLATFORM_PATTERNS.items():
        for pattern in patterns:
            if pattern.match(candidate):
                return platform
    return Platform.UNKNOWN


def extract_video_id(url: str) -> Optional[str]:
    """Extract the 11-character YouTube video id, or None"""
    for pattern in VIDEO_ID_PATTERNS:
        match = pattern.search(url or "")
        if match:
            return match.group(1)
    return None


def is_valid_video_url(url: str) -> bool:
    return classify(url) is Platform.YOUTUBE and extract_video_id(url) is not None
