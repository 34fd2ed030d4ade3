"""TikTok / Facebook through the yt-dlp Python API."""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yt_dlp

from app.config.settings import config
from app.core.errors import NoUsableFormat, UpstreamError
from app.models.internal import MediaKind, MediaRequest
from app.services.format import FormatDecision, bitrate, has_audio, has_video
from . import register_adapter
from .base import AdapterOutput, BackendAdapter

logger = logging.getLogger(__name__)

IMAGE_EXTS = {"jpg", "jpeg", "png", "webp", "heic"}


@dataclass
class ExtractionResult:
    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    message: Optional[str] = None


class LibraryExtractor:
    """Embedded yt-dlp, run off the event loop"""

    def __init__(self, allow_playlist: bool = False, options: Optional[Dict[str, Any]] = None):
        self.options = {
            "quiet": True,
            "no_warnings": True,
            "skip_download": True,
            "noplaylist": not allow_playlist,
            "socket_timeout": config.ytdlp.socket_timeout,
            "retries": config.ytdlp.retries,
            **(options or {}),
        }

    def _extract_sync(self, url: str) -> ExtractionResult:
        try:
            with yt_dlp.YoutubeDL(self.options) as ydl:
                info = ydl.extract_info(url, download=False)
                if not info:
                    return ExtractionResult(success=False, message="empty extraction result")
                return ExtractionResult(success=True, data=ydl.sanitize_info(info))
        except yt_dlp.utils.DownloadError as e:
            return ExtractionResult(success=False, message=str(e).removeprefix("ERROR: "))

    async def extract(self, url: str) -> ExtractionResult:
        return await asyncio.to_thread(self._extract_sync, url)


def is_image_set(info: Dict[str, Any]) -> bool:
    """True when the extraction looks like a photo slideshow"""
    if info.get("_type") == "playlist" and isinstance(info.get("entries"), list):
        for entry in info["entries"]:
            if isinstance(entry, dict) and (entry.get("ext") or "").lower() in IMAGE_EXTS:
                return True
    return (info.get("ext") or "").lower() in IMAGE_EXTS


def _music_url(info: Dict[str, Any]) -> Optional[str]:
    audio_only = [
        f for f in info.get("formats") or []
        if f.get("url") and has_audio(f) and not has_video(f)
    ]
    if audio_only:
        return max(audio_only, key=bitrate)["url"]
    return None


def _stats(info: Dict[str, Any]) -> Dict[str, int]:
    counters = {
        "views": info.get("view_count"),
        "likes": info.get("like_count"),
        "comments": info.get("comment_count"),
        "shares": info.get("repost_count"),
    }
    return {k: v for k, v in counters.items() if v is not None}


class ExternalLibraryAdapter(BackendAdapter):
    name = "library"

    def __init__(self, extractor: Optional[LibraryExtractor] = None):
        super().__init__()
        # Playlists are needed to see slideshow entries
        self.extractor = extractor or LibraryExtractor(allow_playlist=True)

    def _image_set(self, info: Dict[str, Any]) -> Dict[str, Any]:
        entries: List[Dict[str, Any]] = [e for e in info.get("entries") or [] if isinstance(e, dict)]
        images = [
            e.get("url") for e in entries
            if e.get("url") and (e.get("ext") or "").lower() in IMAGE_EXTS
        ]
        if not images and info.get("url"):
            images = [info["url"]]
        if not images:
            raise UpstreamError("image set without image URLs")

        music = _music_url(info)
        if music is None:
            music = next((_music_url(e) for e in entries if _music_url(e)), None)
        return {"type": "images", "images": images, "music": music}

    def _video(self, info: Dict[str, Any], request: MediaRequest) -> Dict[str, Any]:
        formats = info.get("formats") or []
        video_request = request.model_copy(update={"kind": MediaKind.VIDEO})
        try:
            fmt = FormatDecision.select(formats, video_request)
        except NoUsableFormat:
            fmt = {"url": info.get("url"), "ext": info.get("ext"), "height": info.get("height")}
        if not fmt.get("url"):
            raise UpstreamError("extraction returned no video URL")

        return {
            "type": "video",
            "video": {
                "url": fmt["url"],
                "ext": fmt.get("ext"),
                "height": fmt.get("height"),
                "filesize": fmt.get("filesize") or fmt.get("filesize_approx"),
            },
            "music": _music_url(info),
        }

    async def fetch(self, request: MediaRequest) -> AdapterOutput:
        try:
            result = await self.extractor.extract(request.url)
        except Exception as e:
            raise UpstreamError(f"extraction library failed: {e}", cause=e) from e

        if not result.success:
            raise UpstreamError(result.message or "extraction failed")

        info = result.data
        if not isinstance(info, dict):
            raise UpstreamError("unexpected extraction result")

        payload = self._image_set(info) if is_image_set(info) else self._video(info, request)
        payload.update({
            "title": info.get("title") or info.get("description"),
            "author": info.get("uploader") or info.get("creator") or info.get("channel"),
            "duration": info.get("duration"),
            "cover": info.get("thumbnail"),
            "stats": _stats(info),
        })
        logger.debug("Library extraction for %s: %s", request.url, payload["type"])
        return AdapterOutput(source="library", request=request, payload=payload)


register_adapter(ExternalLibraryAdapter)
