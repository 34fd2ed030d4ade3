"""
Per-adapter mapping functions into the canonical ResolvedMedia.

Each upstream shape has exactly one mapper, so schema drift in one service
cannot leak into another's fields.
"""
import os
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from app.config.settings import config
from app.core.errors import UpstreamError
from app.models.internal import MediaKind, MediaLink, Platform, ResolvedMedia
from app.services.format import bitrate, has_audio, has_video
from app.utils.filename import media_filename

if TYPE_CHECKING:
    from app.services.adapters.base import AdapterOutput

Mapper = Callable[[Platform, "AdapterOutput"], ResolvedMedia]


def _ext(filename: Optional[str]) -> Optional[str]:
    if not filename:
        return None
    ext = os.path.splitext(filename)[1].lstrip(".").lower()
    return ext or None


def _title_from_filename(filename: Optional[str]) -> Optional[str]:
    if not filename:
        return None
    return os.path.splitext(filename)[0] or None


def _quality_label(output: "AdapterOutput", height: Optional[int] = None) -> str:
    request = output.request
    if request.kind is MediaKind.AUDIO:
        return "audio"
    if height:
        return f"{height}p"
    return f"{request.quality}p" if request.numeric_quality else request.quality


def _filename(title: str, kind: MediaKind) -> str:
    return media_filename(title, kind.extension, config.relay.filename_max_length)


def map_cobalt(platform: Platform, output: "AdapterOutput") -> ResolvedMedia:
    payload = output.payload
    request = output.request
    item = payload.get("picker_item") or {}

    if request.kind is MediaKind.AUDIO:
        link_kind = "audio"
    elif item.get("type") == "photo":
        link_kind = "image"
    else:
        link_kind = "video"

    links: List[MediaLink] = []
    url = payload.get("url") or item.get("url")
    if url:
        links.append(MediaLink(kind=link_kind, url=url, ext=_ext(payload.get("filename"))))
    if payload.get("audio") and request.kind is MediaKind.VIDEO:
        links.append(MediaLink(kind="audio", url=payload["audio"]))

    filename = payload.get("filename")
    title = _title_from_filename(filename) or "Unknown"
    return ResolvedMedia(
        title=title,
        thumbnail=item.get("thumb"),
        links=links,
        media_type="image-set" if link_kind == "image" else request.kind.value,
        format=_ext(filename) or request.kind.extension,
        quality=_quality_label(output),
        filename=filename or _filename(title, request.kind),
        service=f"cobalt:{payload.get('instance', 'unknown')}",
        platform=platform.value,
        status=payload.get("status"),
    )


def map_library(platform: Platform, output: "AdapterOutput") -> ResolvedMedia:
    payload = output.payload
    request = output.request
    title = payload.get("title") or "Unknown"

    links: List[MediaLink] = []
    if payload.get("type") == "images":
        links.extend(MediaLink(kind="image", url=u) for u in payload.get("images") or [] if u)
        media_type = "image-set"
    else:
        video = payload.get("video") or {}
        if video.get("url"):
            links.append(MediaLink(
                kind="video",
                url=video["url"],
                ext=video.get("ext"),
                height=video.get("height"),
                filesize=video.get("filesize"),
            ))
        media_type = request.kind.value
    if payload.get("music"):
        links.append(MediaLink(kind="audio", url=payload["music"]))

    video = payload.get("video") or {}
    return ResolvedMedia(
        title=title,
        author=payload.get("author") or "Unknown",
        duration=payload.get("duration"),
        thumbnail=payload.get("cover"),
        links=links,
        media_type=media_type,
        format=video.get("ext") or ("jpg" if media_type == "image-set" else request.kind.extension),
        quality=_quality_label(output, video.get("height")),
        size=video.get("filesize"),
        filename=_filename(title, request.kind),
        service=f"library:{platform.value}",
        platform=platform.value,
        stats=payload.get("stats") or {},
    )


LINK_FIELDS = ("link", "dlink", "url", "download_url")


def map_tiered(platform: Platform, output: "AdapterOutput") -> ResolvedMedia:
    payload = output.payload
    request = output.request
    data: Dict[str, Any] = payload.get("data") or {}
    link = next((data[f] for f in LINK_FIELDS if data.get(f)), None)
    if not link:
        raise UpstreamError("remote service returned no download link")

    title = data.get("title") or "Unknown"
    bucket = payload.get("bucket")
    size = data.get("filesize") or data.get("size")
    return ResolvedMedia(
        title=title,
        author=data.get("author") or data.get("channel") or "Unknown",
        duration=data.get("duration"),
        thumbnail=data.get("thumbnail") or data.get("thumb"),
        links=[MediaLink(kind=request.kind.value, url=link, ext=request.kind.extension)],
        media_type=request.kind.value,
        format=request.kind.extension,
        quality="audio" if bucket == "audio" else f"{bucket}p",
        size=size if isinstance(size, int) else None,
        filename=_filename(title, request.kind),
        service="tiered",
        platform=platform.value,
    )


def map_ytdlp(platform: Platform, output: "AdapterOutput") -> ResolvedMedia:
    payload = output.payload
    request = output.request
    info: Dict[str, Any] = payload.get("info") or {}
    fmt: Dict[str, Any] = payload.get("format") or {}

    if has_video(fmt):
        kind = "video" if request.kind is MediaKind.VIDEO or not has_audio(fmt) else "audio"
    else:
        kind = "audio"

    title = info.get("title") or "Unknown"
    size = fmt.get("filesize") or fmt.get("filesize_approx")
    return ResolvedMedia(
        title=title,
        author=info.get("uploader") or info.get("channel") or "Unknown",
        duration=info.get("duration"),
        thumbnail=info.get("thumbnail"),
        links=[MediaLink(
            kind=kind,
            url=fmt["url"],
            ext=fmt.get("ext"),
            height=fmt.get("height"),
            bitrate=bitrate(fmt) or None,
            filesize=size,
        )],
        media_type=request.kind.value,
        format=fmt.get("ext"),
        quality=_quality_label(output, fmt.get("height") if request.kind is MediaKind.VIDEO else None),
        size=size,
        filename=_filename(title, request.kind),
        service=payload.get("service", "yt-dlp"),
        platform=platform.value,
        stats={k: info[k] for k in ("view_count", "like_count") if info.get(k) is not None},
    )


class ResultNormalizer:
    """Dispatch adapter outputs to their mapping function"""

    def __init__(self):
        self._mappers: Dict[str, Mapper] = {}

    def register(self, source: str, mapper: Mapper) -> None:
        self._mappers[source] = mapper

    def normalize(self, platform: Platform, output: "AdapterOutput") -> ResolvedMedia:
        mapper = self._mappers.get(output.source)
        if mapper is None:
            raise UpstreamError(f"no result mapping for {output.source}")
        try:
            return mapper(platform, output)
        except UpstreamError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamError(f"unexpected {output.source} response shape: {e}", cause=e) from e


normalizer = ResultNormalizer()
normalizer.register("cobalt", map_cobalt)
normalizer.register("library", map_library)
normalizer.register("tiered", map_tiered)
normalizer.register("ytdlp", map_ytdlp)
