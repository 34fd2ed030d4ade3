from typing import Any, Dict, List

from app.core.errors import NoUsableFormat
from app.models.internal import MediaKind, MediaRequest

Format = Dict[str, Any]


def has_audio(f: Format) -> bool:
    codec = f.get("acodec")
    return bool(codec) and codec != "none"


def has_video(f: Format) -> bool:
    codec = f.get("vcodec")
    return bool(codec) and codec != "none"


def bitrate(f: Format) -> float:
    return float(f.get("abr") or f.get("tbr") or f.get("bitrate") or 0)


def height(f: Format) -> int:
    return int(f.get("height") or 0)


class FormatDecision:
    """Make format decisions"""

    @staticmethod
    def select(formats: List[Format], request: MediaRequest) -> Format:
        """
        Pick one entry from an extractor format list.

        Audio: audio-only by highest bitrate, else combined audio+video by
        (higher bitrate, lower height). Video: combined formats only, max or
        min height for highest/lowest, otherwise the exact or closest height.
        """
        usable = [f for f in formats if f.get("url")]
        combined = [f for f in usable if has_audio(f) and has_video(f)]

        if request.kind is MediaKind.AUDIO:
            audio_only = [f for f in usable if has_audio(f) and not has_video(f)]
            if audio_only:
                return max(audio_only, key=bitrate)
            if combined:
                return max(combined, key=lambda f: (bitrate(f), -height(f)))
            raise NoUsableFormat(
                "no audio format", kind=request.kind.value, quality=request.quality
            )

        if not combined:
            raise NoUsableFormat(
                "no combined audio+video format", kind=request.kind.value, quality=request.quality
            )

        if request.quality == "lowest":
            return min(combined, key=height)

        target = request.numeric_quality
        if target is None:
            return max(combined, key=height)

        for f in combined:
            if height(f) == target:
                return f
        return min(combined, key=lambda f: (abs(height(f) - target), height(f)))

    @staticmethod
    def selector(request: MediaRequest) -> str:
        """yt-dlp native format expression for process relays"""
        if request.kind is MediaKind.AUDIO:
            if request.quality == "lowest":
                return "worstaudio/worst"
            return "bestaudio/best"

        if request.quality == "lowest":
            return "worstvideo+worstaudio/worst"

        target = request.numeric_quality
        if target is not None:
            return (
                f"bestvideo[height<={target}]+bestaudio/"
                f"best[height<={target}]/best"
            )

        return "bestvideo+bestaudio/best"
