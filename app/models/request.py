import re
from typing import Optional

from pydantic import BaseModel, Field

from app.core.errors import InvalidInput
from app.models.internal import MediaKind, MediaRequest

TYPE_TOKENS = {
    "mp3": MediaKind.AUDIO,
    "audio": MediaKind.AUDIO,
    "mp4": MediaKind.VIDEO,
    "video": MediaKind.VIDEO,
}

QUALITY_PATTERN = re.compile(r"^(highest|lowest|[1-9]\d{1,3}p?)$")


class MediaQuery(BaseModel):
    """Raw query parameters shared by /download and /stream"""
    url: Optional[str] = Field(None, description="Media URL")
    urlytb: Optional[str] = Field(None, description="Legacy alias of url")
    type: Optional[str] = Field(None, description="MP3 | MP4 | audio | video")
    quality: Optional[str] = Field(None, description="highest | lowest | resolution such as 720")

    @property
    def source_url(self) -> str:
        return (self.url or self.urlytb or "").strip()

    def to_request(self) -> MediaRequest:
        """Validate shape and convert to a resolution request"""
        source_url = self.source_url
        if not source_url:
            raise InvalidInput("missing url", key="error.missing_url")
        if not source_url.lower().startswith(("http://", "https://")):
            source_url = f"https://{source_url}"

        kind = TYPE_TOKENS.get((self.type or "").strip().lower())
        if kind is None:
            raise InvalidInput(f"invalid type {self.type!r}", key="error.invalid_type")

        quality = (self.quality or "highest").strip().lower()
        if quality in ("best", "max"):
            quality = "highest"
        elif quality in ("worst", "min"):
            quality = "lowest"
        if not QUALITY_PATTERN.match(quality):
            raise InvalidInput(
                f"invalid quality {self.quality!r}",
                key="error.invalid_quality",
                quality=self.quality,
            )
        if quality.endswith("p"):
            quality = quality[:-1]

        return MediaRequest(url=source_url, kind=kind, quality=quality)
