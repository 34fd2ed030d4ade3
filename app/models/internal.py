from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Platform(str, Enum):
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    TWITTER = "twitter"
    FACEBOOK = "facebook"
    REDDIT = "reddit"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return {"youtube": "YouTube", "tiktok": "TikTok", "twitter": "Twitter/X"}.get(
            self.value, self.value.title()
        )


class MediaKind(str, Enum):
    AUDIO = "audio"
    VIDEO = "video"

    @property
    def content_type(self) -> str:
        return "audio/mpeg" if self is MediaKind.AUDIO else "video/mp4"

    @property
    def extension(self) -> str:
        return "mp3" if self is MediaKind.AUDIO else "mp4"

    @property
    def type_token(self) -> str:
        """Wire token used by the HTTP surface (MP3/MP4)"""
        return self.extension.upper()


class MediaRequest(BaseModel):
    """Internal resolution request (separated from HTTP concerns)"""
    model_config = ConfigDict(frozen=True)

    url: str = Field(..., min_length=1)
    kind: MediaKind
    quality: str = "highest"

    @property
    def numeric_quality(self) -> Optional[int]:
        digits = self.quality.rstrip("p")
        return int(digits) if digits.isdigit() else None


class BackendInstance(BaseModel):
    """One candidate endpoint for a multi-instance adapter"""
    model_config = ConfigDict(frozen=True)

    name: str
    url: str
    api_key: Optional[str] = None


class MediaLink(BaseModel):
    kind: str  # video | audio | image
    url: str
    ext: Optional[str] = None
    height: Optional[int] = None
    bitrate: Optional[float] = None
    filesize: Optional[int] = None


class ResolvedMedia(BaseModel):
    """Canonical result every adapter output is normalized into"""
    title: str = "Unknown"
    author: Optional[str] = None
    duration: Optional[float] = None
    thumbnail: Optional[str] = None
    links: List[MediaLink] = Field(default_factory=list)
    media_type: str = "video"  # video | audio | image-set
    format: Optional[str] = None
    quality: Optional[str] = None
    size: Optional[int] = None
    filename: Optional[str] = None
    service: str = "unknown"
    platform: str = "unknown"
    status: Optional[str] = None
    stats: Dict[str, Any] = Field(default_factory=dict)

    def links_for(self, kind: MediaKind) -> List[MediaLink]:
        if kind is MediaKind.AUDIO:
            return [link for link in self.links if link.kind == "audio"] or [
                link for link in self.links if link.kind == "video"
            ]
        # An image set stands in for video on slideshow posts
        return [link for link in self.links if link.kind in ("video", "image")]

    def is_usable_for(self, kind: MediaKind) -> bool:
        return any(link.url for link in self.links_for(kind))

    def primary_url(self, kind: MediaKind) -> Optional[str]:
        for link in self.links_for(kind):
            if link.url:
                return link.url
        return None


class RelayTarget(BaseModel):
    """Either a remote URL to fetch-and-pipe, or an extractor command whose stdout is the media"""
    url: Optional[str] = None
    command: Optional[List[str]] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    content_type: str
    filename: str
