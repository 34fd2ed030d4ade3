from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class SearchVideo(BaseModel):
    """Single search result"""
    index: int
    title: str
    duration: Optional[Union[str, int, float]] = None
    url: str
    thumb: Optional[str] = None
    channel: str = "N/A"


class SearchResponse(BaseModel):
    """Title search results"""
    success: bool = True
    query: str
    count: int
    videos: List[SearchVideo]


class DownloadResponse(BaseModel):
    """Resolved media descriptor plus a same-service relay URL"""
    success: bool = True
    platform: str
    type: str
    service: str
    status: Optional[str] = None
    title: str
    author: Optional[str] = None
    duration: Optional[float] = None
    thumbnail: Optional[str] = None
    url: Optional[str] = None
    media_type: str
    links: List[Dict[str, Any]] = Field(default_factory=list)
    format: Optional[str] = None
    quality: Optional[str] = None
    size: Optional[int] = None
    filename: Optional[str] = None
    stats: Dict[str, Any] = Field(default_factory=dict)
    streamUrl: str
    timestamp: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    timestamp: str


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
