from .internal import MediaKind, MediaRequest, Platform, RelayTarget, ResolvedMedia
from .request import MediaQuery
from .response import DownloadResponse, ErrorResponse, SearchResponse, SearchVideo

__all__ = [
    "DownloadResponse",
    "ErrorResponse",
    "MediaKind",
    "MediaQuery",
    "MediaRequest",
    "Platform",
    "RelayTarget",
    "ResolvedMedia",
    "SearchResponse",
    "SearchVideo",
]
