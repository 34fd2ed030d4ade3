"""YouTube through an embedded yt-dlp object with post-hoc format selection."""
from typing import Optional

from app.core.errors import UpstreamError
from app.models.internal import MediaRequest
from app.services.format import FormatDecision
from . import register_adapter
from .base import AdapterOutput, BackendAdapter
from .library import LibraryExtractor


class DirectExtractionAdapter(BackendAdapter):
    name = "direct"

    def __init__(self, extractor: Optional[LibraryExtractor] = None):
        super().__init__()
        self.extractor = extractor or LibraryExtractor()

    async def fetch(self, request: MediaRequest) -> AdapterOutput:
        try:
            result = await self.extractor.extract(request.url)
        except Exception as e:
            raise UpstreamError(f"extraction library failed: {e}", cause=e) from e

        if not result.success:
            raise UpstreamError(result.message or "extraction failed")

        info = result.data
        fmt = FormatDecision.select(info.get("formats") or [], request)
        return AdapterOutput(
            source="ytdlp",
            request=request,
            payload={"info": info, "format": fmt, "service": "yt-dlp:library"},
        )


register_adapter(DirectExtractionAdapter)
