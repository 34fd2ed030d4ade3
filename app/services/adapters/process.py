"""YouTube through the yt-dlp command-line extractor."""
from typing import Optional

from app.config.settings import config
from app.models.internal import MediaRequest, RelayTarget, ResolvedMedia
from app.services.format import FormatDecision
from app.services.ytdlp import ProcessExtractor, YTDLPCommandBuilder
from app.utils.filename import media_filename
from . import register_adapter
from .base import AdapterOutput, BackendAdapter


class ProcessAdapter(BackendAdapter):
    name = "process"

    def __init__(self, extractor: Optional[ProcessExtractor] = None):
        super().__init__()
        self.extractor = extractor or ProcessExtractor()

    async def fetch(self, request: MediaRequest) -> AdapterOutput:
        info = await self.extractor.fetch_metadata(request.url)
        fmt = FormatDecision.select(info.get("formats") or [], request)
        return AdapterOutput(
            source="ytdlp",
            request=request,
            payload={"info": info, "format": fmt, "service": "yt-dlp:process"},
        )

    async def relay_target(self, request: MediaRequest, resolved: ResolvedMedia) -> RelayTarget:
        """The extractor writes the selected media straight to stdout"""
        command = YTDLPCommandBuilder.build_stream_command(
            request.url,
            FormatDecision.selector(request),
            request.kind,
        )
        return RelayTarget(
            command=command,
            content_type=request.kind.content_type,
            filename=media_filename(resolved.title, request.kind.extension, config.relay.filename_max_length),
        )


register_adapter(ProcessAdapter)
