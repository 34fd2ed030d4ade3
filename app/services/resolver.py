import logging
from typing import AsyncIterator, Dict, List, Optional, Tuple
from urllib.parse import urlencode

from app.config.settings import config
from app.core.errors import InvalidInput, NoUsableFormat, UnsupportedPlatform
from app.core.state import state
from app.models.internal import MediaRequest, Platform, RelayTarget, ResolvedMedia
from app.models.request import MediaQuery
from app.services.adapters import BackendAdapter, build_registry
from app.services.classifier import classify, is_valid_video_url
from app.services.stream import RelayStreamer
from app.utils.filename import media_filename
from app.utils.locale import safe_url_for_log

logger = logging.getLogger(__name__)


class ResolutionService:
    """Classifier -> adapter -> normalizer, then descriptor or relay"""

    def __init__(
        self,
        registry: Dict[Platform, BackendAdapter],
        streamer: Optional[RelayStreamer] = None,
    ):
        self.registry = dict(registry)
        self.streamer = streamer or RelayStreamer()

    @staticmethod
    def build_request(
        url: Optional[str],
        type_token: Optional[str],
        quality: Optional[str] = None,
    ) -> MediaRequest:
        """Shape validation only; raises InvalidInput before any network call"""
        return MediaQuery(url=url, type=type_token, quality=quality).to_request()

    def supported_platforms(self) -> List[Platform]:
        return [p for p in Platform if p in self.registry]

    def select_adapter(self, request: MediaRequest) -> Tuple[Platform, BackendAdapter]:
        platform = classify(request.url)
        supported = ", ".join(p.label for p in self.supported_platforms())

        if platform is Platform.UNKNOWN:
            raise UnsupportedPlatform("unknown platform", platforms=supported)
        if platform is Platform.YOUTUBE and not is_valid_video_url(request.url):
            raise InvalidInput("invalid YouTube video URL", key="error.invalid_video_url")

        adapter = self.registry.get(platform)
        if adapter is None:
            raise UnsupportedPlatform(f"no adapter for {platform.value}", platforms=supported)
        return platform, adapter

    async def resolve_media(self, request: MediaRequest) -> ResolvedMedia:
        platform, adapter = self.select_adapter(request)
        return await self._resolve(platform, adapter, request)

    async def _resolve(
        self, platform: Platform, adapter: BackendAdapter, request: MediaRequest
    ) -> ResolvedMedia:
        logger.info(
            "Resolving %s media via %s: %s",
            platform.label,
            adapter.name,
            safe_url_for_log(request.url),
        )

        resolved = await adapter.resolve(request, platform)

        if not resolved.is_usable_for(request.kind):
            raise NoUsableFormat(
                "no usable media URL",
                kind=request.kind.value,
                quality=request.quality,
            )
        return resolved

    @staticmethod
    def stream_url(base_url: str, request: MediaRequest) -> str:
        """Same-service relay URL so clients can fetch bytes without resubmitting"""
        query = urlencode({
            "url": request.url,
            "type": request.kind.type_token,
            "quality": request.quality,
        })
        return f"{base_url.rstrip('/')}/stream?{query}"

    async def resolve_and_relay(
        self, request: MediaRequest
    ) -> Tuple[ResolvedMedia, AsyncIterator[bytes], Dict[str, str]]:
        platform, adapter = self.select_adapter(request)
        resolved = await self._resolve(platform, adapter, request)

        if resolved.media_type == "image-set":
            raise NoUsableFormat("image set cannot be relayed", key="error.image_set_relay")

        target = await adapter.relay_target(request, resolved)
        if target is None:
            target = RelayTarget(
                url=resolved.primary_url(request.kind),
                content_type=request.kind.content_type,
                filename=media_filename(
                    resolved.title,
                    request.kind.extension,
                    config.relay.filename_max_length,
                ),
            )

        logger.info("Relaying %s stream: %s", request.kind.value, target.filename)
        generator, headers = await self.streamer.relay(target)
        return resolved, generator, headers


def get_resolution_service() -> ResolutionService:
    """FastAPI dependency; the registry is built once per process"""
    if state.resolver is None:
        state.resolver = ResolutionService(build_registry(config))
    return state.resolver
