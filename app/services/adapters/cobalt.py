"""Cobalt-style resolver with sequential failover across instances."""
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from app.core.errors import UpstreamError
from app.models.internal import BackendInstance, MediaKind, MediaRequest
from . import register_adapter
from .base import AdapterOutput, BackendAdapter

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = {"tunnel", "redirect", "picker", "stream"}
ERROR_STATUSES = {"error", "rate-limit"}
VIDEO_QUALITIES = (144, 240, 360, 480, 720, 1080, 1440, 2160, 4320)


def _error_text(data: Dict[str, Any]) -> str:
    """Cobalt v7 uses `text`, v10 nests an `error.code`"""
    error = data.get("error")
    if isinstance(error, dict):
        return str(error.get("code") or error)
    return str(data.get("text") or error or data.get("status") or "unknown error")


class CobaltAdapter(BackendAdapter):
    name = "cobalt"

    def __init__(
        self,
        instances: Sequence[BackendInstance],
        timeout: float = 30.0,
        video_codec: str = "h264",
        audio_format: str = "mp3",
        audio_bitrate: str = "128",
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(client)
        self.instances: List[BackendInstance] = list(instances)
        self.timeout = timeout
        self.video_codec = video_codec
        self.audio_format = audio_format
        self.audio_bitrate = audio_bitrate

    @classmethod
    def from_config(cls, cfg) -> "CobaltAdapter":
        resolver = cfg.resolver
        return cls(
            instances=[BackendInstance(**i.model_dump()) for i in resolver.instances],
            timeout=resolver.timeout_seconds,
            video_codec=resolver.video_codec,
            audio_format=resolver.audio_format,
            audio_bitrate=resolver.audio_bitrate,
        )

    @staticmethod
    def video_quality(request: MediaRequest) -> str:
        if request.quality == "lowest":
            return str(VIDEO_QUALITIES[0])
        target = request.numeric_quality
        if target is None:
            return "max"
        return str(min(VIDEO_QUALITIES, key=lambda q: (abs(q - target), q)))

    def build_body(self, request: MediaRequest) -> Dict[str, Any]:
        """Single normalized body submitted unchanged to every instance"""
        return {
            "url": request.url,
            "videoQuality": self.video_quality(request),
            "youtubeVideoCodec": self.video_codec,
            "audioFormat": self.audio_format,
            "audioBitrate": self.audio_bitrate,
            "downloadMode": "audio" if request.kind is MediaKind.AUDIO else "auto",
            "filenameStyle": "basic",
        }

    async def _attempt(self, instance: BackendInstance, body: Dict[str, Any]) -> Dict[str, Any]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if instance.api_key:
            headers["Authorization"] = f"Api-Key {instance.api_key}"

        resp = await self.client.post(instance.url, json=body, headers=headers, timeout=self.timeout)
        try:
            data = resp.json()
        except ValueError:
            raise UpstreamError(f"HTTP {resp.status_code} (non-JSON body)")

        if not isinstance(data, dict):
            raise UpstreamError("unexpected response shape")

        status = data.get("status")
        if resp.status_code >= 400 or status in ERROR_STATUSES:
            raise UpstreamError(f"HTTP {resp.status_code}: {_error_text(data)}")
        if status not in SUCCESS_STATUSES:
            raise UpstreamError(f"unrecognized status {status!r}")

        if status == "picker":
            items = data.get("picker") or []
            if not items or not isinstance(items[0], dict) or not items[0].get("url"):
                raise UpstreamError("empty picker")
            data["picker_item"] = items[0]

        return data

    async def fetch(self, request: MediaRequest) -> AdapterOutput:
        body = self.build_body(request)
        last_error: Optional[Exception] = None

        for instance in self.instances:
            try:
                data = await self._attempt(instance, body)
            except (httpx.HTTPError, UpstreamError, KeyError, TypeError, AttributeError) as e:
                # Swallowed so the next instance still gets a chance
                last_error = e
                logger.warning(
                    "Resolver instance %s failed: %s",
                    instance.name,
                    str(e) or e.__class__.__name__,
                )
                continue

            logger.info("Resolver instance %s answered %s", instance.name, data.get("status"))
            return AdapterOutput(
                source="cobalt",
                request=request,
                payload={
                    "instance": instance.name,
                    "status": "tunnel" if data.get("status") == "stream" else data.get("status"),
                    "url": data.get("url"),
                    "filename": data.get("filename"),
                    "audio": data.get("audio"),
                    "picker_item": data.get("picker_item"),
                },
            )

        raise UpstreamError("all resolver instances unavailable", cause=last_error)


register_adapter(CobaltAdapter)
