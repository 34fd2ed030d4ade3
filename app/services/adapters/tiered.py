"""YouTube through a remote converter exposing one operation per quality bucket."""
import logging
from typing import Dict, List, Optional

import httpx

from app.core.errors import UpstreamError
from app.models.internal import MediaKind, MediaRequest
from . import register_adapter
from .base import AdapterOutput, BackendAdapter

logger = logging.getLogger(__name__)

AUDIO_BUCKET = "audio"


class TieredAdapter(BackendAdapter):
    name = "tiered"

    def __init__(
        self,
        base_url: str,
        endpoints: Dict[str, str],
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(client)
        self.base_url = base_url.rstrip("/")
        self.endpoints = dict(endpoints)
        self.timeout = timeout
        self.buckets: List[int] = sorted(
            (int(k) for k in self.endpoints if k.isdigit()), reverse=True
        )
        if not self.buckets:
            raise ValueError("tiered adapter needs at least one numeric quality bucket")

    @classmethod
    def from_config(cls, cfg) -> "TieredAdapter":
        return cls(
            base_url=cfg.tiered.base_url,
            endpoints=cfg.tiered.endpoints,
            timeout=cfg.tiered.timeout_seconds,
        )

    def bucket_for(self, request: MediaRequest) -> str:
        """
        highest/unspecified -> top bucket, lowest -> bottom bucket,
        numeric -> highest bucket not above it (bottom bucket if none)
        """
        if request.kind is MediaKind.AUDIO and AUDIO_BUCKET in self.endpoints:
            return AUDIO_BUCKET
        if request.quality == "lowest":
            return str(self.buckets[-1])
        target = request.numeric_quality
        if target is None:
            return str(self.buckets[0])
        for bucket in self.buckets:
            if bucket <= target:
                return str(bucket)
        return str(self.buckets[-1])

    async def fetch(self, request: MediaRequest) -> AdapterOutput:
        bucket = self.bucket_for(request)
        endpoint = f"{self.base_url}{self.endpoints[bucket]}"

        try:
            resp = await self.client.get(endpoint, params={"url": request.url}, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(f"remote service returned HTTP {e.response.status_code}", cause=e) from e
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamError(f"remote service failed: {str(e) or e.__class__.__name__}", cause=e) from e

        if not isinstance(data, dict):
            raise UpstreamError("unexpected remote response shape")
        if data.get("status") in ("error", "fail") or data.get("error"):
            raise UpstreamError(str(data.get("error") or data.get("message") or "remote service error"))

        # Some mirrors wrap the result in a `data` or `result` object
        inner = data.get("data") or data.get("result")
        if isinstance(inner, dict):
            data = {**data, **inner}

        logger.info("Tiered service answered bucket %s", bucket)
        return AdapterOutput(source="tiered", request=request, payload={"bucket": bucket, "data": data})


register_adapter(TieredAdapter)
