import logging
from typing import AsyncIterator, Dict, Optional, Tuple

import httpx

from app.config.settings import config
from app.core.errors import UpstreamError
from app.infra.http import get_http_client
from app.models.internal import RelayTarget
from app.services.ytdlp import ProcessExtractor
from app.utils.filename import content_disposition

logger = logging.getLogger(__name__)


class RelayStreamer:
    """
    Pipe media bytes to the caller without buffering the payload.

    Errors raised before the first chunk become JSON errors. Once headers are
    committed, an upstream failure re-raises inside the iterator so the server
    drops the connection: the caller sees a truncated transfer, never an
    error body.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        extractor: Optional[ProcessExtractor] = None,
        timeout: Optional[float] = None,
        chunk_size: Optional[int] = None,
    ):
        self._client = client
        self.extractor = extractor or ProcessExtractor()
        self.timeout = timeout or config.relay.timeout_seconds
        self.chunk_size = chunk_size or config.relay.chunk_size

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or get_http_client()

    async def relay(self, target: RelayTarget) -> Tuple[AsyncIterator[bytes], Dict[str, str]]:
        headers = {
            "Content-Type": target.content_type,
            "Content-Disposition": content_disposition(target.filename),
            "X-Content-Type-Options": "nosniff",
            "Cache-Control": "no-cache",
        }

        if target.command:
            generator = await self.extractor.stream_media(target.command)
        elif target.url:
            generator, length = await self._open_remote(target)
            if length:
                headers["Content-Length"] = length
        else:
            raise UpstreamError("nothing to relay")

        return generator, headers

    async def _open_remote(self, target: RelayTarget) -> Tuple[AsyncIterator[bytes], Optional[str]]:
        req = self.client.build_request(
            "GET",
            target.url,
            headers={"Accept": "*/*", "Accept-Encoding": "identity", **target.headers},
            timeout=httpx.Timeout(self.timeout),
        )
        try:
            resp = await self.client.send(req, stream=True)
        except httpx.HTTPError as e:
            raise UpstreamError(f"relay upstream unreachable: {str(e) or e.__class__.__name__}", cause=e) from e

        if resp.status_code >= 400:
            await resp.aclose()
            raise UpstreamError(f"relay upstream returned HTTP {resp.status_code}")

        async def generate():
            try:
                async for chunk in resp.aiter_bytes(self.chunk_size):
                    yield chunk
            except httpx.HTTPError as e:
                logger.warning("Relay truncated: %s", str(e) or e.__class__.__name__)
                raise
            finally:
                await resp.aclose()

        return generate(), resp.headers.get("content-length")
