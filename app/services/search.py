import logging
from typing import Any, List, Optional

import httpx

from app.config.settings import config
from app.core.errors import UpstreamError
from app.infra.http import get_http_client
from app.models.response import SearchResponse, SearchVideo

logger = logging.getLogger(__name__)


def _upstream_error_text(response: httpx.Response) -> Optional[str]:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return None


class YouTubeSearchService:
    """Title search against one fixed remote search service"""

    def __init__(
        self,
        url: Optional[str] = None,
        limit: Optional[int] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url or config.search.url
        self.limit = limit or config.search.limit
        self.timeout = timeout or config.search.timeout_seconds
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or get_http_client()

    async def search(self, query: str) -> SearchResponse:
        try:
            resp = await self.client.get(self.url, params={"title": query}, timeout=self.timeout)
            resp.raise_for_status()
            data: Any = resp.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(_upstream_error_text(e.response) or str(e), cause=e) from e
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamError(str(e) or e.__class__.__name__, cause=e) from e

        if not isinstance(data, dict):
            raise UpstreamError("unexpected search response shape")
        if data.get("error") and not data.get("videos"):
            raise UpstreamError(str(data["error"]))

        videos: List[SearchVideo] = []
        for i, vid in enumerate((data.get("videos") or [])[: self.limit]):
            author = vid.get("author")
            if isinstance(author, dict):
                author = author.get("name")
            duration = vid.get("duration") or vid.get("timestamp")
            if isinstance(duration, dict):
                duration = duration.get("timestamp") or duration.get("seconds")
            videos.append(
                SearchVideo(
                    index=i + 1,
                    title=vid.get("title") or "Unknown",
                    duration=duration,
                    url=vid.get("url") or "",
                    thumb=vid.get("thumb") or vid.get("thumbnail"),
                    channel=vid.get("channel") or author or "N/A",
                )
            )

        return SearchResponse(query=query, count=len(videos), videos=videos)
