"""Base classes for backend adapters."""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional

import httpx

from app.infra.http import get_http_client
from app.models.internal import MediaRequest, Platform, RelayTarget, ResolvedMedia
from app.services.normalizer import normalizer


@dataclass
class AdapterOutput:
    """Raw, upstream-shaped result of one adapter call"""
    source: str
    request: MediaRequest
    payload: Dict[str, Any] = field(default_factory=dict)


class BackendAdapter(ABC):
    """
    One external extraction mechanism behind the resolution contract.

    Subclasses implement fetch(); lower-level transport and library errors
    must surface as UpstreamError.
    """
    name: ClassVar[str]

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or get_http_client()

    @classmethod
    def from_config(cls, cfg) -> "BackendAdapter":
        return cls()

    @abstractmethod
    async def fetch(self, request: MediaRequest) -> AdapterOutput:
        ...

    async def resolve(self, request: MediaRequest, platform: Platform) -> ResolvedMedia:
        return normalizer.normalize(platform, await self.fetch(request))

    async def relay_target(self, request: MediaRequest, resolved: ResolvedMedia) -> Optional[RelayTarget]:
        """Adapter-specific relay source; None means relay the resolved URL"""
        return None
