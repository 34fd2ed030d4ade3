from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from redis.asyncio import Redis

if TYPE_CHECKING:
    from app.services.resolver import ResolutionService


@dataclass
class RuntimeState:
    """Centralized runtime state"""
    redis: Optional[Redis] = None
    resolver: Optional["ResolutionService"] = None
    ytdlp_version: str = "unknown"


state = RuntimeState()
