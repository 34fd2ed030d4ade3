from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from app.core.errors import InvalidInput
from app.core.logging import log_info
from app.infra.rate_limit import rate_limiter
from app.models.response import SearchResponse
from app.services.search import YouTubeSearchService
from app.utils.locale import get_locale

router = APIRouter()


def get_search_service() -> YouTubeSearchService:
    return YouTubeSearchService()


@router.get("/recherche", response_model=SearchResponse, dependencies=[Depends(rate_limiter)])
async def search_videos(
    request: Request,
    titre: Optional[str] = Query(None, description="Search query"),
    service: YouTubeSearchService = Depends(get_search_service),
):
    """Search YouTube videos by title (first results only)."""
    if not titre or not titre.strip():
        raise InvalidInput("missing titre", key="error.missing_title")

    log_info(request, f"Search request: q={titre} locale={get_locale(request.headers.get('accept-language'))}")
    return await service.search(titre.strip())
