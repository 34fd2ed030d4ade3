from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from app.core.logging import log_info
from app.infra.rate_limit import rate_limiter
from app.models.response import DownloadResponse, utc_timestamp
from app.services.resolver import ResolutionService, get_resolution_service
from app.utils.locale import safe_url_for_log

router = APIRouter()


@router.get("/download", response_model=DownloadResponse, dependencies=[Depends(rate_limiter)])
async def download_media(
    request: Request,
    url: Optional[str] = Query(None, description="Media URL"),
    urlytb: Optional[str] = Query(None, description="Legacy alias of url"),
    type: Optional[str] = Query(None, description="MP3 | MP4"),
    quality: Optional[str] = Query(None, description="highest | lowest | 720 ..."),
    service: ResolutionService = Depends(get_resolution_service),
):
    """Resolve media and return a JSON descriptor plus a relay URL"""
    media_request = service.build_request(url or urlytb, type, quality)
    log_info(request, f"Download request: {safe_url_for_log(media_request.url)} ({media_request.kind.value})")

    resolved = await service.resolve_media(media_request)
    log_info(request, f"Resolved: {resolved.title}")

    return DownloadResponse(
        platform=resolved.platform,
        type=media_request.kind.type_token,
        service=resolved.service,
        status=resolved.status,
        title=resolved.title,
        author=resolved.author,
        duration=resolved.duration,
        thumbnail=resolved.thumbnail,
        url=resolved.primary_url(media_request.kind),
        media_type=resolved.media_type,
        links=[link.model_dump(exclude_none=True) for link in resolved.links],
        format=resolved.format,
        quality=resolved.quality,
        size=resolved.size,
        filename=resolved.filename,
        stats=resolved.stats,
        streamUrl=service.stream_url(str(request.base_url), media_request),
        timestamp=utc_timestamp(),
    )
