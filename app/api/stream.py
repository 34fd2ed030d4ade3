from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from app.core.logging import log_info
from app.infra.rate_limit import rate_limiter
from app.services.resolver import ResolutionService, get_resolution_service
from app.utils.locale import safe_url_for_log

router = APIRouter()


@router.get("/stream", dependencies=[Depends(rate_limiter)])
async def stream_media(
    request: Request,
    url: Optional[str] = Query(None, description="Media URL"),
    urlytb: Optional[str] = Query(None, description="Legacy alias of url"),
    type: Optional[str] = Query(None, description="MP3 | MP4"),
    quality: Optional[str] = Query(None, description="highest | lowest | 720 ..."),
    service: ResolutionService = Depends(get_resolution_service),
):
    """
    Relay media bytes.

    Errors before the first byte are JSON; later failures truncate the
    transfer because headers are already sent.
    """
    media_request = service.build_request(url or urlytb, type, quality)
    log_info(request, f"Stream request: {safe_url_for_log(media_request.url)} ({media_request.kind.value})")

    resolved, generator, headers = await service.resolve_and_relay(media_request)

    async def wrapped_generator():
        sent = 0
        try:
            async for chunk in generator:
                sent += len(chunk)
                yield chunk
        finally:
            await generator.aclose()
            log_info(request, f"Relayed {sent / 1024 / 1024:.1f} MB: {resolved.title}")

    return StreamingResponse(
        wrapped_generator(),
        media_type=headers["Content-Type"],
        headers=headers,
    )
