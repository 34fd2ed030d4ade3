from fastapi import APIRouter, Depends, Request
from redis.exceptions import RedisError

from app.config.settings import config
from app.core.state import state
from app.i18n import i18n
from app.services.resolver import ResolutionService, get_resolution_service
from app.utils.locale import get_locale

router = APIRouter()


@router.get("/")
async def root(request: Request, service: ResolutionService = Depends(get_resolution_service)):
    """Static capability descriptor"""
    _ = i18n.translator(get_locale(request.headers.get("accept-language")))
    return {
        "success": True,
        "message": _("response.message"),
        "service": config.api.title,
        "version": config.api.version,
        "ytdlp": state.ytdlp_version,
        "status": _("response.status_running"),
        "platforms": [p.value for p in service.supported_platforms()],
        "endpoints": {
            "recherche": "/recherche?titre=your_search",
            "download": "/download?url=VIDEO_URL&type=MP3|MP4&quality=highest|lowest|720",
            "stream": "/stream?url=VIDEO_URL&type=MP3|MP4&quality=highest|lowest|720",
        },
        "examples": {
            "recherche": "/recherche?titre=metamorphosis",
            "download": "/download?url=https://www.youtube.com/watch?v=dQw4w9WgXcQ&type=MP3",
            "stream": "/stream?url=https://www.youtube.com/watch?v=dQw4w9WgXcQ&type=MP4&quality=720",
        },
    }


@router.get("/health")
async def health_check():
    """Lightweight health check"""
    redis_status = i18n.get("response.redis_disabled")
    if state.redis:
        try:
            await state.redis.ping()
            redis_status = i18n.get("response.redis_connected")
        except (RedisError, OSError):
            redis_status = i18n.get("response.redis_disconnected")

    return {
        "success": True,
        "status": i18n.get("health.status"),
        "redis": redis_status,
    }
