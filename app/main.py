import logging
import uuid

import yt_dlp
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import download, health, search, stream
from app.config.settings import config
from app.core.errors import MediaResolverError, UpstreamError
from app.core.logging import log_error, log_warning, setup_logging
from app.core.state import state
from app.i18n import i18n
from app.infra.http import close_http_client
from app.infra.redis import close_redis, init_redis
from app.models.response import ErrorResponse, utc_timestamp
from app.services.resolver import get_resolution_service
from app.utils.locale import get_locale

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title=config.api.title,
    description=config.api.description,
    version=config.api.version,
    docs_url="/docs" if config.api.debug else None,
    redoc_url=None
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request.state.request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    return response


def error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    body = ErrorResponse(error=message, timestamp=utc_timestamp())
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


@app.exception_handler(MediaResolverError)
async def media_error_handler(request: Request, exc: MediaResolverError):
    _ = i18n.translator(get_locale(request.headers.get("accept-language")))
    message = _(exc.message_key, message=exc.message, **exc.params)

    if isinstance(exc, UpstreamError):
        cause = f" (cause: {exc.cause})" if exc.cause else ""
        log_error(request, f"Upstream failure: {exc.message}{cause}")
    else:
        log_warning(request, f"Rejected request: {exc.message}")

    return error_response(exc.status_code, message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return error_response(400, message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log_error(request, f"Unhandled error: {exc!r}")
    _ = i18n.translator(get_locale(request.headers.get("accept-language")))
    return error_response(500, _("error.internal"))


# Routes
app.include_router(health.router, tags=["Health"])
app.include_router(search.router, tags=["Search"])
app.include_router(download.router, tags=["Download"])
app.include_router(stream.router, tags=["Stream"])


@app.on_event("startup")
async def startup_event():
    state.redis = await init_redis()
    state.ytdlp_version = yt_dlp.version.__version__
    service = get_resolution_service()
    logger.info(
        "Registered platforms: %s",
        ", ".join(p.label for p in service.supported_platforms()) or "none",
    )


@app.on_event("shutdown")
async def shutdown_event():
    await close_redis()
    await close_http_client()
