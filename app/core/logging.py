import logging
from typing import Any

from fastapi import Request
from rich.logging import RichHandler

from app.config.settings import config

logger = logging.getLogger("app")


def setup_logging() -> None:
    """Configure root logging once, with rich output when enabled."""
    if config.logging.enable_rich:
        handler: logging.Handler = RichHandler(rich_tracebacks=True, show_path=False)
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(config.logging.format))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(config.logging.level)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def log_with_context(
    request: Request,
    level: int,
    message: str,
    **kwargs: Any
) -> None:
    """
    Log with request context.
    Automatically includes request_id for tracing.
    """
    extra = {
        "request_id": getattr(request.state, "request_id", "unknown"),
        **kwargs
    }
    logger.log(level, f"[{extra['request_id']}] {message}", extra=extra)


def log_info(request: Request, message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.INFO, message, **kwargs)


def log_error(request: Request, message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.ERROR, message, **kwargs)


def log_warning(request: Request, message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.WARNING, message, **kwargs)
