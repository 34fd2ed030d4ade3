from typing import Any, Dict, Optional


class MediaResolverError(Exception):
    """
    Base error for the resolution pipeline.
    Carries an HTTP status and an i18n key so the API layer can
    render a localized message without knowing the failure site.
    """
    status_code = 500
    message_key = "error.internal"

    def __init__(self, message: str = "", *, key: Optional[str] = None, **params: Any):
        super().__init__(message)
        self.message = message
        if key:
            self.message_key = key
        self.params: Dict[str, Any] = params


class InvalidInput(MediaResolverError):
    """Bad URL, type or quality token, detected before any upstream call"""
    status_code = 400
    message_key = "error.invalid_input"


class UnsupportedPlatform(MediaResolverError):
    status_code = 400
    message_key = "error.unsupported_platform"


class UpstreamError(MediaResolverError):
    """All resolution attempts exhausted, or upstream reported an error"""
    status_code = 500
    message_key = "error.upstream"

    def __init__(self, message: str = "", *, cause: Optional[BaseException] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.cause = cause


class NoUsableFormat(MediaResolverError):
    status_code = 400
    message_key = "error.no_usable_format"
