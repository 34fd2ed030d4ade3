from .errors import InvalidInput, MediaResolverError, NoUsableFormat, UnsupportedPlatform, UpstreamError

__all__ = ["InvalidInput", "MediaResolverError", "NoUsableFormat", "UnsupportedPlatform", "UpstreamError"]
