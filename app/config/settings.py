import json
import logging
import os
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

CONFIG_PATH = os.getenv("CONFIG_PATH", "config.json")


class RedisConfig(BaseModel):
    url: str = Field(default="redis://redis:6379", description="Redis connection URL")
    socket_timeout: int = Field(default=5, description="Redis socket timeout in seconds")


class RateLimitConfig(BaseModel):
    enabled: bool = Field(default=True, description="Enable rate limiting")
    max_requests: int = Field(default=30, ge=1, description="Max requests per window")
    window_seconds: int = Field(default=60, ge=1, description="Rate limit window in seconds")


class CobaltInstance(BaseModel):
    name: str = Field(..., description="Instance label used in logs")
    url: str = Field(..., description="Resolver endpoint (POST)")
    api_key: Optional[str] = Field(default=None, description="Optional Api-Key credential")


class ResolverConfig(BaseModel):
    instances: List[CobaltInstance] = Field(
        default_factory=lambda: [
            CobaltInstance(name="cobalt.tools", url="https://api.cobalt.tools/"),
            CobaltInstance(name="cobalt-backup", url="https://cobalt-backend.canine.tools/"),
            CobaltInstance(name="cobalt-mirror", url="https://cobalt-api.kwiatekmiki.com/"),
        ],
        description="Ordered cobalt-style resolver instances",
    )
    timeout_seconds: float = Field(default=30.0, gt=0, description="Per-instance timeout")
    video_codec: str = Field(default="h264", description="Preferred video codec")
    audio_format: str = Field(default="mp3", description="Requested audio format")
    audio_bitrate: str = Field(default="128", description="Requested audio bitrate (kbps)")


class RelayConfig(BaseModel):
    timeout_seconds: float = Field(default=300.0, gt=0, description="Upstream fetch timeout for relays")
    chunk_size: int = Field(default=64 * 1024, ge=1024, description="Relay chunk size in bytes")
    filename_max_length: int = Field(default=100, ge=8, description="Max filename stem length")


class SearchConfig(BaseModel):
    url: str = Field(default="https://apiv3-2l3o.onrender.com/yts", description="Title search service")
    limit: int = Field(default=6, ge=1, le=50, description="Max results returned")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Search timeout")


class TieredConfig(BaseModel):
    base_url: str = Field(default="https://api.y2mate-mirror.example", description="Quality-bucketed service base URL")
    endpoints: Dict[str, str] = Field(
        default_factory=lambda: {
            "720": "/ytmp4/720",
            "480": "/ytmp4/480",
            "360": "/ytmp4/360",
            "audio": "/ytmp3",
        },
        description="Remote operation path per quality bucket",
    )
    timeout_seconds: float = Field(default=30.0, gt=0, description="Remote call timeout")


class YtDlpConfig(BaseModel):
    binary: str = Field(default="yt-dlp", description="yt-dlp executable")
    socket_timeout: int = Field(default=10, ge=1, description="Socket timeout for yt-dlp")
    retries: int = Field(default=3, ge=0, description="Number of retries for yt-dlp")
    metadata_timeout: float = Field(default=30.0, gt=0, description="Timeout for --dump-json calls")
    js_runtime: Optional[str] = Field(default=None, description="JS runtime path (e.g., deno:/usr/local/bin/deno)")


class BackendsConfig(BaseModel):
    """Platform to adapter mapping, resolved once at startup"""
    youtube: Optional[str] = Field(default="cobalt")
    tiktok: Optional[str] = Field(default="library")
    facebook: Optional[str] = Field(default="library")
    instagram: Optional[str] = Field(default=None)
    twitter: Optional[str] = Field(default=None)
    reddit: Optional[str] = Field(default=None)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    format: str = Field(default="%(message)s", description="Log format")
    enable_rich: bool = Field(default=True, description="Enable rich console logging")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()


class I18nConfig(BaseModel):
    default_locale: str = Field(default="en", description="Default locale")
    supported_locales: list = Field(default=["en", "fr"], description="Supported locales")


class ApiConfig(BaseModel):
    title: str = Field(default="Media Resolver API", description="API title")
    description: str = Field(default="Resolve and relay YouTube, TikTok and Facebook media", description="API description")
    version: str = Field(default="1.0.0", description="API version")
    cors_origins: list = Field(default=["*"], description="CORS allowed origins")
    debug: bool = Field(default=False, description="Enable debug mode")


class Config(BaseModel):
    """Main configuration model"""
    redis: RedisConfig = Field(default_factory=RedisConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    tiered: TieredConfig = Field(default_factory=TieredConfig)
    ytdlp: YtDlpConfig = Field(default_factory=YtDlpConfig)
    backends: BackendsConfig = Field(default_factory=BackendsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    i18n: I18nConfig = Field(default_factory=I18nConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    @classmethod
    def load_from_file(cls, config_path: str = "config.json") -> "Config":
        """Load configuration from JSON file"""
        if os.path.exists(config_path):
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    config_data = json.load(f)
                logger.info(f"Configuration loaded from {config_path}")
                return cls(**config_data)
            except Exception as e:
                logger.error(f"Failed to load config from {config_path}: {str(e)}")
                logger.info("Using default configuration")
        else:
            logger.warning(f"Config file {config_path} not found, using defaults")

        return cls()

    @classmethod
    def load_from_env(cls) -> "Config":
        """Load configuration from environment variables (fallback)"""
        config_data: Dict[str, Any] = {}

        if os.getenv("REDIS_URL"):
            config_data["redis"] = {"url": os.getenv("REDIS_URL")}

        rate_limit = {}
        if os.getenv("RATE_LIMIT_ENABLED"):
            rate_limit["enabled"] = os.getenv("RATE_LIMIT_ENABLED").lower() == "true"
        if os.getenv("RATE_LIMIT_REQUESTS"):
            rate_limit["max_requests"] = int(os.getenv("RATE_LIMIT_REQUESTS"))
        if os.getenv("RATE_LIMIT_WINDOW"):
            rate_limit["window_seconds"] = int(os.getenv("RATE_LIMIT_WINDOW"))
        if rate_limit:
            config_data["rate_limit"] = rate_limit

        # Resolver instances: "name=url,name=url" or bare URLs
        resolver = {}
        if os.getenv("COBALT_INSTANCES"):
            instances = []
            for i, item in enumerate(os.getenv("COBALT_INSTANCES").split(",")):
                item = item.strip()
                if not item:
                    continue
                name, sep, url = item.partition("=")
                if not sep:
                    name, url = f"instance-{i + 1}", item
                instances.append({"name": name.strip(), "url": url.strip()})
            if instances:
                resolver["instances"] = instances
        if os.getenv("RESOLVER_TIMEOUT"):
            resolver["timeout_seconds"] = float(os.getenv("RESOLVER_TIMEOUT"))
        if resolver:
            config_data["resolver"] = resolver

        if os.getenv("RELAY_TIMEOUT"):
            config_data["relay"] = {"timeout_seconds": float(os.getenv("RELAY_TIMEOUT"))}

        if os.getenv("SEARCH_URL"):
            config_data["search"] = {"url": os.getenv("SEARCH_URL")}

        if os.getenv("TIERED_BASE_URL"):
            config_data["tiered"] = {"base_url": os.getenv("TIERED_BASE_URL")}

        ytdlp = {}
        if os.getenv("YT_DLP_BINARY"):
            ytdlp["binary"] = os.getenv("YT_DLP_BINARY")
        if os.getenv("YT_DLP_JS_RUNTIME"):
            ytdlp["js_runtime"] = os.getenv("YT_DLP_JS_RUNTIME")
        if ytdlp:
            config_data["ytdlp"] = ytdlp

        backends = {}
        for platform in ("youtube", "tiktok", "facebook", "instagram", "twitter", "reddit"):
            value = os.getenv(f"BACKEND_{platform.upper()}")
            if value is not None:
                backends[platform] = value or None
        if backends:
            config_data["backends"] = backends

        if os.getenv("LOG_LEVEL"):
            config_data["logging"] = {"level": os.getenv("LOG_LEVEL")}

        if os.getenv("DEFAULT_LOCALE"):
            config_data["i18n"] = {"default_locale": os.getenv("DEFAULT_LOCALE")}

        return cls(**config_data) if config_data else cls()

    def save_to_file(self, config_path: str = "config.json"):
        """Save configuration to JSON file"""
        try:
            with open(config_path, "w", encoding="utf-8") as f:
                json.dump(self.model_dump(exclude_none=True), f, indent=2, ensure_ascii=False)
            logger.info(f"Configuration saved to {config_path}")
        except Exception as e:
            logger.error(f"Failed to save config to {config_path}: {str(e)}")


def load_config() -> Config:
    """Load configuration with priority: config.json > env vars > defaults"""
    if os.path.exists(CONFIG_PATH):
        return Config.load_from_file(CONFIG_PATH)
    logger.info(f"Config file not found at {CONFIG_PATH}, checking environment variables")
    return Config.load_from_env()


config = load_config()
