import logging

from fastapi import HTTPException, Request
from redis.exceptions import RedisError

from app.config.settings import config
from app.i18n import i18n
from app.infra.redis import get_redis
from app.utils.locale import get_locale

logger = logging.getLogger(__name__)


class RedisRateLimiter:
    """Fixed-window limiter per client IP and endpoint, via a Lua script"""

    def __init__(self):
        self.lua_script = """
        local key = KEYS[1]
        local limit = tonumber(ARGV[1])
        local window = tonumber(ARGV[2])

        local current = redis.call('INCR', key)
        if current == 1 then
            redis.call('EXPIRE', key, window)
        end

        if current > limit then
            local ttl = redis.call('TTL', key)
            return {0, ttl}
        end

        return {1, 0}
        """

    async def __call__(self, request: Request):
        if not config.rate_limit.enabled:
            return True

        redis = get_redis()
        if not redis:
            return True

        client_ip = request.client.host if request.client else "unknown"
        key = f"rate:{client_ip}:{request.url.path}"

        try:
            allowed, ttl = await redis.eval(
                self.lua_script,
                1,
                key,
                config.rate_limit.max_requests,
                config.rate_limit.window_seconds
            )
        except RedisError as e:
            # Fail open
            logger.warning(f"Rate limiter unavailable: {e}")
            return True

        if not allowed:
            _ = i18n.translator(get_locale(request.headers.get("accept-language")))
            raise HTTPException(
                status_code=429,
                detail=_("error.rate_limit", seconds=ttl),
                headers={"Retry-After": str(ttl)}
            )

        return True


rate_limiter = RedisRateLimiter()
