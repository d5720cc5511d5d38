from fastapi_limiter.depends import RateLimiter

from marketplace.config import settings

read_limiter = RateLimiter(times=settings.RATE_LIMIT_READS_PER_MINUTE, seconds=60)
write_limiter = RateLimiter(times=settings.RATE_LIMIT_WRITES_PER_MINUTE, seconds=60)
