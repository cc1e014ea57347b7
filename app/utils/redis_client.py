import redis
import ssl
from functools import lru_cache
from app.core.config import settings

@lru_cache(maxsize=1)
def get_redis_client():
    # rediss:// URLs get an SSL connection class from from_url
    options = {"ssl_cert_reqs": ssl.CERT_NONE} if settings.REDIS_URL.startswith("rediss://") else {}
    return redis.Redis(
        connection_pool=redis.ConnectionPool.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            **options
        )
    )
