import logging
from datetime import datetime, timezone
from typing import Optional

from app.core.pricing import TOOL_NAME

QUOTA_KEY_PREFIX = f"quota:{TOOL_NAME}:"
QUOTA_KEY_TTL = 2 * 24 * 3600  # keys outlive their UTC day, then expire


def quota_identity(plan, session_id: Optional[str], client_host: Optional[str]) -> str:
    """Pass holders are counted per session, everyone else per client address."""
    if plan.is_paid and session_id:
        return f"session:{session_id}"
    return f"ip:{client_host or 'unknown'}"


class DailyQuota:
    """Per-identity daily check counters stored in Redis."""

    def __init__(self, redis_client):
        self.redis = redis_client

    def _key(self, identity, now=None):
        day = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d")
        return f"{QUOTA_KEY_PREFIX}{identity}:{day}"

    def used(self, identity: str, now: Optional[datetime] = None) -> int:
        value = self.redis.get(self._key(identity, now))
        return int(value) if value else 0

    def remaining(self, identity: str, limit: int, now: Optional[datetime] = None) -> int:
        return max(limit - self.used(identity, now), 0)

    def consume(self, identity: str, limit: int, now: Optional[datetime] = None) -> bool:
        """Take one check from today's allowance.

        INCR is atomic, so parallel requests from one identity each see a
        distinct count; a request that overshoots the limit gives its
        increment back and is refused.
        """
        key = self._key(identity, now)
        count = self.redis.incr(key)
        if count == 1:
            self.redis.expire(key, QUOTA_KEY_TTL)
        if count > limit:
            self.redis.decr(key)
            logging.warning(f"Daily quota exhausted for {identity} ({limit} checks)")
            return False
        return True
