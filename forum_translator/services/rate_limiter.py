"""Minute-window admission limiter shared by every worker through Redis."""

import logging
import math
import time
import redis
from flask import current_app
from forum_translator.services.redis_client import get_redis

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = 'translation_rate_limit'

# Counter keys outlive their minute so clock skew between workers is absorbed
WINDOW_TTL = 120

UNLIMITED = math.inf


class RateLimiter:
    """Admit at most `limit` requests per UTC minute. A limit <= 0 disables it."""
    
    def __init__(self, limit: int, key_prefix: str = DEFAULT_KEY_PREFIX, store=None, clock=time.time):
        self.limit = limit
        self.key_prefix = key_prefix
        self._store = store
        self._clock = clock
    
    @classmethod
    def for_provider_requests(cls):
        """The global limiter guarding calls to the translation provider."""
        return cls(current_app.config['TRANSLATION_RATE_LIMIT_PER_MINUTE'])
    
    @property
    def store(self):
        return self._store if self._store is not None else get_redis()
    
    def current_key(self) -> str:
        current_minute = int(self._clock()) // 60
        return f'{self.key_prefix}:{current_minute}'
    
    def admit(self) -> bool:
        """Consume one unit of this minute's budget if any is left."""
        if self.limit <= 0:
            return True
        
        r = self.store
        if not r:
            logger.error(f"Rate limiter {self.key_prefix} has no shared store, rejecting request")
            return False
        
        key = self.current_key()
        try:
            new_count = r.incr(key)
            if new_count == 1:
                r.expire(key, WINDOW_TTL)
            
            if new_count > self.limit:
                # Hand back the unit this rejected attempt took
                r.decr(key)
                return False
            return True
        except redis.RedisError as e:
            logger.error(f"Redis rate limiter error for {key}: {e}")
            return False
    
    def remaining(self):
        """Units left this minute, or UNLIMITED when limiting is disabled."""
        if self.limit <= 0:
            return UNLIMITED
        
        r = self.store
        if not r:
            return 0
        
        try:
            current_count = int(r.get(self.current_key()) or 0)
        except redis.RedisError as e:
            logger.error(f"Redis rate limiter error: {e}")
            return 0
        return max(self.limit - current_count, 0)
