"""Redis client for shared state across workers: rate counters and job locks."""

import logging
import uuid
import redis
from flask import current_app, has_app_context

logger = logging.getLogger(__name__)

# Redis connection (lazy initialization)
_redis_client = None


def get_redis():
    """Get or create Redis connection."""
    global _redis_client
    
    if _redis_client is not None:
        return _redis_client
    
    redis_url = current_app.config.get('REDIS_URL') if has_app_context() else None
    
    if not redis_url:
        logger.warning("REDIS_URL not set - translation locks and rate limits are unavailable")
        return None
    
    try:
        _redis_client = redis.from_url(redis_url, decode_responses=True)
        # Test connection
        _redis_client.ping()
        logger.info("Redis connected successfully")
        return _redis_client
    except Exception as e:
        logger.error(f"Redis connection failed: {e}")
        _redis_client = None
        return None


def set_redis(client):
    """Replace the shared client (used by tests and custom deployments)."""
    global _redis_client
    _redis_client = client


# ============ Locks ============

def acquire_lock(key: str, ttl: int) -> str | None:
    """Take the lock if nobody holds it. Returns our token, or None."""
    r = get_redis()
    if not r:
        return None
    
    token = uuid.uuid4().hex
    try:
        if r.set(key, token, nx=True, ex=ttl):
            return token
        return None
    except redis.RedisError as e:
        logger.error(f"Redis acquire_lock error for {key}: {e}")
        return None


def release_lock(key: str, token: str) -> bool:
    """Delete the lock only while it still holds our token."""
    r = get_redis()
    if not r:
        return False
    
    try:
        with r.pipeline() as pipe:
            pipe.watch(key)
            if pipe.get(key) != token:
                pipe.unwatch()
                return False
            pipe.multi()
            pipe.delete(key)
            pipe.execute()
            return True
    except redis.WatchError:
        # Lock changed hands between GET and DEL
        return False
    except redis.RedisError as e:
        logger.error(f"Redis release_lock error for {key}: {e}")
        return False
