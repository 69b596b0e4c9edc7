"""
Tests for Redis-backed locks.
"""

from forum_translator.services.redis_client import acquire_lock, release_lock, set_redis


class TestLocks:

    def test_acquire_sets_token_with_ttl(self, redis_store):
        token = acquire_lock('lock:a', 30)

        assert token
        assert redis_store.get('lock:a') == token
        assert 0 < redis_store.ttl('lock:a') <= 30

    def test_second_acquire_fails(self, redis_store):
        assert acquire_lock('lock:a', 30)
        assert acquire_lock('lock:a', 30) is None

    def test_release_own_lock(self, redis_store):
        token = acquire_lock('lock:a', 30)

        assert release_lock('lock:a', token) is True
        assert redis_store.get('lock:a') is None
        assert acquire_lock('lock:a', 30)

    def test_release_does_not_delete_newer_holder(self, redis_store):
        stale = acquire_lock('lock:a', 30)
        # Lock expired and someone else took it
        redis_store.set('lock:a', 'newer-token')

        assert release_lock('lock:a', stale) is False
        assert redis_store.get('lock:a') == 'newer-token'

    def test_no_store_means_no_lock(self):
        set_redis(None)
        assert acquire_lock('lock:a', 30) is None
        assert release_lock('lock:a', 'anything') is False
