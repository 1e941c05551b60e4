import json
import math
import time
import logging
from abc import ABC, abstractmethod

import redis
from flask_caching import Cache

from .config import get_redis_uri
from .errors import CaptchaStoreError
from .models import Challenge

logger = logging.getLogger(__name__)

# Connection Pool: Create a global pool variable
redis_pool = None


def get_redis_connection(redis_url=None):
    """Return a redis client backed by a shared connection pool."""
    global redis_pool
    if redis_pool is None:
        redis_pool = redis.ConnectionPool.from_url(redis_url or get_redis_uri())
    return redis.Redis(connection_pool=redis_pool)


def configure_cache(app):
    app.config.setdefault('CACHE_TYPE', 'SimpleCache')
    if app.config['CACHE_TYPE'] == 'RedisCache' and not app.config.get('CACHE_REDIS_URL'):
        app.config['CACHE_REDIS_URL'] = get_redis_uri()
    app.config.setdefault('CACHE_DEFAULT_TIMEOUT', 300)
    return Cache(app)


class ChallengeStore(ABC):
    """Key/value store for challenges with absolute expiration.

    Entries are wrapped with their expiry time and checked on read, so an
    expired entry is reported as missing even if the backend has not purged
    it yet.
    """

    def __init__(self, prefix="captcha:", clock=None):
        self.prefix = prefix
        self.clock = clock or time.time

    def set(self, key, challenge, expires_at):
        payload = json.dumps({'expires_at': expires_at, 'challenge': challenge.to_dict()})
        self._write(self.prefix + key, payload, expires_at)

    def get(self, key):
        raw = self._read(self.prefix + key)
        if raw is None:
            return None
        try:
            envelope = json.loads(raw)
            if envelope['expires_at'] <= self.clock():
                return None
            return Challenge.from_dict(envelope['challenge'])
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Corrupt captcha entry {key}: {e}")
            raise CaptchaStoreError(f"Could not decode captcha {key}") from e

    def delete(self, key):
        self._delete(self.prefix + key)

    def _timeout(self, expires_at):
        return max(1, math.ceil(expires_at - self.clock()))

    @abstractmethod
    def _write(self, key, payload, expires_at):
        pass

    @abstractmethod
    def _read(self, key):
        pass

    @abstractmethod
    def _delete(self, key):
        pass


class CacheChallengeStore(ChallengeStore):
    """Store on top of a flask_caching Cache (RedisCache, SimpleCache, ...)."""

    def __init__(self, cache, prefix="captcha:", clock=None):
        super().__init__(prefix, clock)
        self.cache = cache

    def _write(self, key, payload, expires_at):
        try:
            stored = self.cache.set(key, payload, timeout=self._timeout(expires_at))
        except redis.RedisError as e:
            logger.error(f"Error writing captcha {key} to cache: {e}")
            raise CaptchaStoreError(f"Could not store captcha {key}") from e
        if stored is False:
            logger.error(f"Cache refused captcha {key}")
            raise CaptchaStoreError(f"Could not store captcha {key}")

    def _read(self, key):
        try:
            return self.cache.get(key)
        except redis.RedisError as e:
            logger.error(f"Error reading captcha {key} from cache: {e}")
            raise CaptchaStoreError(f"Could not read captcha {key}") from e

    def _delete(self, key):
        try:
            self.cache.delete(key)
        except redis.RedisError as e:
            logger.error(f"Error deleting captcha {key} from cache: {e}")
            raise CaptchaStoreError(f"Could not delete captcha {key}") from e


class RedisChallengeStore(ChallengeStore):
    """Store talking to redis directly; expiry is set with PXAT."""

    def __init__(self, redis_conn=None, prefix="captcha:", clock=None):
        super().__init__(prefix, clock)
        self.redis = redis_conn or get_redis_connection()

    def _write(self, key, payload, expires_at):
        try:
            self.redis.set(key, payload, pxat=int(expires_at * 1000))
        except redis.RedisError as e:
            logger.error(f"Error writing captcha {key} to redis: {e}")
            raise CaptchaStoreError(f"Could not store captcha {key}") from e

    def _read(self, key):
        try:
            return self.redis.get(key)
        except redis.RedisError as e:
            logger.error(f"Error reading captcha {key} from redis: {e}")
            raise CaptchaStoreError(f"Could not read captcha {key}") from e

    def _delete(self, key):
        try:
            self.redis.delete(key)
        except redis.RedisError as e:
            logger.error(f"Error deleting captcha {key} from redis: {e}")
            raise CaptchaStoreError(f"Could not delete captcha {key}") from e
