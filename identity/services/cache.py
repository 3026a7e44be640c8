"""
Read-through cache for the internal view of users.

Entries live under ``user:{id}`` as JSON and expire after ``USER_CACHE_TTL``
seconds. The cache is strictly an optimization: if Redis is disabled, down, or
holding garbage, reads fall through to the system of record and the request
carries on.
"""

import json
from functools import wraps
from typing import Callable, Optional

import redis

from .. import logging
from ..context import get_application_config, get_application_global
from ..domain import UserProjection
from . import store, users

logger = logging.getLogger(__name__)

Loader = Callable[[str], Optional[UserProjection]]


def cache_key(user_id: str) -> str:
    """Key under which a user's projection is cached."""
    return f'user:{user_id}'


class CacheAside(object):
    """Serves user projections from Redis, loading them on a miss."""

    def __init__(self, r: Optional[redis.StrictRedis], loader: Loader,
                 ttl: int = 60) -> None:
        """
        Parameters
        ----------
        r : :class:`redis.StrictRedis` or None
            If ``None``, every read goes straight to ``loader``.
        loader : callable
            Loads a projection from the system of record; returns ``None`` if
            there is no such user.
        ttl : int
            Lifetime of a cache entry, in seconds.
        """
        self.r = r
        self.loader = loader
        self.ttl = ttl

    def _read(self, key: str) -> Optional[UserProjection]:
        if self.r is None:
            return None
        try:
            raw = self.r.get(key)
        except redis.exceptions.RedisError as e:
            logger.warning('Cache read failed for %s: %s', key, e)
            return None
        if raw is None:
            return None
        try:
            return UserProjection(**json.loads(raw))
        except (ValueError, TypeError) as e:
            logger.warning('Discarding unreadable cache entry %s: %s', key, e)
            return None

    def _write(self, key: str, projection: UserProjection) -> None:
        if self.r is None:
            return
        try:
            self.r.set(key, json.dumps(projection._asdict()), ex=self.ttl)
        except redis.exceptions.RedisError as e:
            logger.warning('Cache write failed for %s: %s', key, e)

    def get_internal_user(self, user_id: str) -> Optional[UserProjection]:
        """
        Get the internal view of a user.

        Parameters
        ----------
        user_id : str

        Returns
        -------
        :class:`.UserProjection` or None
            ``None`` if there is no such user. Misses are not cached.
        """
        key = cache_key(user_id)
        projection = self._read(key)
        if projection is not None:
            logger.debug('Cache hit for %s', key)
            return projection
        logger.debug('Cache miss for %s', key)
        projection = self.loader(user_id)
        if projection is not None:
            self._write(key, projection)
        return projection

    def evict(self, user_id: str) -> None:
        """Drop a user's entry, if there is one."""
        if self.r is None:
            return
        try:
            self.r.delete(cache_key(user_id))
        except redis.exceptions.RedisError as e:
            logger.warning('Cache eviction failed for %s: %s', user_id, e)


def get_cache() -> CacheAside:
    """Create a :class:`.CacheAside` over the shared Redis client."""
    config = get_application_config()
    return CacheAside(store.current_redis(), users.get_projection,
                      ttl=int(config.get('USER_CACHE_TTL', '60')))


def current_cache() -> CacheAside:
    """Get/create :class:`.CacheAside` for this context."""
    g = get_application_global()
    if not g:
        return get_cache()
    if 'user_cache' not in g:
        g.user_cache = get_cache()
    return g.user_cache     # type: ignore


@wraps(CacheAside.get_internal_user)
def get_internal_user(user_id: str) -> Optional[UserProjection]:
    """Get the internal view of a user, via the cache."""
    return current_cache().get_internal_user(user_id)


@wraps(CacheAside.evict)
def evict(user_id: str) -> None:
    """Drop a user's cache entry."""
    return current_cache().evict(user_id)
