"""
Provides the connection to the volatile key-value store (Redis).

The store backs the user cache and the login throttle. Neither of those is
allowed to fail a request because Redis is unhappy, so this module hands out
either a client or ``None`` (when Redis is switched off with
``REDIS_ENABLED=0``), and callers catch :class:`redis.exceptions.RedisError`
around every command.

In fact, the StrictRedis instance is thread safe and connections are attached
at the time a command is executed, so one client is shared by the whole
application.
"""

from typing import Any, Optional

import redis
from flask import Flask, current_app
from redis.backoff import NoBackoff
from redis.retry import Retry

from .. import logging
from ..context import get_application_config, get_application_global

logger = logging.getLogger(__name__)


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def init_app(app: Flask) -> None:
    """Set default configuration parameters for an application instance."""
    app.config.setdefault('REDIS_HOST', 'localhost')
    app.config.setdefault('REDIS_PORT', '6379')
    app.config.setdefault('REDIS_DATABASE', '0')
    app.config.setdefault('REDIS_ENABLED', '1')
    app.config.setdefault('REDIS_FAKE', False)
    app.config.setdefault('REDIS_TIMEOUT', '0.5')


def get_redis(app: Optional[Flask] = None) -> Optional[redis.StrictRedis]:
    """Get a new Redis client, or ``None`` if Redis is disabled."""
    config = get_application_config(app)
    if not _flag(config.get('REDIS_ENABLED', '1')):
        logger.debug('Redis is disabled')
        return None
    if _flag(config.get('REDIS_FAKE', False)):
        import fakeredis
        logger.debug('Using FakeRedis')
        return fakeredis.FakeStrictRedis()
    host = config.get('REDIS_HOST', 'localhost')
    port = int(config.get('REDIS_PORT', '6379'))
    db = int(config.get('REDIS_DATABASE', '0'))
    timeout = float(config.get('REDIS_TIMEOUT', '0.5'))
    logger.debug('New Redis connection at %s, port %s', host, port)
    # Callers give up on the first error; retrying only adds latency.
    return redis.StrictRedis(host=host, port=port, db=db,
                             socket_timeout=timeout,
                             socket_connect_timeout=timeout,
                             retry=Retry(NoBackoff(), 0),
                             retry_on_timeout=False)


def current_redis() -> Optional[redis.StrictRedis]:
    """Get/create the shared Redis client for this application."""
    g = get_application_global()
    if not g:
        return get_redis()
    if 'redis' not in current_app.extensions:
        current_app.extensions['redis'] = get_redis()
    client: Optional[redis.StrictRedis] = current_app.extensions['redis']
    return client
