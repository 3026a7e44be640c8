"""
Limits the rate of login attempts per e-mail address.

Attempts are counted in Redis under ``login_attempts:{email}``. The counter is
created by the first attempt in a window and expires with it. If Redis is not
available the throttle lets everyone through; a login should not fail because
the counter could not be read.
"""

from functools import wraps
from typing import Optional

import redis

from .. import logging
from ..context import get_application_config, get_application_global
from . import store

logger = logging.getLogger(__name__)


def throttle_key(email: str) -> str:
    """Key of the attempt counter for an address."""
    return f'login_attempts:{email}'


class LoginThrottle(object):
    """Fixed-window counter of login attempts."""

    def __init__(self, r: Optional[redis.StrictRedis], limit: int = 5,
                 window: int = 60) -> None:
        self.r = r
        self.limit = limit
        self.window = window

    def check_and_increment(self, email: str) -> bool:
        """
        Count a login attempt, and decide whether it may proceed.

        Parameters
        ----------
        email : str

        Returns
        -------
        bool
            ``False`` once more than ``limit`` attempts have been made in the
            current window. Always ``True`` if the counter is unavailable.
        """
        if self.r is None:
            return True
        key = throttle_key(email)
        try:
            pipe = self.r.pipeline()
            pipe.incr(key)
            pipe.ttl(key)
            attempts, ttl = pipe.execute()
            # A counter without an expiry would never reset.
            if attempts == 1 or ttl < 0:
                self.r.expire(key, self.window)
        except redis.exceptions.RedisError as e:
            logger.warning('Login throttle unavailable, allowing: %s', e)
            return True
        if attempts > self.limit:
            logger.info('Too many login attempts for %s (%i)', email,
                        attempts)
            return False
        return True


def get_throttle() -> LoginThrottle:
    """Create a :class:`.LoginThrottle` over the shared Redis client."""
    config = get_application_config()
    return LoginThrottle(
        store.current_redis(),
        limit=int(config.get('LOGIN_ATTEMPT_LIMIT', '5')),
        window=int(config.get('LOGIN_ATTEMPT_WINDOW', '60'))
    )


def current_throttle() -> LoginThrottle:
    """Get/create :class:`.LoginThrottle` for this context."""
    g = get_application_global()
    if not g:
        return get_throttle()
    if 'login_throttle' not in g:
        g.login_throttle = get_throttle()
    return g.login_throttle     # type: ignore


@wraps(LoginThrottle.check_and_increment)
def check_and_increment(email: str) -> bool:
    """Count a login attempt, and decide whether it may proceed."""
    return current_throttle().check_and_increment(email)
