"""
Integration with the notification service.

When a user registers, the notification service is asked to set up default
notification preferences for them. This is nice to have, and nothing more:
the notification service is called behind a :class:`.Breaker`, and no outcome
of the call is ever allowed to fail a registration.
"""

from functools import wraps
from typing import NamedTuple, Optional

import requests
from flask import Flask

from .. import logging
from ..breaker import Breaker, BreakerState
from ..context import get_application_config, get_application_global, \
    get_application_extension

logger = logging.getLogger(__name__)

BREAKER = 'notifications_breaker'
"""Key of the notification breaker in ``app.extensions``."""


class NotificationResult(NamedTuple):
    """Outcome of a call to the notification service."""

    ok: bool
    fallback: bool
    state: BreakerState


class NotificationGateway(object):
    """Calls the notification service, if the breaker allows it."""

    def __init__(self, endpoint: str, breaker: Breaker,
                 timeout: float = 5.0) -> None:
        """
        Create a new HTTP session.

        Parameters
        ----------
        endpoint : str
            Base URL of the notification service.
        breaker : :class:`.Breaker`
            Shared by every gateway talking to the same service.
        timeout : float
            Seconds to wait for the service before giving up.
        """
        self.endpoint = endpoint.rstrip('/')
        self.breaker = breaker
        self.timeout = timeout
        self._session = requests.Session()
        logger.debug('New NotificationGateway at %s', self.endpoint)

    def init_preferences(self, user_id: str, email: str) \
            -> NotificationResult:
        """
        Ask the notification service to initialize a user's preferences.

        Parameters
        ----------
        user_id : str
        email : str

        Returns
        -------
        :class:`.NotificationResult`
            ``fallback`` is set if the breaker refused the call, in which case
            the service was not contacted at all.
        """
        if not self.breaker.try_acquire():
            logger.warning('Notification breaker is %s; skipping call',
                           self.breaker.state.value)
            return NotificationResult(ok=False, fallback=True,
                                      state=self.breaker.state)

        try:
            response = self._session.post(
                f'{self.endpoint}/preferences/init',
                json={'userId': user_id, 'email': email},
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            self.breaker.record_failure()
            logger.warning('Notification service unreachable: %s; '
                           'breaker is %s', e, self.breaker.state.value)
            return NotificationResult(ok=False, fallback=False,
                                      state=self.breaker.state)

        if not response.ok:
            self.breaker.record_failure()
            logger.warning('Notification service responded %i; breaker is %s',
                           response.status_code, self.breaker.state.value)
            return NotificationResult(ok=False, fallback=False,
                                      state=self.breaker.state)

        self.breaker.record_success()
        logger.debug('Initialized preferences for %s', user_id)
        return NotificationResult(ok=True, fallback=False,
                                  state=self.breaker.state)


def init_app(app: Flask) -> None:
    """
    Set configuration defaults, and create the notification breaker.

    There is one breaker per application, shared by all requests.
    """
    app.config.setdefault('NOTIFICATIONS_SERVICE_URL',
                          'http://notifications-service:3000')
    app.config.setdefault('NOTIFICATIONS_TIMEOUT', '5')
    app.config.setdefault('NOTIFICATIONS_BREAKER_THRESHOLD', '3')
    app.config.setdefault('NOTIFICATIONS_BREAKER_COOLDOWN', '30')
    app.extensions[BREAKER] = Breaker(
        failure_threshold=int(app.config['NOTIFICATIONS_BREAKER_THRESHOLD']),
        cooldown=float(app.config['NOTIFICATIONS_BREAKER_COOLDOWN']),
        name='notifications'
    )


def get_gateway(app: Optional[Flask] = None,
                breaker: Optional[Breaker] = None) -> NotificationGateway:
    """Get a new gateway using the application's breaker."""
    config = get_application_config(app)
    if breaker is None:
        breaker = get_application_extension(BREAKER, app)
    if breaker is None:
        raise RuntimeError('Notification breaker is not configured')
    return NotificationGateway(
        config.get('NOTIFICATIONS_SERVICE_URL',
                   'http://notifications-service:3000'),
        breaker,
        timeout=float(config.get('NOTIFICATIONS_TIMEOUT', '5'))
    )


def current_gateway() -> NotificationGateway:
    """Get/create :class:`.NotificationGateway` for this context."""
    g = get_application_global()
    if not g:
        return get_gateway()
    if 'notifications' not in g:
        g.notifications = get_gateway()
    return g.notifications      # type: ignore


@wraps(NotificationGateway.init_preferences)
def init_preferences(user_id: str, email: str) -> NotificationResult:
    """Ask the notification service to initialize a user's preferences."""
    return current_gateway().init_preferences(user_id, email)
