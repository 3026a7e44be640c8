"""Integration with the analytics service."""

from functools import wraps
from typing import Optional

import requests
from flask import Flask

from .. import logging
from ..context import get_application_config, get_application_global
from .exceptions import CleanupFailed

logger = logging.getLogger(__name__)


class AnalyticsServiceSession(object):
    """Preserves an HTTP session with the analytics service."""

    def __init__(self, endpoint: str, timeout: float = 10.0) -> None:
        """Create a new HTTP session."""
        self.endpoint = endpoint.rstrip('/')
        self.timeout = timeout
        self._session = requests.Session()

    def delete_user(self, user_id: str) -> None:
        """
        Remove everything the analytics service holds about a user.

        Parameters
        ----------
        user_id : str

        Raises
        ------
        :class:`.CleanupFailed`
            If the service does not confirm the deletion.
        """
        url = f'{self.endpoint}/v1/internal/users/{user_id}'
        try:
            response = self._session.delete(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise CleanupFailed(f'Analytics service unreachable: {e}') from e
        if not response.ok:
            raise CleanupFailed('Analytics service responded %i'
                                % response.status_code)
        logger.debug('Analytics data removed for %s', user_id)


def init_app(app: Flask) -> None:
    """Set required configuration defaults for the application."""
    app.config.setdefault('ANALYTICS_SERVICE_URL',
                          'http://analytics-service:3000')
    app.config.setdefault('ANALYTICS_TIMEOUT', '10')


def get_session(app: Optional[Flask] = None) -> AnalyticsServiceSession:
    """Create a new analytics session."""
    config = get_application_config(app)
    return AnalyticsServiceSession(
        config.get('ANALYTICS_SERVICE_URL', 'http://analytics-service:3000'),
        timeout=float(config.get('ANALYTICS_TIMEOUT', '10'))
    )


def current_session() -> AnalyticsServiceSession:
    """Get the current analytics session for this context (if there is one)."""
    g = get_application_global()
    if g:
        if 'analytics' not in g:
            g.analytics = get_session()
        return g.analytics  # type: ignore
    return get_session()


@wraps(AnalyticsServiceSession.delete_user)
def delete_user(user_id: str) -> None:
    """Wrapper for :meth:`AnalyticsServiceSession.delete_user`."""
    return current_session().delete_user(user_id)
