"""
Integration with the expenses service.

Before an account is deleted, the expenses service is asked whether the user
still has open financial records. Whatever this module cannot make sense of
comes back as :attr:`.DebtStatus.UNKNOWN`, which callers must treat as a
refusal.
"""

import json
from functools import wraps
from typing import Any, Dict, Optional

import requests
from flask import Flask

from .. import logging
from ..context import get_application_config, get_application_global
from ..domain import DebtStatus

logger = logging.getLogger(__name__)


class ExpensesServiceSession(object):
    """Preserves an HTTP session with the expenses service."""

    def __init__(self, endpoint: str, timeout: float = 5.0) -> None:
        """Create a new HTTP session."""
        self.endpoint = endpoint.rstrip('/')
        self.timeout = timeout
        self._session = requests.Session()
        logger.debug('New ExpensesServiceSession at %s', self.endpoint)

    def debt_status(self, user_id: str) -> DebtStatus:
        """
        Determine whether a user is free of financial obligations.

        Parameters
        ----------
        user_id : str

        Returns
        -------
        :class:`.DebtStatus`
            ``ALLOWED`` if the user has no records (404) or the service says
            they can be deleted; ``BLOCKED`` if the service says they cannot;
            ``UNKNOWN`` for any other response, or no response at all.
        """
        url = f'{self.endpoint}/api/v1/internal/users/{user_id}/debtStatus'
        try:
            response = self._session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error('Expenses service unreachable for %s: %s',
                         user_id, e)
            return DebtStatus.UNKNOWN

        if response.status_code == requests.codes.not_found:
            logger.debug('No financial records for %s', user_id)
            return DebtStatus.ALLOWED
        if response.status_code != requests.codes.ok:
            logger.error('Expenses service responded %i for %s',
                         response.status_code, user_id)
            return DebtStatus.UNKNOWN

        try:
            data: Dict[str, Any] = response.json()
            can_delete = data['data']['canDelete']
        except (json.decoder.JSONDecodeError, ValueError, KeyError,
                TypeError) as e:
            logger.error('Could not read debt status for %s: %s', user_id, e)
            return DebtStatus.UNKNOWN

        if can_delete is True:
            return DebtStatus.ALLOWED
        if can_delete is False:
            logger.info('User %s has outstanding debts', user_id)
            return DebtStatus.BLOCKED
        logger.error('Unexpected canDelete value for %s: %r', user_id,
                     can_delete)
        return DebtStatus.UNKNOWN


def init_app(app: Flask) -> None:
    """Set required configuration defaults for the application."""
    app.config.setdefault('EXPENSES_SERVICE_URL',
                          'http://expenses-service:3000')
    app.config.setdefault('EXPENSES_TIMEOUT', '5')


def get_session(app: Optional[Flask] = None) -> ExpensesServiceSession:
    """Create a new expenses session."""
    config = get_application_config(app)
    return ExpensesServiceSession(
        config.get('EXPENSES_SERVICE_URL', 'http://expenses-service:3000'),
        timeout=float(config.get('EXPENSES_TIMEOUT', '5'))
    )


def current_session() -> ExpensesServiceSession:
    """Get the current expenses session for this context (if there is one)."""
    g = get_application_global()
    if g:
        if 'expenses' not in g:
            g.expenses = get_session()
        return g.expenses   # type: ignore
    return get_session()


@wraps(ExpensesServiceSession.debt_status)
def debt_status(user_id: str) -> DebtStatus:
    """Wrapper for :meth:`ExpensesServiceSession.debt_status`."""
    return current_session().debt_status(user_id)
