"""
Asynchronous tasks.

The analytics cleanup for a deleted account runs here, after the response for
the deletion has gone out. Nobody is waiting on the result; if the cleanup
fails, the only trace is a consistency alert in the logs.
"""

import redis
from celery import shared_task
from kombu.exceptions import OperationalError

from . import logging
from .domain import CleanupResult
from .services import analytics
from .services.exceptions import CleanupFailed

logger = logging.getLogger(__name__)
consistency = logging.getLogger('identity.consistency')


def alert(user_id: str, reason: str) -> None:
    """Report that another service may still hold data for a deleted user."""
    consistency.error('Consistency alert: analytics data for %s may remain',
                      user_id, extra={'consistency_alert': True,
                                      'user_id': user_id,
                                      'reason': reason})


@shared_task
def cleanup_analytics(user_id: str) -> str:
    """
    Remove a deleted user's data from the analytics service.

    Parameters
    ----------
    user_id : str

    Returns
    -------
    str
        The resolved :class:`.CleanupResult` value.
    """
    try:
        analytics.delete_user(user_id)
    except CleanupFailed as e:
        alert(user_id, str(e))
        return CleanupResult.FAILED.value
    logger.info('Analytics cleanup complete for %s', user_id)
    return CleanupResult.OK.value


def schedule_analytics_cleanup(user_id: str) -> CleanupResult:
    """
    Hand the analytics cleanup for a user to the worker.

    Returns
    -------
    :class:`.CleanupResult`
        ``PENDING`` if the task was queued. ``FAILED`` if the broker could not
        be reached, in which case an alert has already been logged.
    """
    try:
        cleanup_analytics.delay(user_id)
    except (OperationalError, redis.exceptions.RedisError) as e:
        alert(user_id, f'Could not queue cleanup: {e}')
        return CleanupResult.FAILED
    logger.debug('Queued analytics cleanup for %s', user_id)
    return CleanupResult.PENDING
