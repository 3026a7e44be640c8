"""Handles requests about user accounts."""

import re
from typing import Any, Dict

from retry import retry
from werkzeug.exceptions import Forbidden

from .. import logging, status
from ..authorization import user_is_owner
from ..domain import User
from ..process import deletion
from ..services import cache, users
from ..services.exceptions import NoSuchUser, Unavailable
from . import Response

logger = logging.getLogger(__name__)

USER_ID = re.compile(r'^[0-9a-f]{32}$')

INVALID_ID = {'reason': 'invalid user id'}
NO_SUCH_USER = {'reason': 'there is no such user'}
HAS_DEBTS = {'reason': 'user has outstanding debts'}
DEBT_UNKNOWN = {'reason': 'could not verify debt status, try again later'}
UNAVAILABLE = {'reason': 'service temporarily unavailable'}
DELETED = {'success': True}


def is_valid_id(user_id: Any) -> bool:
    """Check that a value looks like a user id."""
    return isinstance(user_id, str) and bool(USER_ID.match(user_id))


def _profile(user: User) -> Dict[str, Any]:
    return {
        'id': user.user_id,
        'email': user.email,
        'name': user.name,
        'avatar': user.avatar,
        'plan': user.plan,
        'addons': list(user.addons or []),
        'created': user.created.isoformat() if user.created else None,
        'updated': user.updated.isoformat() if user.updated else None
    }


def get_internal_user(user_id: str) -> Response:
    """
    Get the internal view of a user, for other services.

    Served from the cache when possible.

    Parameters
    ----------
    user_id : str

    Returns
    -------
    dict
        ``id``, ``name``, ``email``, ``avatar`` and ``plan``.
    int
        An HTTP status code.
    dict
        Some extra headers to add to the response.
    """
    if not is_valid_id(user_id):
        return INVALID_ID, status.HTTP_400_BAD_REQUEST, {}
    try:
        projection = cache.get_internal_user(user_id)
    except Unavailable as e:
        logger.error('Could not load %s: %s', user_id, e)
        return UNAVAILABLE, status.HTTP_500_INTERNAL_SERVER_ERROR, {}
    if projection is None:
        return NO_SUCH_USER, status.HTTP_404_NOT_FOUND, {}
    return projection._asdict(), status.HTTP_200_OK, {}


def get_current_user(claims: Dict[str, Any]) -> Response:
    """Get the full profile of the authenticated user."""
    try:
        user = _get_user(claims['sub'])
    except NoSuchUser:
        return NO_SUCH_USER, status.HTTP_404_NOT_FOUND, {}
    except Unavailable as e:
        logger.error('Could not load current user: %s', e)
        return UNAVAILABLE, status.HTTP_500_INTERNAL_SERVER_ERROR, {}
    return _profile(user), status.HTTP_200_OK, {}


def delete_user(claims: Dict[str, Any], user_id: str) -> Response:
    """
    Delete a user account.

    Only the owner of an account may delete it. See
    :mod:`identity.process.deletion` for what happens next.

    Raises
    ------
    :class:`.Forbidden`
        If the authenticated user is not the requested user.
    """
    if not is_valid_id(user_id):
        return INVALID_ID, status.HTTP_400_BAD_REQUEST, {}
    if not user_is_owner(claims, user_id):
        logger.debug('%s may not delete %s', claims.get('sub'), user_id)
        raise Forbidden('Access denied')

    try:
        outcome = deletion.delete_account(user_id)
    except deletion.DeletionBlocked:
        return HAS_DEBTS, status.HTTP_409_CONFLICT, {}
    except deletion.DebtStatusUnavailable:
        return DEBT_UNKNOWN, status.HTTP_500_INTERNAL_SERVER_ERROR, {}
    except deletion.NoSuchAccount:
        return NO_SUCH_USER, status.HTTP_404_NOT_FOUND, {}
    except Unavailable as e:
        logger.error('Could not delete %s: %s', user_id, e)
        return UNAVAILABLE, status.HTTP_500_INTERNAL_SERVER_ERROR, {}

    logger.info('Account %s deleted; analytics cleanup %s', user_id,
                outcome.remote_cleanup.value if outcome.remote_cleanup
                else None)
    return DELETED, status.HTTP_200_OK, {}


@retry(Unavailable, tries=3, delay=0.5, backoff=2)
def _get_user(user_id: str) -> User:
    return users.get_user_by_id(user_id)
