"""Handles registration and login."""

import re
from typing import Any, Dict, Optional

from retry import retry

from .. import logging, status
from ..authorization import encode_token
from ..context import get_application_config
from ..domain import User
from ..services import notifications, throttle, users
from ..services.exceptions import AuthenticationFailed, RegistrationFailed, \
    Unavailable, UserAlreadyExists
from . import Response

logger = logging.getLogger(__name__)

EMAIL = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

INVALID_PAYLOAD = {'reason': 'invalid request data'}
INVALID_EMAIL = {'reason': 'a valid email is required'}
MISSING_PASSWORD = {'reason': 'a password is required'}
INVALID_NAME = {'reason': 'name must be a string'}
EMAIL_TAKEN = {'reason': 'that email is already registered'}
CANT_REGISTER = {'reason': 'could not create the account'}
BAD_CREDENTIALS = {'reason': 'invalid credentials'}
TOO_MANY_ATTEMPTS = {'reason': 'too many login attempts, wait a minute'}
UNAVAILABLE = {'reason': 'service temporarily unavailable'}


def _validate_credentials(payload: Any) -> Optional[Dict[str, str]]:
    if not isinstance(payload, dict):
        return INVALID_PAYLOAD
    email = payload.get('email')
    if not isinstance(email, str) or not EMAIL.match(email):
        return INVALID_EMAIL
    password = payload.get('password')
    if not isinstance(password, str) or not password:
        return MISSING_PASSWORD
    return None


def register(payload: Any) -> Response:
    """
    Create a new account.

    The notification service is asked to set up preferences for the new user,
    but whatever happens there does not affect the response.

    Parameters
    ----------
    payload : dict
        Should contain ``email`` and ``password``, and optionally ``name``.

    Returns
    -------
    dict
        The new user's ``id``, ``email``, ``name`` and ``avatar``.
    int
        An HTTP status code.
    dict
        Some extra headers to add to the response.
    """
    error = _validate_credentials(payload)
    if error is None and not isinstance(payload.get('name'), (str, type(None))):
        error = INVALID_NAME
    if error is not None:
        return error, status.HTTP_400_BAD_REQUEST, {}

    email, password = payload['email'], payload['password']
    try:
        if _email_exists(email):
            return EMAIL_TAKEN, status.HTTP_409_CONFLICT, {}
        user = _register(email, password, payload.get('name'))
    except UserAlreadyExists:
        return EMAIL_TAKEN, status.HTTP_409_CONFLICT, {}
    except RegistrationFailed as e:
        logger.error('Registration failed: %s', e)
        return CANT_REGISTER, status.HTTP_500_INTERNAL_SERVER_ERROR, {}
    except Unavailable as e:
        logger.error('Registration failed: %s', e)
        return UNAVAILABLE, status.HTTP_500_INTERNAL_SERVER_ERROR, {}

    result = notifications.init_preferences(user.user_id, user.email)
    if not result.ok:
        logger.warning('Preferences not initialized for %s (fallback=%s, '
                       'breaker=%s)', user.user_id, result.fallback,
                       result.state.value)

    data = {'id': user.user_id, 'email': user.email, 'name': user.name,
            'avatar': user.avatar}
    return data, status.HTTP_201_CREATED, {}


def login(payload: Any) -> Response:
    """
    Exchange credentials for an access token.

    Attempts are throttled per email address, whether or not they succeed.
    """
    error = _validate_credentials(payload)
    if error is not None:
        return error, status.HTTP_400_BAD_REQUEST, {}

    email, password = payload['email'], payload['password']
    if not throttle.check_and_increment(email):
        return TOO_MANY_ATTEMPTS, status.HTTP_429_TOO_MANY_REQUESTS, {}

    try:
        user = _authenticate(email, password)
    except AuthenticationFailed as e:
        logger.debug('Login failed for %s: %s', email, e)
        return BAD_CREDENTIALS, status.HTTP_401_UNAUTHORIZED, {}
    except Unavailable as e:
        logger.error('Login failed: %s', e)
        return UNAVAILABLE, status.HTTP_500_INTERNAL_SERVER_ERROR, {}

    config = get_application_config()
    token = encode_token(user, config.get('JWT_SECRET', 'foosecret'),
                         int(config.get('JWT_EXPIRES', '3600')))
    return {'token': token}, status.HTTP_200_OK, {}


# These are broken out to add retry logic.
@retry(Unavailable, tries=3, delay=0.5, backoff=2)
def _email_exists(email: str) -> bool:
    return users.email_exists(email)


@retry(Unavailable, tries=3, delay=0.5, backoff=2)
def _register(email: str, password: str, name: Optional[str]) -> User:
    return users.register(email, password, name)


@retry(Unavailable, tries=3, delay=0.5, backoff=2)
def _authenticate(email: str, password: str) -> User:
    return users.authenticate(email, password)
