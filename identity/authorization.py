"""
Bearer-token authorization of user requests.

Access tokens are HS256 JWTs issued by :func:`encode_token` at login. Routes
that require a logged-in user are protected with :func:`authenticated`:

.. code-block:: python

   @blueprint.route('/users/<string:user_id>', methods=['DELETE'])
   @authenticated()
   def delete_user(user_id: str) -> tuple:
       data, status_code, headers = users.delete_user(request.auth, user_id)
       return jsonify(data), status_code, headers

Here ownership is checked in the controller with :func:`user_is_owner`, so
that a malformed id can be rejected before it. Routes with nothing else to
check can pass the authorizer to the decorator instead, e.g.
``@authenticated(authorizer=user_is_owner)``.

When the decorated route function is called...

- If there is no ``Authorization: Bearer <token>`` header, or the token is
  not valid, an :class:`Unauthorized` exception is raised.
- If an authorizer was provided and it returns ``False``, a
  :class:`Forbidden` exception is raised.
- Token claims are added to the Flask request object as ``request.auth``.
- Finally, the route is called with the original parameters.

The authorizer has the signature ``(claims: dict, *args, **kwargs) -> bool``,
where ``*args`` and ``**kwargs`` are the URL parameters of the route.

"""

import time
from functools import wraps
from typing import Any, Callable, Dict, Optional

import jwt
from flask import request
from werkzeug.exceptions import Unauthorized, Forbidden

from . import logging
from .context import get_application_config
from .domain import User

logger = logging.getLogger(__name__)

ALGORITHM = 'HS256'


class InvalidToken(ValueError):
    """The token could not be decoded or has expired."""


def encode_token(user: User, secret: str, expires: int = 3600) -> str:
    """
    Issue an access token for a user.

    Parameters
    ----------
    user : :class:`.User`
    secret : str
    expires : int
        Lifetime of the token, in seconds.

    Returns
    -------
    str
    """
    now = int(time.time())
    claims = {
        'sub': user.user_id,
        'email': user.email,
        'plan': user.plan,
        'iat': now,
        'exp': now + expires
    }
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def decode_token(token: str, secret: str) -> Dict[str, Any]:
    """Verify a token and return its claims."""
    try:
        claims: Dict[str, Any] = jwt.decode(token, secret,
                                            algorithms=[ALGORITHM])
    except jwt.exceptions.InvalidTokenError as e:
        raise InvalidToken(str(e)) from e
    if 'sub' not in claims:
        raise InvalidToken('Token has no subject')
    return claims


def _bearer_token() -> Optional[str]:
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def user_is_owner(claims: Dict[str, Any], user_id: str, **kw: Any) -> bool:
    """Check whether the authenticated user is the requested user."""
    return bool(claims.get('sub') == user_id)


def authenticated(authorizer: Optional[Callable] = None) -> Callable:
    """
    Generate a decorator that requires a valid access token.

    Parameters
    ----------
    authorizer : function
        Optional additional check, e.g. :func:`user_is_owner`.

    Returns
    -------
    function
    """
    def protector(func: Callable) -> Callable:
        """Decorator that checks the access token."""
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            """
            Check the access token before executing the route.

            Raises
            ------
            :class:`.Unauthorized`
                Raised when there is no valid token.
            :class:`.Forbidden`
                Raised when the provided authorizer returns ``False``.

            """
            token = _bearer_token()
            if token is None:
                logger.debug('No bearer token; aborting')
                raise Unauthorized('Missing authorization token')

            secret = get_application_config().get('JWT_SECRET', 'foosecret')
            try:
                claims = decode_token(token, secret)
            except InvalidToken as e:
                logger.debug('Rejected token: %s', e)
                raise Unauthorized('Invalid authorization token') from e

            if authorizer and not authorizer(claims, *args, **kwargs):
                logger.debug('Authorizer returned negative result')
                raise Forbidden('Access denied')

            request.auth = claims
            return func(*args, **kwargs)
        return wrapper
    return protector
