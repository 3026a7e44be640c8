"""Helpers for getting at application configuration and globals."""

import os
from typing import Optional, Union, Mapping, Any

from flask import Flask, current_app, g, has_app_context


def get_application_config(app: Optional[Flask] = None) \
        -> Union[Mapping[str, Any], os._Environ]:
    """
    Get a configuration from the current app, or fall back to env.

    Parameters
    ----------
    app : :class:`flask.Flask`

    Returns
    -------
    dict-like
        This is either the current Flask application configuration, or
        ``os.environ``. Either of these should support the ``get()`` method.
    """
    if app is not None:
        return app.config
    if has_app_context():
        return current_app.config
    return os.environ


def get_application_global() -> Optional[Any]:
    """
    Get the current global object, if there is an application context.

    Returns
    -------
    :class:`flask._app_ctx_globals` or None
    """
    if has_app_context():
        return g
    return None


def get_application_extension(name: str, app: Optional[Flask] = None) \
        -> Optional[Any]:
    """Get an object registered in ``app.extensions``, if there is one."""
    if app is None:
        if not has_app_context():
            return None
        app = current_app
    return app.extensions.get(name)
