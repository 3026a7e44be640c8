"""Web Server Gateway Interface entry-point."""

import os
from typing import Optional

from flask import Flask

from identity.factory import create_web_app

__flask_app__: Optional[Flask] = None


def application(environ, start_response):    # type: ignore
    """WSGI application."""
    for key, value in environ.items():
        # Hosts such as uWSGI on k8s pass the container ID as SERVER_NAME;
        # keep the configured value instead.
        if key == 'SERVER_NAME':
            continue
        if isinstance(value, str):
            os.environ[key] = value

    global __flask_app__
    if __flask_app__ is None:
        __flask_app__ = create_web_app()
    return __flask_app__(environ, start_response)
