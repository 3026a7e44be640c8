"""Application factory for the identity service."""

from celery import Celery
from flask import Flask, Response, jsonify
from werkzeug.exceptions import BadRequest, Conflict, Forbidden, \
    HTTPException, InternalServerError, MethodNotAllowed, NotFound, \
    TooManyRequests, Unauthorized

from .routes import external_api
from .services import analytics, expenses, notifications, store, users

celery_app = Celery('identity')
celery_app.config_from_object('identity.celeryconfig')


def create_web_app() -> Flask:
    """Initialize and configure the identity application."""
    app = Flask('identity')
    app.config.from_pyfile('config.py')

    users.init_app(app)
    store.init_app(app)
    notifications.init_app(app)
    expenses.init_app(app)
    analytics.init_app(app)

    app.register_blueprint(external_api.blueprint)
    register_error_handlers(app)

    if app.config['CREATE_DB']:
        with app.app_context():
            users.create_all()
    return app


def create_worker_app() -> Flask:
    """
    Initialize and configure the application used by the worker.

    Tasks run inside its application context, so that services see the same
    configuration as the web application.
    """
    app = Flask('identity')
    app.config.from_pyfile('config.py')
    analytics.init_app(app)
    return app


def register_error_handlers(app: Flask) -> None:
    """Register error handlers for the Flask app."""
    app.errorhandler(Forbidden)(jsonify_exception)
    app.errorhandler(Unauthorized)(jsonify_exception)
    app.errorhandler(BadRequest)(jsonify_exception)
    app.errorhandler(Conflict)(jsonify_exception)
    app.errorhandler(TooManyRequests)(jsonify_exception)
    app.errorhandler(InternalServerError)(jsonify_exception)
    app.errorhandler(NotFound)(jsonify_exception)
    app.errorhandler(MethodNotAllowed)(jsonify_exception)


def jsonify_exception(error: HTTPException) -> Response:
    """Render exceptions as JSON."""
    exc_resp = error.get_response()
    response: Response = jsonify(reason=error.description)
    response.status_code = exc_resp.status_code
    return response
