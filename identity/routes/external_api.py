"""Provides routes for the external API."""

from flask import Blueprint, request
from flask.json import jsonify

from .. import status
from ..authorization import authenticated
from ..controllers import auth, users

blueprint = Blueprint('external_api', __name__, url_prefix='/api/v1')


@blueprint.route('/health', methods=['GET'])
def ok() -> tuple:
    """Health check endpoint."""
    return jsonify({'status': 'ok'}), status.HTTP_200_OK


@blueprint.route('/auth/register', methods=['POST'])
def register() -> tuple:
    """Create a new account."""
    payload = request.get_json(force=True, silent=True)
    data, status_code, headers = auth.register(payload)
    return jsonify(data), status_code, headers


@blueprint.route('/auth/login', methods=['POST'])
def login() -> tuple:
    """Log in, and get an access token."""
    payload = request.get_json(force=True, silent=True)
    data, status_code, headers = auth.login(payload)
    return jsonify(data), status_code, headers


@blueprint.route('/internal/users/<string:user_id>', methods=['GET'])
def read_internal_user(user_id: str) -> tuple:
    """Provide the internal view of a user to other services."""
    data, status_code, headers = users.get_internal_user(user_id)
    return jsonify(data), status_code, headers


@blueprint.route('/users/me', methods=['GET'])
@authenticated()
def read_current_user() -> tuple:
    """Provide the profile of the authenticated user."""
    data, status_code, headers = users.get_current_user(request.auth)
    return jsonify(data), status_code, headers


@blueprint.route('/users/<string:user_id>', methods=['DELETE'])
@authenticated()
def delete_user(user_id: str) -> tuple:
    """Delete the authenticated user's account."""
    data, status_code, headers = users.delete_user(request.auth, user_id)
    return jsonify(data), status_code, headers
