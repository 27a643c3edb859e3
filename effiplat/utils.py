"""Request helpers shared by the JSON blueprints."""
from functools import wraps

from flask import request, current_app, jsonify
from flask_login import current_user

from . import db
from .services.context import SyncContext
from .services.errors import InvalidInput, ServiceError, ValidationError
from .services.relations import normalize_ids


def json_body():
    """The request body as a dict; anything else is a 400."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def ids_from_request(*keys, allow_empty=False):
    """
    Read an id list from the JSON body.

    Accepts the generic "ids" key or any of the feature keys given, e.g.
    ids_from_request('role_ids').
    """
    data = json_body()
    for key in ('ids',) + keys:
        if key in data:
            try:
                return normalize_ids(data[key], label='id', allow_empty=allow_empty)
            except InvalidInput as e:
                raise ValidationError(e.message) from e
    raise ValidationError(f"Missing id list; expected one of: {', '.join(('ids',) + keys)}")


def optional_ids(data, key):
    if key not in data or data[key] is None:
        return None
    try:
        return normalize_ids(data[key], label='id', allow_empty=True)
    except InvalidInput as e:
        raise ValidationError(e.message) from e


def current_actor_id():
    if current_user.is_authenticated:
        return current_user.id
    return None


def sync_context():
    return SyncContext(timeout=current_app.config.get('SYNC_TIMEOUT_SECONDS'))


def api_errors(action):
    """
    Map ServiceErrors to their JSON response and anything unexpected to a
    logged 500 after rolling back db.session.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except ServiceError as e:
                if e.status_code >= 500:
                    current_app.logger.error(f"Error {action}: {e.message}")
                return jsonify(e.to_dict()), e.status_code
            except Exception as e:
                db.session.rollback()
                current_app.logger.exception(f"Error {action}: {str(e)}")
                return jsonify(success=False, message="Internal server error"), 500
        return decorated_function
    return decorator
