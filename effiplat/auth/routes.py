from flask import request, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user

from . import auth_bp  # Import the blueprint
from .. import db, login_manager
from ..models import User, AnonymousUser
from ..services.user_service import UserService

login_manager.anonymous_user = AnonymousUser


@login_manager.user_loader
def load_user(user_id):
    try:
        user = db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None
    if user is None or user.is_deleted:
        return None
    return user


# Login route
@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify(success=False, message="Expected a JSON object"), 400

    email = str(data.get('email', '')).strip()
    password = str(data.get('password', ''))

    # Input validation
    if not email or not password:
        return jsonify(success=False, message="Email and password are required"), 400
    if len(email) > 255 or len(password) > 128:
        return jsonify(success=False, message="Input too long"), 400

    user = UserService.authenticate(email, password)
    if user is None:
        return jsonify(success=False, message="Invalid email or password"), 401
    if not user.is_active:
        return jsonify(success=False, message="Account is inactive"), 403

    login_user(user, remember=bool(data.get('remember', False)))
    current_app.logger.info(f"User {user.id} logged in")
    return jsonify(success=True, data=user.to_dict(include_roles=True))


# Logout route
@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify(success=True)


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    data = current_user.to_dict(include_roles=True)
    data['permissions'] = sorted(current_user.get_permissions())
    return jsonify(success=True, data=data)
