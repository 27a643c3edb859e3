"""Permission utilities for Flask-Principal integration."""
from functools import wraps
from flask import jsonify
from flask_principal import Permission as PrincipalPermission
from flask_login import current_user


class PermissionNeed(tuple):
    """A need for a specific permission."""
    def __new__(cls, permission_name):
        return tuple.__new__(cls, ('permission', permission_name))


def create_permission(permission_name):
    """Create a Flask-Principal Permission object for a permission name."""
    return PrincipalPermission(PermissionNeed(permission_name))


def _denied():
    if not current_user.is_authenticated:
        return jsonify(success=False, message="Authentication required"), 401
    return jsonify(success=False, message="Permission denied"), 403


def permission_required(permission_name):
    """
    Decorator to require a specific permission for a route.

    Usage:
        @permission_required(Permissions.ROLE_MANAGE)
        def update_role(role_id):
            ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            permission = create_permission(permission_name)
            if not permission.can():
                return _denied()
            return f(*args, **kwargs)
        return decorated_function
    return decorator


class Permissions:
    """Centralized permission constants."""
    USER_VIEW = 'USER_VIEW'
    USER_MANAGE = 'USER_MANAGE'
    ROLE_VIEW = 'ROLE_VIEW'
    ROLE_MANAGE = 'ROLE_MANAGE'
    ROLE_ASSIGN = 'ROLE_ASSIGN'
    PERMISSION_VIEW = 'PERMISSION_VIEW'
    PERMISSION_MANAGE = 'PERMISSION_MANAGE'
    GROUP_VIEW = 'GROUP_VIEW'
    GROUP_MANAGE = 'GROUP_MANAGE'
    AUDIT_VIEW = 'AUDIT_VIEW'

    # Roles
    ADMIN = 'Admin'


# (name, resource, action, description) for the built-in permission set
PERMISSION_CATALOGUE = [
    (Permissions.USER_VIEW, 'users', 'view', 'List and view users'),
    (Permissions.USER_MANAGE, 'users', 'manage', 'Create, update and delete users'),
    (Permissions.ROLE_VIEW, 'roles', 'view', 'List and view roles'),
    (Permissions.ROLE_MANAGE, 'roles', 'manage', 'Create, update, delete roles and edit their permissions'),
    (Permissions.ROLE_ASSIGN, 'roles', 'assign', 'Assign roles to users'),
    (Permissions.PERMISSION_VIEW, 'permissions', 'view', 'List permissions'),
    (Permissions.PERMISSION_MANAGE, 'permissions', 'manage', 'Create and delete permissions'),
    (Permissions.GROUP_VIEW, 'responsibility_groups', 'view', 'List responsibilities and groups'),
    (Permissions.GROUP_MANAGE, 'responsibility_groups', 'manage', 'Edit responsibilities and groups'),
    (Permissions.AUDIT_VIEW, 'audit', 'view', 'Read the association audit log'),
]
