from flask import current_app

from .. import db
from ..models import Permission
from .common import clean_name, commit_or_conflict, get_or_404
from .errors import ConflictError, ValidationError, translate_errors
from .relations import EntityKind
from .synchronizer import get_synchronizer


class PermissionService:
    @staticmethod
    def list_permissions(resource=None):
        query = Permission.query
        if resource:
            query = query.filter(Permission.resource == resource)
        return query.order_by(Permission.resource, Permission.action).all()

    @staticmethod
    def get_permission(permission_id):
        return get_or_404(Permission, permission_id, 'Permission')

    @staticmethod
    def create_permission(name, resource, action, description=None):
        name = clean_name(name, 'Permission')
        if not resource or not action:
            raise ValidationError("Permission resource and action are required")
        resource, action = str(resource).strip(), str(action).strip()

        if Permission.get_by_name(name):
            raise ConflictError(f"Permission '{name}' already exists")
        if Permission.query.filter_by(resource=resource, action=action).first():
            raise ConflictError(f"Permission for {resource}:{action} already exists")

        permission = Permission(name=name, resource=resource, action=action, description=description)
        db.session.add(permission)
        commit_or_conflict(f"Permission '{name}' already exists")
        current_app.logger.info(f"Permission {permission.id} '{name}' created")
        return permission

    @staticmethod
    def delete_permission(permission_id, actor_id=None):
        """Delete a permission after removing it from every role."""
        permission = PermissionService.get_permission(permission_id)
        sync = get_synchronizer()
        try:
            with translate_errors('Permission', 'Roles'):
                events = sync.clear_entity(EntityKind.PERMISSION, permission.id, session=db.session,
                                           actor_id=actor_id)
            db.session.delete(permission)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        sync.publish(events)
        current_app.logger.info(f"Permission {permission_id} deleted")
