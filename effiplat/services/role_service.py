from datetime import datetime, timezone

from flask import current_app

from .. import db
from ..models import Role
from .common import clean_name, commit_or_conflict, get_or_404
from .errors import ConflictError, MembersNotFound, ServiceError, translate_errors
from .relations import EntityKind, RelationKind, normalize_ids
from .synchronizer import get_synchronizer


class RoleService:
    """Role catalogue and the permissions each role grants."""

    @staticmethod
    def list_roles():
        return Role.query.order_by(Role.name).all()

    @staticmethod
    def get_role(role_id):
        return get_or_404(Role, role_id, 'Role')

    @staticmethod
    def create_role(name, description=None, permission_ids=None, actor_id=None, ctx=None):
        """
        Create a role, optionally with an initial permission set.

        Permission ids are checked before the role is written. If assigning
        them fails afterwards, the new role is deleted again and the error
        is re-raised.
        """
        name = clean_name(name, 'Role', max_length=50)
        if Role.get_by_name(name):
            raise ConflictError(f"Role '{name}' already exists")

        sync = get_synchronizer()
        if permission_ids is not None:
            with translate_errors('Role', 'Permissions'):
                permission_ids = normalize_ids(permission_ids, label='permission id', allow_empty=True)
                if permission_ids:
                    _, missing = sync.validator.validate_exist(EntityKind.PERMISSION, permission_ids, ctx=ctx)
                    if missing:
                        raise MembersNotFound(RelationKind.ROLE_PERMISSION, missing)

        role = Role(name=name, description=description)
        db.session.add(role)
        commit_or_conflict(f"Role '{name}' already exists")

        if permission_ids:
            try:
                with translate_errors('Role', 'Permissions'):
                    sync.replace(RelationKind.ROLE_PERMISSION, role.id, permission_ids, ctx=ctx, actor_id=actor_id)
            except ServiceError:
                current_app.logger.warning(f"Rolling back creation of role {role.id}: permission assignment failed")
                db.session.delete(role)
                db.session.commit()
                raise

        current_app.logger.info(f"Role {role.id} '{name}' created")
        return role

    @staticmethod
    def update_role(role_id, name=None, description=None):
        role = RoleService.get_role(role_id)
        if name is not None:
            name = clean_name(name, 'Role', max_length=50)
            existing = Role.get_by_name(name)
            if existing and existing.id != role.id:
                raise ConflictError(f"Role '{name}' already exists")
            role.name = name
        if description is not None:
            role.description = description
        role.updated_at = datetime.now(timezone.utc)
        commit_or_conflict(f"Role '{role.name}' already exists")
        return role

    @staticmethod
    def delete_role(role_id, actor_id=None):
        """Delete a role after unlinking it from every user and permission."""
        role = RoleService.get_role(role_id)
        sync = get_synchronizer()
        try:
            with translate_errors('Role', 'Permissions'):
                events = sync.clear_entity(EntityKind.ROLE, role.id, session=db.session, actor_id=actor_id)
            db.session.delete(role)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        sync.publish(events)
        current_app.logger.info(f"Role {role_id} deleted")

    # Role -> permission associations

    @staticmethod
    def list_permissions(role_id, ctx=None):
        with translate_errors('Role', 'Permissions'):
            return get_synchronizer().list_members(RelationKind.ROLE_PERMISSION, role_id, ctx=ctx)

    @staticmethod
    def add_permissions(role_id, permission_ids, actor_id=None, ctx=None):
        with translate_errors('Role', 'Permissions'):
            return get_synchronizer().add(
                RelationKind.ROLE_PERMISSION, role_id, permission_ids, ctx=ctx, actor_id=actor_id)

    @staticmethod
    def replace_permissions(role_id, permission_ids, actor_id=None, ctx=None):
        with translate_errors('Role', 'Permissions'):
            return get_synchronizer().replace(
                RelationKind.ROLE_PERMISSION, role_id, permission_ids, ctx=ctx, actor_id=actor_id)

    @staticmethod
    def remove_permissions(role_id, permission_ids, actor_id=None, ctx=None):
        with translate_errors('Role', 'Permissions'):
            return get_synchronizer().remove(
                RelationKind.ROLE_PERMISSION, role_id, permission_ids, ctx=ctx, actor_id=actor_id)
