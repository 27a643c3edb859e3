from datetime import datetime, timezone

from flask import current_app

from .. import db
from ..models import User
from .common import clean_name, commit_or_conflict
from .errors import (
    ConflictError, MembersNotFound, NotFoundError, ServiceError, ValidationError, translate_errors
)
from .relations import EntityKind, RelationKind, normalize_ids
from .synchronizer import get_synchronizer

USER_STATUSES = ('active', 'inactive', 'pending')
PROFILE_FIELDS = ('name', 'email', 'department', 'status', 'password_hash', 'updated_at')


def _clean_email(value):
    if not isinstance(value, str) or '@' not in value or len(value.strip()) > 100:
        raise ValidationError("A valid email is required")
    return value.strip().lower()


def _clean_status(value):
    if value not in USER_STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(USER_STATUSES)}")
    return value


class UserService:
    """User accounts (soft-deleted) and their role assignments."""

    @staticmethod
    def authenticate(email, password):
        """Return the live user matching the credentials, or None."""
        if not email or not password:
            return None
        user = User.live_query().filter(User.email == email.strip().lower()).first()
        if user and user.check_password(password):
            return user
        return None

    @staticmethod
    def list_users(status=None):
        query = User.live_query()
        if status:
            query = query.filter(User.status == status)
        return query.order_by(User.id).all()

    @staticmethod
    def get_user(user_id):
        user = db.session.get(User, user_id) if isinstance(user_id, int) else None
        if user is None or user.is_deleted:
            raise NotFoundError(f"User {user_id} not found")
        return user

    @staticmethod
    def _check_roles(role_ids, ctx):
        with translate_errors('User', 'Roles'):
            role_ids = normalize_ids(role_ids, label='role id', allow_empty=True)
            if role_ids:
                _, missing = get_synchronizer().validator.validate_exist(EntityKind.ROLE, role_ids, ctx=ctx)
                if missing:
                    raise MembersNotFound(RelationKind.USER_ROLE, missing)
        return role_ids

    @staticmethod
    def create_user(name, email, password, department=None, status='active', role_ids=None,
                    actor_id=None, ctx=None):
        name = clean_name(name, 'User')
        email = _clean_email(email)
        status = _clean_status(status)
        if not isinstance(password, str) or len(password) < 8:
            raise ValidationError("Password must be at least 8 characters")
        if User.query.filter_by(email=email).first():
            raise ConflictError(f"Email '{email}' is already registered")

        if role_ids is not None:
            role_ids = UserService._check_roles(role_ids, ctx)

        user = User(name=name, email=email, department=department, status=status)
        user.set_password(password)
        db.session.add(user)
        commit_or_conflict(f"Email '{email}' is already registered")

        if role_ids:
            try:
                UserService.replace_roles(user.id, role_ids, actor_id=actor_id, ctx=ctx)
            except ServiceError:
                current_app.logger.warning(f"Rolling back creation of user {user.id}: role assignment failed")
                db.session.delete(user)
                db.session.commit()
                raise

        current_app.logger.info(f"User {user.id} created")
        return user

    @staticmethod
    def _apply_fields(user, data):
        if 'name' in data:
            user.name = clean_name(data['name'], 'User')
        if 'email' in data:
            email = _clean_email(data['email'])
            existing = User.query.filter_by(email=email).first()
            if existing and existing.id != user.id:
                raise ConflictError(f"Email '{email}' is already registered")
            user.email = email
        if 'department' in data:
            user.department = data['department']
        if 'status' in data:
            user.status = _clean_status(data['status'])
        if data.get('password'):
            if not isinstance(data['password'], str) or len(data['password']) < 8:
                raise ValidationError("Password must be at least 8 characters")
            user.set_password(data['password'])

    @staticmethod
    def update_user(user_id, data, actor_id=None, ctx=None):
        """
        Update profile fields; a `role_ids` key replaces the user's roles.

        Field changes are committed first and the role replacement runs as
        its own engine transaction. If the replacement fails, the previous
        field values are written back before the error is re-raised.
        """
        user = UserService.get_user(user_id)

        role_ids = None
        if 'role_ids' in data:
            role_ids = UserService._check_roles(data['role_ids'], ctx)

        previous = {field: getattr(user, field) for field in PROFILE_FIELDS}
        try:
            UserService._apply_fields(user, data)
        except ServiceError:
            db.session.rollback()
            raise
        user.updated_at = datetime.now(timezone.utc)
        commit_or_conflict(f"Email '{user.email}' is already registered")

        if role_ids is not None:
            try:
                UserService.replace_roles(user.id, role_ids, actor_id=actor_id, ctx=ctx)
            except ServiceError:
                current_app.logger.warning(f"Reverting profile of user {user.id}: role replacement failed")
                for field, value in previous.items():
                    setattr(user, field, value)
                db.session.commit()
                raise
        return user

    @staticmethod
    def delete_user(user_id, actor_id=None):
        """Soft-delete a user and drop all of their role assignments."""
        user = UserService.get_user(user_id)
        sync = get_synchronizer()
        try:
            with translate_errors('User', 'Roles'):
                events = sync.clear_entity(EntityKind.USER, user.id, session=db.session, actor_id=actor_id)
            user.deleted_at = datetime.now(timezone.utc)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        sync.publish(events)
        current_app.logger.info(f"User {user_id} soft-deleted")

    # User -> role associations

    @staticmethod
    def list_roles(user_id, ctx=None):
        with translate_errors('User', 'Roles'):
            return get_synchronizer().list_members(RelationKind.USER_ROLE, user_id, ctx=ctx)

    @staticmethod
    def add_roles(user_id, role_ids, actor_id=None, ctx=None):
        with translate_errors('User', 'Roles'):
            return get_synchronizer().add(RelationKind.USER_ROLE, user_id, role_ids, ctx=ctx, actor_id=actor_id)

    @staticmethod
    def replace_roles(user_id, role_ids, actor_id=None, ctx=None):
        with translate_errors('User', 'Roles'):
            return get_synchronizer().replace(RelationKind.USER_ROLE, user_id, role_ids, ctx=ctx, actor_id=actor_id)

    @staticmethod
    def remove_roles(user_id, role_ids, actor_id=None, ctx=None):
        with translate_errors('User', 'Roles'):
            return get_synchronizer().remove(RelationKind.USER_ROLE, user_id, role_ids, ctx=ctx, actor_id=actor_id)
