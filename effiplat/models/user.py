"""User model for authentication and authorization."""
from datetime import datetime, timezone

from flask_login import UserMixin, AnonymousUserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from .base import db


def permission_cache_key(user_id):
    return f"user_permissions_{user_id}"


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(100), unique=True, nullable=False, index=True)
    department = db.Column(db.String(100), nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(20), nullable=False, default='active', index=True)  # active, inactive, pending
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))
    deleted_at = db.Column(db.DateTime, nullable=True, index=True)

    # Read-only: user_roles rows are written by the relationship synchronizer only
    roles = db.relationship(
        'Role',
        secondary='user_roles',
        primaryjoin='User.id == UserRole.user_id',
        secondaryjoin='Role.id == UserRole.role_id',
        order_by='Role.id',
        viewonly=True
    )

    def __repr__(self):
        return f'<User {self.email}>'

    @classmethod
    def live_query(cls):
        """Query over users that have not been soft-deleted."""
        return cls.query.filter(cls.deleted_at.is_(None))

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    @property
    def is_active(self):
        # Flask-Login refuses to log in inactive users
        return self.status == 'active' and not self.is_deleted

    def set_password(self, password):
        self.password_hash = generate_password_hash(password, method='pbkdf2:sha256')

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    # Permission system methods

    def get_permissions(self):
        """Get all permission names granted through this user's roles."""
        from .. import cache
        from .permission import Permission
        from .role_permission import RolePermission
        from .user_role import UserRole

        key = permission_cache_key(self.id)
        cached = cache.get(key)
        if cached is not None:
            return set(cached)

        rows = db.session.query(Permission.name)\
            .join(RolePermission, RolePermission.permission_id == Permission.id)\
            .join(UserRole, UserRole.role_id == RolePermission.role_id)\
            .filter(UserRole.user_id == self.id)\
            .distinct()\
            .all()
        permissions = {name for (name,) in rows}
        cache.set(key, sorted(permissions))
        return permissions

    def has_permission(self, permission_name):
        """Check if user has a specific permission."""
        return permission_name in self.get_permissions()

    def to_dict(self, include_roles=False):
        data = {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'department': self.department,
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_roles:
            data['roles'] = [{'id': r.id, 'name': r.name} for r in self.roles]
        return data


class AnonymousUser(AnonymousUserMixin):
    def get_permissions(self):
        return set()

    def has_permission(self, permission_name):
        return False
