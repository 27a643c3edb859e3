"""Role model for authorization system."""
from datetime import datetime, timezone
from .base import db


class Role(db.Model):
    """Represents a role that can be assigned to users."""
    __tablename__ = 'roles'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False, index=True)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    # Relationships (join rows are owned by the relationship synchronizer)
    permissions = db.relationship(
        'Permission',
        secondary='role_permissions',
        order_by='Permission.id',
        viewonly=True
    )
    users = db.relationship(
        'User',
        secondary='user_roles',
        primaryjoin='Role.id == UserRole.role_id',
        secondaryjoin='and_(User.id == UserRole.user_id, User.deleted_at.is_(None))',
        viewonly=True
    )

    def __repr__(self):
        return f'<Role {self.name}>'

    @staticmethod
    def get_by_name(name):
        """Get role by name."""
        return Role.query.filter_by(name=name).first()

    def to_dict(self, include_permissions=False):
        data = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_permissions:
            data['permissions'] = [p.to_dict() for p in self.permissions]
            data['user_count'] = len(self.users)
        return data
