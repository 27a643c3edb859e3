"""Permission model for authorization system."""
from datetime import datetime, timezone
from .base import db


class Permission(db.Model):
    """Represents a permission that can be assigned to roles."""
    __tablename__ = 'permissions'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False, index=True)
    description = db.Column(db.Text)
    resource = db.Column(db.String(50), nullable=False)  # e.g., 'users', 'roles', 'audit'
    action = db.Column(db.String(50), nullable=False)    # e.g., 'view', 'manage', 'assign'
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    roles = db.relationship('Role', secondary='role_permissions', viewonly=True)

    __table_args__ = (
        db.UniqueConstraint('resource', 'action', name='unique_permission_resource_action'),
    )

    def __repr__(self):
        return f'<Permission {self.name}>'

    @staticmethod
    def get_by_name(name):
        """Get permission by name."""
        return Permission.query.filter_by(name=name).first()

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'resource': self.resource,
            'action': self.action,
            'description': self.description,
        }
