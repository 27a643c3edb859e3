"""Association table for User-Role many-to-many relationship."""
from sqlalchemy import func
from .base import db


class UserRole(db.Model):
    """Association table linking users to roles with audit information."""
    __tablename__ = 'user_roles'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    role_id = db.Column(db.Integer, db.ForeignKey('roles.id', ondelete='CASCADE'), nullable=False, index=True)
    # Set by the database; rows are written with INSERT ... SELECT
    assigned_at = db.Column(db.DateTime, server_default=func.now())
    assigned_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'))

    __table_args__ = (
        db.UniqueConstraint('user_id', 'role_id', name='unique_user_role'),
    )

    def __repr__(self):
        return f'<UserRole user_id={self.user_id} role_id={self.role_id}>'
