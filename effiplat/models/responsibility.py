"""Responsibility catalogue model."""
from datetime import datetime, timezone
from .base import db


class Responsibility(db.Model):
    __tablename__ = 'responsibilities'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False, index=True)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    groups = db.relationship(
        'ResponsibilityGroup',
        secondary='responsibility_group_responsibilities',
        viewonly=True
    )

    def __repr__(self):
        return f'<Responsibility {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
        }
