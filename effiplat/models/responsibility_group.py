"""Responsibility group model."""
from datetime import datetime, timezone
from .base import db


class ResponsibilityGroup(db.Model):
    """A named bundle of responsibilities."""
    __tablename__ = 'responsibility_groups'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False, index=True)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    responsibilities = db.relationship(
        'Responsibility',
        secondary='responsibility_group_responsibilities',
        order_by='Responsibility.id',
        viewonly=True
    )

    def __repr__(self):
        return f'<ResponsibilityGroup {self.name}>'

    def to_dict(self, include_responsibilities=False):
        data = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_responsibilities:
            data['responsibilities'] = [r.to_dict() for r in self.responsibilities]
        return data
