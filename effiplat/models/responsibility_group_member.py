"""Association table for ResponsibilityGroup-Responsibility many-to-many relationship."""
from .base import db


class ResponsibilityGroupMember(db.Model):
    __tablename__ = 'responsibility_group_responsibilities'

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('responsibility_groups.id', ondelete='CASCADE'),
                         nullable=False, index=True)
    responsibility_id = db.Column(db.Integer, db.ForeignKey('responsibilities.id', ondelete='CASCADE'),
                                  nullable=False, index=True)

    __table_args__ = (
        db.UniqueConstraint('group_id', 'responsibility_id', name='unique_group_responsibility'),
    )

    def __repr__(self):
        return f'<ResponsibilityGroupMember group_id={self.group_id} responsibility_id={self.responsibility_id}>'
