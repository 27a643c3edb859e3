from datetime import datetime, timezone
from .base import db


class PermissionAudit(db.Model):
    __tablename__ = 'permission_audits'

    id = db.Column(db.Integer, primary_key=True)
    timestamp = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc), index=True)
    actor_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    relation_kind = db.Column(db.String(50), nullable=False)  # 'USER_ROLE', 'ROLE_PERMISSION', 'GROUP_MEMBER'
    owner_id = db.Column(db.Integer, nullable=False)
    added = db.Column(db.JSON, nullable=False, default=list)
    removed = db.Column(db.JSON, nullable=False, default=list)

    actor = db.relationship('User', foreign_keys=[actor_id])

    __table_args__ = (
        db.Index('ix_permission_audits_kind_owner', 'relation_kind', 'owner_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'timestamp': self.timestamp.strftime('%Y-%m-%d %H:%M:%S') if self.timestamp else None,
            'actor_id': self.actor_id,
            'actor_name': self.actor.name if self.actor else None,
            'relation_kind': self.relation_kind,
            'owner_id': self.owner_id,
            'added': list(self.added or []),
            'removed': list(self.removed or []),
        }
