"""Association change events and the sink that records them."""
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from flask import current_app

from .relations import RelationKind


@dataclass
class AssociationChange:
    relation_kind: RelationKind
    owner_id: int
    added: List[int] = field(default_factory=list)
    removed: List[int] = field(default_factory=list)
    actor_id: Optional[int] = None

    @property
    def changed(self):
        return bool(self.added or self.removed)

    def to_dict(self):
        return {
            'relation_kind': self.relation_kind.value,
            'owner_id': self.owner_id,
            'added': list(self.added),
            'removed': list(self.removed),
            'actor_id': self.actor_id,
        }


class PermissionAuditSink:
    """
    Persists AssociationChange events as PermissionAudit rows.

    Runs after the mutating transaction has committed. Delivery is best
    effort: with async enabled the write happens on a daemon thread, and a
    failed write is logged and dropped.
    """

    def __init__(self, provider, async_mode=True):
        self.provider = provider
        self.async_mode = async_mode

    def __call__(self, change):
        if not change.changed:
            return

        if not self.async_mode:
            self._write(change)
            return

        app = current_app._get_current_object()
        worker = threading.Thread(target=self._write_in_app, args=(app, change), daemon=True)
        worker.start()

    def _write_in_app(self, app, change):
        with app.app_context():
            self._write(change)

    def _write(self, change):
        from ..models import PermissionAudit

        try:
            with self.provider.transaction() as session:
                session.add(PermissionAudit(
                    actor_id=change.actor_id,
                    relation_kind=change.relation_kind.value,
                    owner_id=change.owner_id,
                    added=list(change.added),
                    removed=list(change.removed),
                ))
        except Exception as e:
            current_app.logger.error(
                f"Failed to record audit for {change.relation_kind.value} owner {change.owner_id}: {e}")
