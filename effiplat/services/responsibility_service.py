from flask import current_app

from .. import db
from ..models import Responsibility
from .common import clean_name, commit_or_conflict, get_or_404
from .errors import ConflictError, translate_errors
from .relations import EntityKind
from .synchronizer import get_synchronizer


class ResponsibilityService:
    @staticmethod
    def list_responsibilities():
        return Responsibility.query.order_by(Responsibility.name).all()

    @staticmethod
    def get_responsibility(responsibility_id):
        return get_or_404(Responsibility, responsibility_id, 'Responsibility')

    @staticmethod
    def create_responsibility(name, description=None):
        name = clean_name(name, 'Responsibility')
        if Responsibility.query.filter_by(name=name).first():
            raise ConflictError(f"Responsibility '{name}' already exists")
        responsibility = Responsibility(name=name, description=description)
        db.session.add(responsibility)
        commit_or_conflict(f"Responsibility '{name}' already exists")
        return responsibility

    @staticmethod
    def delete_responsibility(responsibility_id, actor_id=None):
        """Delete a responsibility after removing it from every group."""
        responsibility = ResponsibilityService.get_responsibility(responsibility_id)
        sync = get_synchronizer()
        try:
            with translate_errors('Responsibility', 'Responsibility groups'):
                events = sync.clear_entity(EntityKind.RESPONSIBILITY, responsibility.id, session=db.session,
                                           actor_id=actor_id)
            db.session.delete(responsibility)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        sync.publish(events)
        current_app.logger.info(f"Responsibility {responsibility_id} deleted")
