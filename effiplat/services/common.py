"""Small helpers shared by the service facades."""
from sqlalchemy.exc import IntegrityError

from .. import db
from .errors import ConflictError, NotFoundError, ValidationError


def clean_name(value, label, max_length=100):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} name is required")
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{label} name must be at most {max_length} characters")
    return value


def get_or_404(model, entity_id, label):
    entity = db.session.get(model, entity_id) if isinstance(entity_id, int) else None
    if entity is None:
        raise NotFoundError(f"{label} {entity_id} not found")
    return entity


def commit_or_conflict(message):
    """Commit db.session, reporting a unique-constraint race as a conflict."""
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise ConflictError(message) from e
