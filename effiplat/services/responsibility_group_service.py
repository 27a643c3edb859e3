from datetime import datetime, timezone

from flask import current_app

from .. import db
from ..models import ResponsibilityGroup
from .common import clean_name, commit_or_conflict, get_or_404
from .errors import ConflictError, MembersNotFound, ServiceError, translate_errors
from .relations import EntityKind, RelationKind, normalize_ids
from .synchronizer import get_synchronizer

GROUP = 'Responsibility group'
MEMBERS = 'Responsibilities'


class ResponsibilityGroupService:
    """Responsibility groups and the responsibilities they bundle."""

    @staticmethod
    def list_groups():
        return ResponsibilityGroup.query.order_by(ResponsibilityGroup.name).all()

    @staticmethod
    def get_group(group_id):
        return get_or_404(ResponsibilityGroup, group_id, GROUP)

    @staticmethod
    def create_group(name, description=None, responsibility_ids=None, actor_id=None, ctx=None):
        name = clean_name(name, GROUP)
        if ResponsibilityGroup.query.filter_by(name=name).first():
            raise ConflictError(f"{GROUP} '{name}' already exists")

        sync = get_synchronizer()
        if responsibility_ids is not None:
            with translate_errors(GROUP, MEMBERS):
                responsibility_ids = normalize_ids(responsibility_ids, label='responsibility id', allow_empty=True)
                if responsibility_ids:
                    _, missing = sync.validator.validate_exist(
                        EntityKind.RESPONSIBILITY, responsibility_ids, ctx=ctx)
                    if missing:
                        raise MembersNotFound(RelationKind.GROUP_MEMBER, missing)

        group = ResponsibilityGroup(name=name, description=description)
        db.session.add(group)
        commit_or_conflict(f"{GROUP} '{name}' already exists")

        if responsibility_ids:
            try:
                ResponsibilityGroupService.replace_responsibilities(
                    group.id, responsibility_ids, actor_id=actor_id, ctx=ctx)
            except ServiceError:
                current_app.logger.warning(f"Rolling back creation of group {group.id}: member assignment failed")
                db.session.delete(group)
                db.session.commit()
                raise
        return group

    @staticmethod
    def update_group(group_id, name=None, description=None):
        group = ResponsibilityGroupService.get_group(group_id)
        if name is not None:
            name = clean_name(name, GROUP)
            existing = ResponsibilityGroup.query.filter_by(name=name).first()
            if existing and existing.id != group.id:
                raise ConflictError(f"{GROUP} '{name}' already exists")
            group.name = name
        if description is not None:
            group.description = description
        group.updated_at = datetime.now(timezone.utc)
        commit_or_conflict(f"{GROUP} '{group.name}' already exists")
        return group

    @staticmethod
    def delete_group(group_id, actor_id=None):
        group = ResponsibilityGroupService.get_group(group_id)
        sync = get_synchronizer()
        try:
            with translate_errors(GROUP, MEMBERS):
                events = sync.clear_entity(EntityKind.RESPONSIBILITY_GROUP, group.id, session=db.session,
                                           actor_id=actor_id)
            db.session.delete(group)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        sync.publish(events)
        current_app.logger.info(f"Responsibility group {group_id} deleted")

    # Group -> responsibility associations

    @staticmethod
    def list_responsibilities(group_id, ctx=None):
        with translate_errors(GROUP, MEMBERS):
            return get_synchronizer().list_members(RelationKind.GROUP_MEMBER, group_id, ctx=ctx)

    @staticmethod
    def add_responsibilities(group_id, responsibility_ids, actor_id=None, ctx=None):
        with translate_errors(GROUP, MEMBERS):
            return get_synchronizer().add(
                RelationKind.GROUP_MEMBER, group_id, responsibility_ids, ctx=ctx, actor_id=actor_id)

    @staticmethod
    def replace_responsibilities(group_id, responsibility_ids, actor_id=None, ctx=None):
        with translate_errors(GROUP, MEMBERS):
            return get_synchronizer().replace(
                RelationKind.GROUP_MEMBER, group_id, responsibility_ids, ctx=ctx, actor_id=actor_id)

    @staticmethod
    def remove_responsibilities(group_id, responsibility_ids, actor_id=None, ctx=None):
        with translate_errors(GROUP, MEMBERS):
            return get_synchronizer().remove(
                RelationKind.GROUP_MEMBER, group_id, responsibility_ids, ctx=ctx, actor_id=actor_id)
