"""Batched existence checks for owners and members."""
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from .errors import InvalidInput, StorageError
from .relations import EntityKind, coerce_entity_kind, normalize_ids

DEFAULT_CHUNK_SIZE = 500


@dataclass(frozen=True)
class EntityLookup:
    """How to find live rows of one entity kind."""
    kind: EntityKind
    model: type
    live_criteria: Optional[Callable[[], List]] = field(default=None)

    @property
    def id_column(self):
        return self.model.__table__.c.id

    def criteria(self):
        return list(self.live_criteria()) if self.live_criteria else []


def build_entity_lookups():
    from ..models import User, Role, Permission, Responsibility, ResponsibilityGroup

    lookups = [
        EntityLookup(EntityKind.USER, User, lambda: [User.__table__.c.deleted_at.is_(None)]),
        EntityLookup(EntityKind.ROLE, Role),
        EntityLookup(EntityKind.PERMISSION, Permission),
        EntityLookup(EntityKind.RESPONSIBILITY, Responsibility),
        EntityLookup(EntityKind.RESPONSIBILITY_GROUP, ResponsibilityGroup),
    ]
    return {lookup.kind: lookup for lookup in lookups}


class EntityExistenceValidator:
    def __init__(self, provider, lookups, chunk_size=DEFAULT_CHUNK_SIZE):
        self.provider = provider
        self.lookups = lookups
        self.chunk_size = max(1, int(chunk_size))

    def lookup(self, entity_kind):
        kind = coerce_entity_kind(entity_kind)
        try:
            return self.lookups[kind]
        except KeyError:
            raise InvalidInput(f"No lookup registered for {kind.value}")

    def live_ids_query(self, entity_kind, ids):
        """SELECT of live ids among `ids`, usable inside other statements."""
        lookup = self.lookup(entity_kind)
        return select(lookup.id_column).where(lookup.id_column.in_(ids), *lookup.criteria())

    def validate_exist(self, entity_kind, ids, ctx=None, session=None):
        """
        Partition `ids` into those that resolve to live rows and those that don't.

        Returns (found, missing); both preserve the order of the de-duplicated
        input. Raises InvalidInput for an empty collection and StorageError if
        the lookup itself fails.
        """
        ids = normalize_ids(ids, label=f"{coerce_entity_kind(entity_kind).value} id")
        existing = set()

        try:
            if session is not None:
                existing = self._fetch(session, entity_kind, ids, ctx)
            else:
                with self.provider.read() as read_session:
                    existing = self._fetch(read_session, entity_kind, ids, ctx)
        except SQLAlchemyError as e:
            current_app.logger.error(f"Existence check for {entity_kind} failed: {e}")
            raise StorageError(f"Existence check failed: {e}") from e

        found = [i for i in ids if i in existing]
        missing = [i for i in ids if i not in existing]
        return found, missing

    def _fetch(self, session, entity_kind, ids, ctx):
        existing = set()
        for start in range(0, len(ids), self.chunk_size):
            if ctx is not None:
                ctx.check('validation')
            chunk = ids[start:start + self.chunk_size]
            existing.update(session.execute(self.live_ids_query(entity_kind, chunk)).scalars())
        return existing

    def exists(self, entity_kind, entity_id, ctx=None, session=None):
        found, _ = self.validate_exist(entity_kind, [entity_id], ctx=ctx, session=session)
        return bool(found)
