"""
Relationship synchronization engine.

One engine handles every many-to-many association in the system. Callers
name the relation kind; the registry supplies the join table and the
entity kinds on either side. Each mutating call validates the owner and
members outside any transaction, then runs one transaction that locks the
owner row, applies set-based statements, re-verifies the result and
commits. Events are published only after a successful commit.
"""
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from .. import db
from .association_store import AssociationStore
from .audit import AssociationChange, PermissionAuditSink
from .context import SyncContext
from .errors import Conflict, InvalidInput, MembersNotFound, OwnerNotFound, StorageError, SyncError
from .existence import EntityExistenceValidator, build_entity_lookups
from .permission_cache import invalidate_for_change
from .relations import (
    build_relation_specs, coerce_entity_kind, coerce_relation_kind, normalize_id, normalize_ids
)
from .transactions import TransactionProvider

EXTENSION_KEY = 'relationship_synchronizer'


class RelationshipSynchronizer:
    def __init__(self, provider, validator, relations, audit_sink=None, listeners=None, chunk_size=500):
        self.provider = provider
        self.validator = validator
        self.relations = dict(relations)
        self.audit_sink = audit_sink
        self.listeners = list(listeners or [])
        self.stores = {
            kind: AssociationStore(spec, validator.lookup(spec.member_kind), chunk_size=chunk_size)
            for kind, spec in self.relations.items()
        }

    def spec_for(self, relation_kind):
        kind = coerce_relation_kind(relation_kind)
        try:
            return self.relations[kind]
        except KeyError:
            raise InvalidInput(f"Relation {kind.value} is not registered")

    def store_for(self, relation_kind):
        return self.stores[self.spec_for(relation_kind).kind]

    # Validation (outside any transaction)

    def _require_owner(self, spec, owner_id, ctx):
        if not self.validator.exists(spec.owner_kind, owner_id, ctx=ctx):
            current_app.logger.warning(f"{spec.kind.value}: owner {owner_id} not found")
            raise OwnerNotFound(spec.kind, owner_id)

    def _require_members(self, spec, member_ids, ctx):
        _, missing = self.validator.validate_exist(spec.member_kind, member_ids, ctx=ctx)
        if missing:
            current_app.logger.warning(f"{spec.kind.value}: members not found {missing}")
            raise MembersNotFound(spec.kind, missing)

    # Inside the transaction

    def _lock_owner(self, session, spec, owner_id):
        """Re-check the owner and hold its row until commit."""
        query = self.validator.live_ids_query(spec.owner_kind, [owner_id]).with_for_update()
        if session.execute(query).scalar_one_or_none() is None:
            raise OwnerNotFound(spec.kind, owner_id)

    def _enforce_cap(self, session, spec, store, owner_id):
        if spec.max_members is None:
            return
        count = len(store.list_members(session, owner_id))
        if count > spec.max_members:
            raise Conflict(
                f"{spec.kind.value} owner {owner_id} would have {count} members "
                f"(limit {spec.max_members})")

    def _run(self, spec, owner_id, ctx, operation, mutate):
        store = self.stores[spec.kind]
        try:
            with self.provider.transaction(ctx) as session:
                ctx.check('lock')
                self._lock_owner(session, spec, owner_id)
                return mutate(session, store)
        except SyncError as e:
            current_app.logger.warning(f"{spec.kind.value} {operation} for owner {owner_id} aborted: {e.message}")
            raise
        except SQLAlchemyError as e:
            current_app.logger.exception(f"{spec.kind.value} {operation} for owner {owner_id} failed")
            raise StorageError(f"{operation} failed: {e}") from e

    # Public operations

    def add(self, relation_kind, owner_id, member_ids, ctx=None, actor_id=None):
        """Link members to the owner. Already-linked members are left alone."""
        spec = self.spec_for(relation_kind)
        ctx = ctx or SyncContext()
        ctx.check('validation')
        owner_id = normalize_id(owner_id, 'owner id')
        member_ids = normalize_ids(member_ids)

        self._require_owner(spec, owner_id, ctx)
        self._require_members(spec, member_ids, ctx)

        def mutate(session, store):
            before = store.members_present(session, owner_id, member_ids)
            ctx.check('insert')
            store.insert(session, owner_id, member_ids, actor_id=actor_id)
            ctx.check('verification')
            present = store.members_present(session, owner_id, member_ids)
            vanished = [i for i in member_ids if i not in present]
            if vanished:
                raise MembersNotFound(spec.kind, vanished)
            self._enforce_cap(session, spec, store, owner_id)
            added = sorted(i for i in member_ids if i not in before)
            return AssociationChange(spec.kind, owner_id, added=added, actor_id=actor_id)

        change = self._run(spec, owner_id, ctx, 'add', mutate)
        current_app.logger.info(f"{spec.kind.value} add owner={owner_id} added={len(change.added)}")
        self.publish([change])
        return change

    def remove(self, relation_kind, owner_id, member_ids, ctx=None, actor_id=None):
        """Unlink members from the owner. Ids that are not linked are ignored."""
        spec = self.spec_for(relation_kind)
        ctx = ctx or SyncContext()
        ctx.check('validation')
        owner_id = normalize_id(owner_id, 'owner id')
        member_ids = normalize_ids(member_ids)

        self._require_owner(spec, owner_id, ctx)

        def mutate(session, store):
            before = store.members_present(session, owner_id, member_ids)
            ctx.check('delete')
            store.delete(session, owner_id, member_ids)
            return AssociationChange(spec.kind, owner_id, removed=sorted(before), actor_id=actor_id)

        change = self._run(spec, owner_id, ctx, 'remove', mutate)
        current_app.logger.info(f"{spec.kind.value} remove owner={owner_id} removed={len(change.removed)}")
        self.publish([change])
        return change

    def replace(self, relation_kind, owner_id, new_member_ids, ctx=None, actor_id=None):
        """Make the owner's members exactly `new_member_ids`; an empty list clears them."""
        spec = self.spec_for(relation_kind)
        ctx = ctx or SyncContext()
        ctx.check('validation')
        owner_id = normalize_id(owner_id, 'owner id')
        new_member_ids = normalize_ids(new_member_ids, allow_empty=True)

        self._require_owner(spec, owner_id, ctx)
        if new_member_ids:
            self._require_members(spec, new_member_ids, ctx)

        def mutate(session, store):
            ctx.check('replace')
            added, removed = store.replace_all(session, owner_id, new_member_ids, actor_id=actor_id)
            ctx.check('verification')
            final = set(store.list_members(session, owner_id))
            vanished = [i for i in new_member_ids if i not in final]
            if vanished:
                raise MembersNotFound(spec.kind, vanished)
            if len(final) != len(new_member_ids):
                raise StorageError(f"{spec.kind.value} owner {owner_id} membership diverged during replace")
            self._enforce_cap(session, spec, store, owner_id)
            return AssociationChange(spec.kind, owner_id, added=added, removed=removed, actor_id=actor_id)

        change = self._run(spec, owner_id, ctx, 'replace', mutate)
        current_app.logger.info(
            f"{spec.kind.value} replace owner={owner_id} "
            f"added={len(change.added)} removed={len(change.removed)}")
        self.publish([change])
        return change

    def list_members(self, relation_kind, owner_id, ctx=None):
        spec = self.spec_for(relation_kind)
        ctx = ctx or SyncContext()
        owner_id = normalize_id(owner_id, 'owner id')
        self._require_owner(spec, owner_id, ctx)
        try:
            with self.provider.read() as session:
                return self.stores[spec.kind].list_members(session, owner_id)
        except SQLAlchemyError as e:
            current_app.logger.exception(f"{spec.kind.value} list for owner {owner_id} failed")
            raise StorageError(f"list failed: {e}") from e

    def clear_entity(self, entity_kind, entity_id, session=None, ctx=None, actor_id=None):
        """
        Remove every association that references the entity, on either side.

        With `session`, the deletes join the caller's unit of work and the
        returned events must be handed to publish() once the caller commits.
        Without it, a transaction is opened here and events are published
        on commit.
        """
        kind = coerce_entity_kind(entity_kind)
        entity_id = normalize_id(entity_id, f"{kind.value} id")
        ctx = ctx or SyncContext()
        ctx.check('clear')

        def run(sess):
            events = []
            for spec in self.relations.values():
                store = self.stores[spec.kind]
                if spec.owner_kind == kind:
                    removed = store.clear_owner(sess, entity_id)
                    if removed:
                        events.append(AssociationChange(spec.kind, entity_id, removed=removed, actor_id=actor_id))
                if spec.member_kind == kind:
                    for owner in store.clear_member(sess, entity_id):
                        events.append(AssociationChange(spec.kind, owner, removed=[entity_id], actor_id=actor_id))
            return events

        try:
            if session is not None:
                return run(session)
            with self.provider.transaction(ctx) as own_session:
                events = run(own_session)
        except SQLAlchemyError as e:
            current_app.logger.exception(f"Clearing associations of {kind.value} {entity_id} failed")
            raise StorageError(f"clear failed: {e}") from e

        self.publish(events)
        return events

    def publish(self, events):
        """Hand committed changes to listeners and the audit sink. Never raises."""
        for change in events:
            if not change.changed:
                continue
            for listener in self.listeners:
                try:
                    listener(change)
                except Exception as e:
                    current_app.logger.error(f"Change listener failed for {change.relation_kind.value}: {e}")
            if self.audit_sink is not None:
                try:
                    self.audit_sink(change)
                except Exception as e:
                    current_app.logger.error(f"Audit sink failed for {change.relation_kind.value}: {e}")


def init_synchronizer(app):
    """Build the engine for `app` and register it under app.extensions."""
    provider = TransactionProvider(db)
    chunk_size = app.config.get('VALIDATION_CHUNK_SIZE', 500)
    validator = EntityExistenceValidator(provider, build_entity_lookups(), chunk_size=chunk_size)
    synchronizer = RelationshipSynchronizer(
        provider,
        validator,
        build_relation_specs(),
        audit_sink=PermissionAuditSink(provider, async_mode=app.config.get('AUDIT_ASYNC', True)),
        listeners=[invalidate_for_change],
        chunk_size=chunk_size,
    )
    app.extensions[EXTENSION_KEY] = synchronizer
    return synchronizer


def get_synchronizer():
    return current_app.extensions[EXTENSION_KEY]
