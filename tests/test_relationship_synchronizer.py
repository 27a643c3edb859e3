"""Behaviour of the relationship synchronization engine across relation kinds."""
import dataclasses
import threading

import pytest
from sqlalchemy import select

from effiplat import db
from effiplat.models import PermissionAudit, RolePermission, ResponsibilityGroupMember, UserRole
from effiplat.services.context import SyncContext
from effiplat.services.errors import (
    Conflict, InvalidInput, MembersNotFound, OperationCancelled, OwnerNotFound, StorageError
)
from effiplat.services.relations import EntityKind, RelationKind
from effiplat.services.synchronizer import RelationshipSynchronizer


def join_rows(model, owner_column, owner_id):
    """Current join rows for an owner as {member_id: row_id}."""
    table = model.__table__
    member_column = [c for c in table.c.keys() if c.endswith('_id') and c != owner_column][0]
    with db.engine.connect() as conn:
        rows = conn.execute(
            select(table.c[member_column], table.c.id).where(table.c[owner_column] == owner_id)
        ).all()
    return {member: row_id for member, row_id in rows}


def role_permission_ids(role_id):
    return sorted(join_rows(RolePermission, 'role_id', role_id))


def audit_entries():
    db.session.expire_all()
    return PermissionAudit.query.order_by(PermissionAudit.id).all()


@pytest.fixture
def role_catalogue(factory):
    """Role 5 and permissions 1-4."""
    factory.role(id=5)
    factory.permissions(1, 2, 3, 4)


class TestAdd:
    def test_add_links_members(self, sync, role_catalogue):
        change = sync.add(RelationKind.ROLE_PERMISSION, 5, [1, 2])

        assert role_permission_ids(5) == [1, 2]
        assert change.added == [1, 2]
        assert change.removed == []

    def test_add_is_idempotent(self, sync, role_catalogue):
        sync.add(RelationKind.ROLE_PERMISSION, 5, [1, 2])
        rows_before = join_rows(RolePermission, 'role_id', 5)

        change = sync.add(RelationKind.ROLE_PERMISSION, 5, [2, 1])

        assert join_rows(RolePermission, 'role_id', 5) == rows_before
        assert change.added == []

    def test_add_overlapping_keeps_existing_rows(self, sync, role_catalogue):
        sync.add(RelationKind.ROLE_PERMISSION, 5, [1])
        first_row = join_rows(RolePermission, 'role_id', 5)[1]

        change = sync.add(RelationKind.ROLE_PERMISSION, 5, [1, 3])

        rows = join_rows(RolePermission, 'role_id', 5)
        assert sorted(rows) == [1, 3]
        assert rows[1] == first_row
        assert change.added == [3]

    def test_add_with_missing_member_changes_nothing(self, sync, factory):
        factory.group(id=10)
        factory.responsibility(id=7)
        factory.responsibility(id=8)
        sync.add(RelationKind.GROUP_MEMBER, 10, [7, 8])

        with pytest.raises(MembersNotFound) as excinfo:
            sync.add(RelationKind.GROUP_MEMBER, 10, [8, 9])

        assert excinfo.value.missing_ids == [9]
        assert sorted(join_rows(ResponsibilityGroupMember, 'group_id', 10)) == [7, 8]

    def test_add_reports_every_missing_member(self, sync, role_catalogue):
        with pytest.raises(MembersNotFound) as excinfo:
            sync.add(RelationKind.ROLE_PERMISSION, 5, [1, 40, 2, 41, 40])

        assert excinfo.value.missing_ids == [40, 41]
        assert role_permission_ids(5) == []

    def test_add_to_missing_owner(self, sync, role_catalogue):
        with pytest.raises(OwnerNotFound) as excinfo:
            sync.add(RelationKind.ROLE_PERMISSION, 99, [1])

        assert excinfo.value.owner_id == 99
        assert role_permission_ids(99) == []

    def test_owner_is_checked_before_members(self, sync, role_catalogue):
        with pytest.raises(OwnerNotFound):
            sync.add(RelationKind.ROLE_PERMISSION, 99, [77])

    @pytest.mark.parametrize('member_ids', [[], None, [0], [-3], ['1'], [True], 'abc'])
    def test_add_rejects_bad_member_ids(self, sync, role_catalogue, member_ids):
        with pytest.raises(InvalidInput):
            sync.add(RelationKind.ROLE_PERMISSION, 5, member_ids)
        assert role_permission_ids(5) == []

    def test_unknown_relation_kind(self, sync, role_catalogue):
        with pytest.raises(InvalidInput):
            sync.add('TEAM_MEMBER', 5, [1])

    def test_relation_kind_accepts_string_names(self, sync, role_catalogue):
        sync.add('role_permission', 5, [4])
        assert role_permission_ids(5) == [4]


class TestRemove:
    def test_remove_members(self, sync, role_catalogue):
        sync.add(RelationKind.ROLE_PERMISSION, 5, [1, 2, 3])

        change = sync.remove(RelationKind.ROLE_PERMISSION, 5, [1, 3])

        assert role_permission_ids(5) == [2]
        assert change.removed == [1, 3]

    def test_remove_is_idempotent(self, sync, role_catalogue):
        sync.add(RelationKind.ROLE_PERMISSION, 5, [1, 2])
        sync.remove(RelationKind.ROLE_PERMISSION, 5, [1])

        change = sync.remove(RelationKind.ROLE_PERMISSION, 5, [1])

        assert role_permission_ids(5) == [2]
        assert change.removed == []

    def test_remove_ignores_unknown_member_ids(self, sync, role_catalogue):
        sync.add(RelationKind.ROLE_PERMISSION, 5, [1])

        change = sync.remove(RelationKind.ROLE_PERMISSION, 5, [1, 404])

        assert role_permission_ids(5) == []
        assert change.removed == [1]

    def test_remove_from_missing_owner(self, sync, role_catalogue):
        with pytest.raises(OwnerNotFound):
            sync.remove(RelationKind.ROLE_PERMISSION, 99, [1])

    def test_remove_requires_members(self, sync, role_catalogue):
        with pytest.raises(InvalidInput):
            sync.remove(RelationKind.ROLE_PERMISSION, 5, [])


class TestReplace:
    def test_replace_keeps_stable_rows(self, sync, role_catalogue):
        sync.add(RelationKind.ROLE_PERMISSION, 5, [1, 2, 3])
        before = join_rows(RolePermission, 'role_id', 5)

        change = sync.replace(RelationKind.ROLE_PERMISSION, 5, [2, 3, 4])

        after = join_rows(RolePermission, 'role_id', 5)
        assert sorted(after) == [2, 3, 4]
        assert after[2] == before[2]
        assert after[3] == before[3]
        assert change.added == [4]
        assert change.removed == [1]

    def test_replace_with_empty_set_clears(self, sync, role_catalogue):
        sync.add(RelationKind.ROLE_PERMISSION, 5, [1, 2])

        change = sync.replace(RelationKind.ROLE_PERMISSION, 5, [])

        assert role_permission_ids(5) == []
        assert change.removed == [1, 2]

    def test_replace_with_same_set_is_noop(self, sync, role_catalogue):
        sync.add(RelationKind.ROLE_PERMISSION, 5, [1, 2])
        before = join_rows(RolePermission, 'role_id', 5)

        change = sync.replace(RelationKind.ROLE_PERMISSION, 5, [2, 1, 2])

        assert join_rows(RolePermission, 'role_id', 5) == before
        assert not change.changed

    def test_replace_with_missing_member_changes_nothing(self, sync, role_catalogue):
        sync.add(RelationKind.ROLE_PERMISSION, 5, [1, 2])

        with pytest.raises(MembersNotFound) as excinfo:
            sync.replace(RelationKind.ROLE_PERMISSION, 5, [3, 50])

        assert excinfo.value.missing_ids == [50]
        assert role_permission_ids(5) == [1, 2]

    def test_replace_missing_owner(self, sync, role_catalogue):
        with pytest.raises(OwnerNotFound):
            sync.replace(RelationKind.ROLE_PERMISSION, 6, [])

    def test_concurrent_replace_last_writer_wins(self, app, sync, role_catalogue):
        sync.add(RelationKind.ROLE_PERMISSION, 5, [3, 4])
        barrier = threading.Barrier(2)
        outcomes = []

        def worker(member_ids):
            with app.app_context():
                barrier.wait()
                try:
                    sync.replace(RelationKind.ROLE_PERMISSION, 5, member_ids)
                    outcomes.append(('ok', member_ids))
                except Exception as e:
                    outcomes.append(('error', e))

        threads = [threading.Thread(target=worker, args=([1],)),
                   threading.Thread(target=worker, args=([2],))]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert [kind for kind, _ in outcomes] == ['ok', 'ok'], outcomes
        assert sorted(ids for _, ids in outcomes) == [[1], [2]]
        assert role_permission_ids(5) in ([1], [2])


class TestTransactions:
    def test_member_vanishing_after_validation_rolls_back(self, sync, role_catalogue, monkeypatch):
        original = sync._require_members

        def validate_then_delete(spec, member_ids, ctx):
            original(spec, member_ids, ctx)
            with db.engine.begin() as conn:
                conn.exec_driver_sql('DELETE FROM permissions WHERE id = 3')

        monkeypatch.setattr(sync, '_require_members', validate_then_delete)

        with pytest.raises(MembersNotFound) as excinfo:
            sync.add(RelationKind.ROLE_PERMISSION, 5, [1, 2, 3])

        assert excinfo.value.missing_ids == [3]
        assert role_permission_ids(5) == []

    def test_cancelled_context_rolls_back(self, sync, role_catalogue):
        sync.add(RelationKind.ROLE_PERMISSION, 5, [1, 2])

        class CancelBeforeVerification(SyncContext):
            def check(self, stage=''):
                if stage == 'verification':
                    self.cancel()
                super().check(stage)

        with pytest.raises(OperationCancelled):
            sync.replace(RelationKind.ROLE_PERMISSION, 5, [3, 4], ctx=CancelBeforeVerification())

        assert role_permission_ids(5) == [1, 2]

    def test_cancelled_before_start(self, sync, role_catalogue):
        ctx = SyncContext()
        ctx.cancel()

        with pytest.raises(OperationCancelled):
            sync.add(RelationKind.ROLE_PERMISSION, 5, [1], ctx=ctx)
        assert role_permission_ids(5) == []

    def test_expired_deadline(self, sync, role_catalogue):
        ctx = SyncContext(timeout=30)
        ctx.deadline = 0

        with pytest.raises(OperationCancelled):
            sync.replace(RelationKind.ROLE_PERMISSION, 5, [1], ctx=ctx)
        assert role_permission_ids(5) == []

    def test_cancellation_is_a_storage_error(self):
        assert issubclass(OperationCancelled, StorageError)

    def test_member_cap_conflict(self, sync, role_catalogue):
        spec = sync.spec_for(RelationKind.ROLE_PERMISSION)
        capped = RelationshipSynchronizer(
            sync.provider, sync.validator,
            {spec.kind: dataclasses.replace(spec, max_members=2)},
        )

        capped.add(RelationKind.ROLE_PERMISSION, 5, [1, 2])
        with pytest.raises(Conflict):
            capped.add(RelationKind.ROLE_PERMISSION, 5, [3])

        assert role_permission_ids(5) == [1, 2]
        capped.replace(RelationKind.ROLE_PERMISSION, 5, [3, 4])
        assert role_permission_ids(5) == [3, 4]


class TestUsers:
    def test_soft_deleted_user_is_not_an_owner(self, sync, factory):
        from datetime import datetime, timezone
        user = factory.user(id=1, name='Gone')
        factory.role(id=2)
        user.deleted_at = datetime.now(timezone.utc)
        db.session.commit()

        with pytest.raises(OwnerNotFound):
            sync.add(RelationKind.USER_ROLE, 1, [2])
        assert join_rows(UserRole, 'user_id', 1) == {}

    def test_user_role_rows_record_actor(self, sync, factory):
        factory.user(id=1, name='Admin')
        factory.user(id=2, name='Member')
        factory.role(id=3)

        sync.add(RelationKind.USER_ROLE, 2, [3], actor_id=1)

        row = db.session.execute(select(UserRole).where(UserRole.user_id == 2)).scalar_one()
        assert row.assigned_by == 1
        assert row.assigned_at is not None

    def test_list_members(self, sync, factory):
        factory.user(id=1)
        for role_id in (4, 2, 9):
            factory.role(id=role_id)
        sync.add(RelationKind.USER_ROLE, 1, [9, 4, 2])

        assert sync.list_members(RelationKind.USER_ROLE, 1) == [2, 4, 9]
        with pytest.raises(OwnerNotFound):
            sync.list_members(RelationKind.USER_ROLE, 8)


class TestClearEntity:
    def test_clear_role_removes_links_on_both_sides(self, sync, factory, role_catalogue):
        factory.user(id=1)
        factory.user(id=2, name='Second')
        sync.add(RelationKind.ROLE_PERMISSION, 5, [1, 2])
        sync.add(RelationKind.USER_ROLE, 1, [5])
        sync.add(RelationKind.USER_ROLE, 2, [5])

        events = sync.clear_entity(EntityKind.ROLE, 5)

        assert role_permission_ids(5) == []
        assert join_rows(UserRole, 'user_id', 1) == {}
        assert join_rows(UserRole, 'user_id', 2) == {}
        kinds = sorted((e.relation_kind.value, e.owner_id) for e in events)
        assert kinds == [('ROLE_PERMISSION', 5), ('USER_ROLE', 1), ('USER_ROLE', 2)]

    def test_clear_in_caller_session_defers_publishing(self, sync, role_catalogue):
        sync.add(RelationKind.ROLE_PERMISSION, 5, [1])
        audits_before = len(audit_entries())

        events = sync.clear_entity(EntityKind.PERMISSION, 1, session=db.session)
        assert len(audit_entries()) == audits_before
        db.session.commit()
        sync.publish(events)

        assert role_permission_ids(5) == []
        assert len(audit_entries()) == audits_before + 1


class TestAudit:
    def test_changes_are_audited(self, sync, factory, role_catalogue):
        factory.user(id=1, name='Admin')
        sync.add(RelationKind.ROLE_PERMISSION, 5, [1, 2], actor_id=1)
        sync.replace(RelationKind.ROLE_PERMISSION, 5, [2, 3], actor_id=1)

        entries = audit_entries()
        assert [(e.relation_kind, e.owner_id, e.added, e.removed, e.actor_id) for e in entries] == [
            ('ROLE_PERMISSION', 5, [1, 2], [], 1),
            ('ROLE_PERMISSION', 5, [3], [1], 1),
        ]

    def test_no_event_when_nothing_changed(self, sync, role_catalogue):
        sync.add(RelationKind.ROLE_PERMISSION, 5, [1])
        sync.add(RelationKind.ROLE_PERMISSION, 5, [1])
        sync.remove(RelationKind.ROLE_PERMISSION, 5, [2])

        assert len(audit_entries()) == 1

    def test_failed_validation_emits_nothing(self, sync, role_catalogue):
        with pytest.raises(MembersNotFound):
            sync.add(RelationKind.ROLE_PERMISSION, 5, [1, 60])
        assert audit_entries() == []

    def test_sink_failure_does_not_fail_operation(self, sync, role_catalogue, monkeypatch):
        def broken_sink(change):
            raise RuntimeError('audit store unavailable')

        monkeypatch.setattr(sync, 'audit_sink', broken_sink)

        change = sync.add(RelationKind.ROLE_PERMISSION, 5, [1])

        assert change.added == [1]
        assert role_permission_ids(5) == [1]

    def test_async_sink_writes_in_background(self, app, sync, role_catalogue, monkeypatch):
        monkeypatch.setattr(sync.audit_sink, 'async_mode', True)
        started = []
        original_start = threading.Thread.start

        def tracking_start(thread):
            started.append(thread)
            original_start(thread)

        monkeypatch.setattr(threading.Thread, 'start', tracking_start)

        sync.add(RelationKind.ROLE_PERMISSION, 5, [2])
        for thread in started:
            thread.join(timeout=10)

        assert len(started) == 1
        assert [e.added for e in audit_entries()] == [[2]]
