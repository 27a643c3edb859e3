from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from effiplat import db
from effiplat.services.errors import InvalidInput, StorageError
from effiplat.services.existence import EntityExistenceValidator
from effiplat.services.relations import EntityKind, RelationKind, normalize_ids


class BrokenSession:
    def execute(self, statement):
        raise OperationalError('SELECT 1', {}, Exception('disk I/O error'))


class TestNormalizeIds:
    def test_deduplicates_in_first_seen_order(self):
        assert normalize_ids([3, 1, 3, 2, 1]) == [3, 1, 2]

    def test_empty_needs_permission(self):
        with pytest.raises(InvalidInput):
            normalize_ids([])
        assert normalize_ids([], allow_empty=True) == []

    def test_rejects_non_positive_and_non_int(self):
        for bad in ([0], [-1], [1.5], ['2'], [None], [False]):
            with pytest.raises(InvalidInput):
                normalize_ids(bad)


class TestEntityExistenceValidator:
    def test_partitions_preserving_order(self, sync, factory):
        factory.permissions(2, 4, 6)

        found, missing = sync.validator.validate_exist(EntityKind.PERMISSION, [6, 5, 2, 6, 3, 4])

        assert found == [6, 2, 4]
        assert missing == [5, 3]

    def test_chunked_queries_cover_every_id(self, sync, factory):
        factory.permissions(*range(1, 8))
        small_chunks = EntityExistenceValidator(sync.provider, sync.validator.lookups, chunk_size=2)

        found, missing = small_chunks.validate_exist(EntityKind.PERMISSION, list(range(1, 11)))

        assert found == list(range(1, 8))
        assert missing == [8, 9, 10]

    def test_empty_input_is_invalid(self, sync):
        with pytest.raises(InvalidInput):
            sync.validator.validate_exist(EntityKind.ROLE, [])

    def test_soft_deleted_users_are_missing(self, sync, factory):
        factory.user(id=1, name='Live')
        gone = factory.user(id=2, name='Gone')
        gone.deleted_at = datetime.now(timezone.utc)
        db.session.commit()

        found, missing = sync.validator.validate_exist(EntityKind.USER, [1, 2])

        assert found == [1]
        assert missing == [2]

    def test_storage_failure_is_not_reported_as_missing(self, sync):
        with pytest.raises(StorageError):
            sync.validator.validate_exist(EntityKind.ROLE, [1], session=BrokenSession())

    def test_unknown_entity_kind(self, sync):
        with pytest.raises(InvalidInput):
            sync.validator.validate_exist('environment', [1])


class TestAssociationStore:
    def test_insert_skips_dead_and_present_members(self, sync, factory):
        factory.group(id=1)
        factory.responsibility(id=1)
        factory.responsibility(id=2)
        store = sync.store_for(RelationKind.GROUP_MEMBER)

        with sync.provider.transaction() as session:
            assert store.insert(session, 1, [1]) == 1
        with sync.provider.transaction() as session:
            assert store.insert(session, 1, [1, 2, 3]) == 1
            assert store.members_present(session, 1, [1, 2, 3]) == {1, 2}

        with sync.provider.read() as session:
            assert store.list_members(session, 1) == [1, 2]

    def test_replace_all_reports_delta(self, sync, factory):
        factory.group(id=1)
        for i in (1, 2, 3, 4):
            factory.responsibility(id=i)
        store = sync.store_for(RelationKind.GROUP_MEMBER)

        with sync.provider.transaction() as session:
            store.insert(session, 1, [1, 2, 3])
        with sync.provider.transaction() as session:
            added, removed = store.replace_all(session, 1, [3, 4])

        assert (added, removed) == ([4], [1, 2])
        with sync.provider.read() as session:
            assert store.list_members(session, 1) == [3, 4]

    def test_delete_counts_removed_rows(self, sync, factory):
        factory.group(id=1)
        factory.responsibility(id=1)
        store = sync.store_for(RelationKind.GROUP_MEMBER)

        with sync.provider.transaction() as session:
            store.insert(session, 1, [1])
        with sync.provider.transaction() as session:
            assert store.delete(session, 1, [1, 2]) == 1
            assert store.delete(session, 1, [1]) == 0

    def test_failed_transaction_leaves_no_rows(self, sync, factory):
        factory.group(id=1)
        factory.responsibility(id=1)
        store = sync.store_for(RelationKind.GROUP_MEMBER)

        with pytest.raises(RuntimeError):
            with sync.provider.transaction() as session:
                store.insert(session, 1, [1])
                raise RuntimeError('abort')

        with sync.provider.read() as session:
            assert store.list_members(session, 1) == []
