"""Join-table reads and writes for a single relation kind."""
from sqlalchemy import Integer, delete, exists, insert, literal, null, select
from sqlalchemy.dialects import postgresql, sqlite


class AssociationStore:
    """
    Set-based statements against one join table.

    Every method runs inside the caller's session and leaves commit and
    rollback to the caller.
    """

    def __init__(self, spec, member_lookup, chunk_size=500):
        self.spec = spec
        self.member_lookup = member_lookup
        self.chunk_size = max(1, int(chunk_size))

    @property
    def table(self):
        return self.spec.table

    def _insert_for(self, session):
        dialect = session.get_bind().dialect.name
        if dialect == 'sqlite':
            return sqlite.insert(self.table).on_conflict_do_nothing()
        if dialect == 'postgresql':
            return postgresql.insert(self.table).on_conflict_do_nothing()
        if dialect in ('mysql', 'mariadb'):
            return insert(self.table).prefix_with('IGNORE')
        return insert(self.table)

    def _insert_chunk(self, session, owner_id, member_ids, actor_id):
        spec = self.spec
        member_id = self.member_lookup.id_column
        existing = self.table.alias('existing')

        columns = [literal(owner_id, Integer), member_id]
        targets = [spec.owner_column, spec.member_column]
        if spec.actor_column:
            columns.append(literal(actor_id, Integer) if actor_id is not None else null())
            targets.append(spec.actor_column)

        source = select(*columns).where(
            member_id.in_(member_ids),
            *self.member_lookup.criteria(),
            ~exists().where(
                existing.c[spec.owner_column] == owner_id,
                existing.c[spec.member_column] == member_id,
            ),
        )
        result = session.execute(self._insert_for(session).from_select(targets, source))
        return max(result.rowcount or 0, 0)

    def insert(self, session, owner_id, member_ids, actor_id=None):
        """Insert missing (owner, member) pairs for live members; returns rows inserted."""
        member_ids = list(member_ids)
        inserted = 0
        for start in range(0, len(member_ids), self.chunk_size):
            chunk = member_ids[start:start + self.chunk_size]
            inserted += self._insert_chunk(session, owner_id, chunk, actor_id)
        return inserted

    def delete(self, session, owner_id, member_ids):
        member_ids = list(member_ids)
        removed = 0
        for start in range(0, len(member_ids), self.chunk_size):
            chunk = member_ids[start:start + self.chunk_size]
            result = session.execute(
                delete(self.table).where(
                    self.spec.owner_col == owner_id,
                    self.spec.member_col.in_(chunk),
                )
            )
            removed += max(result.rowcount or 0, 0)
        return removed

    def list_members(self, session, owner_id):
        stmt = select(self.spec.member_col)\
            .where(self.spec.owner_col == owner_id)\
            .order_by(self.spec.member_col)
        return list(session.execute(stmt).scalars())

    def members_present(self, session, owner_id, member_ids):
        member_ids = list(member_ids)
        present = set()
        for start in range(0, len(member_ids), self.chunk_size):
            chunk = member_ids[start:start + self.chunk_size]
            stmt = select(self.spec.member_col).where(
                self.spec.owner_col == owner_id,
                self.spec.member_col.in_(chunk),
            )
            present.update(session.execute(stmt).scalars())
        return present

    def replace_all(self, session, owner_id, new_member_ids, actor_id=None):
        """
        Make the owner's membership equal `new_member_ids`.

        Stable members keep their rows. Returns (added, removed) as sorted id
        lists computed against the membership read at the start of the call.
        """
        new_member_ids = list(new_member_ids)
        wanted = set(new_member_ids)
        current = set(self.list_members(session, owner_id))

        stmt = delete(self.table).where(self.spec.owner_col == owner_id)
        if new_member_ids:
            stmt = stmt.where(self.spec.member_col.not_in(new_member_ids))
        session.execute(stmt)

        if new_member_ids:
            self.insert(session, owner_id, new_member_ids, actor_id=actor_id)

        return sorted(wanted - current), sorted(current - wanted)

    def clear_owner(self, session, owner_id):
        """Drop every row of the owner; returns the member ids that were linked."""
        members = self.list_members(session, owner_id)
        if members:
            session.execute(delete(self.table).where(self.spec.owner_col == owner_id))
        return members

    def clear_member(self, session, member_id):
        """Drop every row pointing at the member; returns the affected owner ids."""
        owners = sorted(session.execute(
            select(self.spec.owner_col).where(self.spec.member_col == member_id)
        ).scalars())
        if owners:
            session.execute(delete(self.table).where(self.spec.member_col == member_id))
        return owners
