"""Scoped sessions with explicit begin/commit/rollback per engine operation."""
from contextlib import contextmanager

from sqlalchemy.orm import Session


class TransactionProvider:
    """
    Hands out a fresh Session per unit of work, independent of the
    request-scoped db.session.

    Sessions are bound to the Flask-SQLAlchemy engine, which requires an
    application context when they are opened.
    """

    def __init__(self, db):
        self.db = db

    def _new_session(self):
        return Session(bind=self.db.engine, expire_on_commit=False)

    @contextmanager
    def read(self):
        session = self._new_session()
        try:
            yield session
        finally:
            session.close()

    @contextmanager
    def transaction(self, ctx=None):
        session = self._new_session()
        try:
            yield session
            if ctx is not None:
                ctx.check('commit')
            session.commit()
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()
