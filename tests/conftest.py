"""
Pytest configuration and fixtures.
"""
import os
import sys
import tempfile

import pytest

# Add project root to Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__) + "/.."))


class _TestConfigBase:
    TESTING = True
    SERVER_NAME = 'localhost.localdomain'
    SESSION_PROTECTION = None
    CACHE_TYPE = 'SimpleCache'
    AUDIT_ASYNC = False
    SYNC_TIMEOUT_SECONDS = 30
    VALIDATION_CHUNK_SIZE = 500


def make_test_config(db_path):
    from config import Config

    class TestConfig(_TestConfigBase, Config):
        SQLALCHEMY_DATABASE_URI = f'sqlite:///{db_path}'

    return TestConfig


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    from effiplat import create_app, db

    # File-backed SQLite so engine sessions and threads see committed data
    db_fd, db_path = tempfile.mkstemp(suffix='.db')
    app = create_app(make_test_config(db_path))

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.engine.dispose()
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture(scope='function', autouse=True)
def clean_db(app):
    """Clean database and cache between tests."""
    from effiplat import db, cache
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.create_all()
        cache.clear()
    yield


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def ctx(app):
    """Run the test body inside an application context."""
    from effiplat import db
    with app.app_context():
        yield app
        db.session.remove()


@pytest.fixture(scope='function')
def sync(ctx):
    from effiplat.services.synchronizer import get_synchronizer
    return get_synchronizer()


class Factory:
    """Commits rows through db.session so engine sessions can see them."""

    def __init__(self, db):
        self.db = db

    def _save(self, *objs):
        self.db.session.add_all(objs)
        self.db.session.commit()
        return objs[0] if len(objs) == 1 else objs

    def user(self, id=None, name='User', email=None, password='password123', status='active'):
        from effiplat.models import User
        email = email or f'user{id or name.lower().replace(" ", "")}@example.com'
        user = User(id=id, name=name, email=email, status=status)
        user.set_password(password)
        return self._save(user)

    def role(self, id=None, name=None):
        from effiplat.models import Role
        return self._save(Role(id=id, name=name or f'Role {id}'))

    def permission(self, id=None, name=None, resource=None, action=None):
        from effiplat.models import Permission
        name = name or f'PERM_{id}'
        return self._save(Permission(id=id, name=name, resource=resource or f'res{id or name}',
                                     action=action or 'use'))

    def permissions(self, *ids):
        return [self.permission(id=i) for i in ids]

    def responsibility(self, id=None, name=None):
        from effiplat.models import Responsibility
        return self._save(Responsibility(id=id, name=name or f'Responsibility {id}'))

    def group(self, id=None, name=None):
        from effiplat.models import ResponsibilityGroup
        return self._save(ResponsibilityGroup(id=id, name=name or f'Group {id}'))


@pytest.fixture(scope='function')
def factory(ctx):
    from effiplat import db
    return Factory(db)


class AuthActions:
    def __init__(self, client):
        self._client = client

    def login(self, email='admin@example.com', password='adminpass123'):
        return self._client.post('/api/v1/auth/login', json={'email': email, 'password': password})

    def logout(self):
        return self._client.post('/api/v1/auth/logout')


@pytest.fixture
def auth(client):
    return AuthActions(client)


@pytest.fixture
def admin_user(app):
    """Seed the permission catalogue and an Admin user through the CLI."""
    runner = app.test_cli_runner()
    result = runner.invoke(args=['seed-rbac', '--admin-email', 'admin@example.com',
                                 '--admin-password', 'adminpass123'])
    assert result.exit_code == 0, result.output
    from effiplat.models import User
    with app.app_context():
        return User.query.filter_by(email='admin@example.com').first().id
