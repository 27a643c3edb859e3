import sqlite3

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import MetaData, event
from sqlalchemy.engine import Engine
from flask_migrate import Migrate
from flask_caching import Cache
from flask_login import LoginManager, current_user
from flask_principal import Principal, Identity, AnonymousIdentity, identity_loaded


# 1. Create extension instances WITHOUT an app
# They will be "connected" to the app inside the factory

# Define naming convention for SQLAlchemy
convention = {
    "ix": 'ix_%(column_0_label)s',
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}
metadata = MetaData(naming_convention=convention)

db = SQLAlchemy(metadata=metadata)
migrate = Migrate()
cache = Cache()

login_manager = LoginManager()
login_manager.login_view = 'auth_bp.login'

principal = Principal(use_sessions=False)


@principal.identity_loader
def load_identity_from_user():
    """Derive the request identity from the Flask-Login user."""
    if current_user.is_authenticated:
        return Identity(current_user.id)
    return AnonymousIdentity()


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify(success=False, message="Authentication required"), 401


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE clauses unless asked per connection
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_app(config_class='config.Config'):
    """
    Application Factory Function
    """

    app = Flask(__name__, instance_relative_config=True)

    # Load configuration from the config.py file
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    principal.init_app(app)
    cache.init_app(app)

    @identity_loaded.connect_via(app)
    def on_identity_loaded(sender, identity):
        """Load user roles and permissions into the identity."""
        from flask_principal import RoleNeed, UserNeed
        from .models import User
        from .auth.permissions import PermissionNeed

        identity.user = db.session.get(User, identity.id) if identity.id is not None else None

        if identity.user and not identity.user.is_deleted:
            identity.provides.add(UserNeed(identity.id))

            for role in identity.user.roles:
                identity.provides.add(RoleNeed(role.name))

            for permission_name in identity.user.get_permissions():
                identity.provides.add(PermissionNeed(permission_name))

    # Wire the relationship engine once per app
    from .services.synchronizer import init_synchronizer
    init_synchronizer(app)

    from .services.errors import ServiceError

    @app.errorhandler(ServiceError)
    def handle_service_error(err):
        if err.status_code >= 500:
            app.logger.error(f"Service failure: {err.message}")
        return jsonify(err.to_dict()), err.status_code

    # Register Blueprints
    # Imports are *inside* the factory to avoid circular import issues
    with app.app_context():
        from .auth.routes import auth_bp
        from .users_routes import users_bp
        from .roles_routes import roles_bp
        from .permissions_routes import permissions_bp
        from .responsibility_groups_routes import responsibility_groups_bp
        from .audit_routes import audit_bp

        # Import models so SQLAlchemy knows about them
        from . import models

        app.register_blueprint(auth_bp, url_prefix='/api/v1/auth')
        app.register_blueprint(users_bp, url_prefix='/api/v1')
        app.register_blueprint(roles_bp, url_prefix='/api/v1')
        app.register_blueprint(permissions_bp, url_prefix='/api/v1')
        app.register_blueprint(responsibility_groups_bp, url_prefix='/api/v1')
        app.register_blueprint(audit_bp, url_prefix='/api/v1')

    # Register CLI commands
    from .commands.seed_rbac import seed_rbac
    app.cli.add_command(seed_rbac)

    return app
