import click
from flask.cli import with_appcontext

from .. import db
from ..auth.permissions import PERMISSION_CATALOGUE, Permissions
from ..models import Permission, Role, User
from ..services.relations import RelationKind
from ..services.synchronizer import get_synchronizer


@click.command('seed-rbac')
@click.option('--admin-email', default=None, help='Create (or reuse) this user and give it the Admin role.')
@click.option('--admin-password', default=None, help='Password for a newly created admin user.')
@with_appcontext
def seed_rbac(admin_email, admin_password):
    """Create the built-in permissions and an Admin role holding all of them."""
    click.echo("Seeding permissions...")

    # 1. Create Permissions
    for name, resource, action, description in PERMISSION_CATALOGUE:
        if not Permission.get_by_name(name):
            db.session.add(Permission(name=name, resource=resource, action=action, description=description))
            click.echo(f"Created permission: {name}")

    # 2. Admin role
    admin_role = Role.get_by_name(Permissions.ADMIN)
    if not admin_role:
        admin_role = Role(name=Permissions.ADMIN, description='Full access to the platform')
        db.session.add(admin_role)
        click.echo(f"Created role: {Permissions.ADMIN}")
    db.session.commit()

    sync = get_synchronizer()
    permission_ids = [p.id for p in Permission.query.order_by(Permission.id).all()]
    change = sync.add(RelationKind.ROLE_PERMISSION, admin_role.id, permission_ids)
    click.echo(f"Granted {len(change.added)} permissions to {Permissions.ADMIN}")

    # 3. Optional admin user
    if admin_email:
        email = admin_email.strip().lower()
        user = User.live_query().filter_by(email=email).first()
        if not user:
            if not admin_password:
                raise click.UsageError("--admin-password is required to create a new admin user")
            user = User(name='Administrator', email=email, status='active')
            user.set_password(admin_password)
            db.session.add(user)
            db.session.commit()
            click.echo(f"Created user: {email}")
        sync.add(RelationKind.USER_ROLE, user.id, [admin_role.id])
        click.echo(f"Assigned {Permissions.ADMIN} to {email}")

    click.echo("RBAC seed complete.")
