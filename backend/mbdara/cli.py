# Overview: Flask CLI command groups for bootstrap, tenancy and session issuance.

# backend/mbdara/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Schema:
# - python -m flask db upgrade
#   Apply migrations (preferred for real databases).
# - python -m flask system init-db
#   Create any missing tables directly from the models (dev/test).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Organization management (MULTI-TENANT):
# - python -m flask orgs list
# - python -m flask orgs create --name "Acme Corp" [--owner-id 1]
# - python -m flask orgs add-member --org-id 1 --user-id 2 --role member
#
# Users:
# - python -m flask users list
# - python -m flask users create --name "Ada" --email ada@example.com
#
# Sessions (there is no login endpoint; tokens are issued here):
# - python -m flask sessions issue --user-id 1 --org-id 1
#   Prints the bearer token once. Only its hash is stored.
# - python -m flask sessions revoke <token>

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Organization, Member, User
from .services import organization_service, session_service
from .validation import ConflictError, NotFoundError, ValidationError


@click.group('system')
def system_group():
    """Schema bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('orgs')
def orgs_group():
    """Organization (tenant) management."""


@orgs_group.command('list')
@with_appcontext
def list_orgs():
    orgs = db.session.query(Organization).order_by(Organization.id).all()
    if not orgs:
        click.echo("No organizations found.")
        return

    click.echo("\n" + "="*72)
    click.echo(f"{'ID':<5} {'Name':<30} {'Slug':<25} {'Active':<8} {'Members'}")
    click.echo("="*72)
    for org in orgs:
        member_count = db.session.query(Member).filter_by(org_id=org.id).count()
        active_str = "yes" if org.is_active else "no"
        click.echo(f"{org.id:<5} {org.name:<30} {org.slug:<25} {active_str:<8} {member_count}")
    click.echo("="*72 + "\n")


@orgs_group.command('create')
@click.option('--name', required=True, help='Organization name')
@click.option('--owner-id', type=int, default=None, help='User ID to add as admin')
@with_appcontext
def create_org_cli(name, owner_id):
    """Create a new organization (tenant)."""
    if owner_id is not None and db.session.get(User, owner_id) is None:
        click.echo(f"FAIL User ID {owner_id} not found")
        return

    try:
        org = organization_service.create_organization(name=name, owner_user_id=owner_id)
    except ValidationError as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created organization: {org.name} (ID: {org.id}, Slug: {org.slug})")


@orgs_group.command('add-member')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@click.option('--user-id', type=int, required=True, help='User ID')
@click.option('--role', type=click.Choice(organization_service.MEMBER_ROLES), default='member')
@with_appcontext
def add_member_cli(org_id, user_id, role):
    try:
        organization_service.add_member(org_id=org_id, user_id=user_id, role=role)
    except (ValidationError, NotFoundError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Added user {user_id} to organization {org_id} as {role}")


@click.group('users')
def users_group():
    """User inspection and bootstrap."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.id).all()
    if not users:
        click.echo("No users found.")
        return

    for user in users:
        org_ids = ", ".join(str(m.org_id) for m in user.memberships) or "-"
        active_str = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:<5} {user.name:<25} {user.email:<35} {active_str:<9} orgs: {org_ids}")


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email (unique)')
@with_appcontext
def create_user_cli(name, email):
    email = email.strip().lower()
    if db.session.query(User).filter_by(email=email).first():
        click.echo(f"FAIL User with email '{email}' already exists")
        return

    user = User(name=name.strip(), email=email, is_active=True)
    db.session.add(user)
    db.session.commit()
    click.echo(f"PASS Created user: {user.name} (ID: {user.id})")


@click.group('sessions')
def sessions_group():
    """Bearer session issuance and revocation."""


@sessions_group.command('issue')
@click.option('--user-id', type=int, required=True, help='User ID')
@click.option('--org-id', type=int, default=None, help='Active organization ID')
@with_appcontext
def issue_session(user_id, org_id):
    """Issue a session token. The plaintext token is shown only once."""
    try:
        session, token = session_service.create_session(user_id, org_id)
    except ValueError as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Session {session.id} expires at {session.expires_at.isoformat()}Z")
    click.echo(token)


@sessions_group.command('revoke')
@click.argument('token')
@with_appcontext
def revoke_session_cli(token):
    if session_service.revoke_session(token):
        click.echo("PASS Session revoked")
    else:
        click.echo("FAIL Session not found or already revoked")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(orgs_group)  # Multi-tenant organization management
    app.cli.add_command(users_group)
    app.cli.add_command(sessions_group)
