# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/storerating/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--admin-email admin@storerating.local --admin-password "Password123!"]
#   Create all tables and, optionally, the first admin account. Idempotent.
#
# User inspection/bootstrap:
# - python -m flask users list [--role store_owner]
#   List users with their roles.
# - python -m flask users create --name "..." --email a@b.com --password "Password123!" --role admin
#   Create a user (prompts if options are omitted).
#
# Maintenance:
# - python -m flask maintenance cleanup-revoked-tokens
#   Delete denylisted tokens that have expired anyway.
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.

import click
from flask.cli import with_appcontext

from .decorators import get_settings
from .errors import AppError
from .extensions import db
from .models import Role, Store, User
from .services import auth_service, maintenance_service

DEFAULT_ADMIN_NAME = "System Administrator Account"


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--admin-name', default=DEFAULT_ADMIN_NAME, show_default=True, help='Admin display name (20-60 chars)')
@click.option('--admin-email', default=None, help='Create this admin account if it does not exist')
@click.option('--admin-password', default=None, help='Password for the admin account')
@with_appcontext
def init_system(admin_name, admin_email, admin_password):
    """
    Initialize the database schema and, optionally, the first admin.

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing StoreRating...")

    db.create_all()
    click.echo("PASS Database tables created")

    if not admin_email:
        click.echo("SKIP No --admin-email given, no admin created")
        return

    if not admin_password:
        admin_password = click.prompt("Admin password", hide_input=True, confirmation_prompt=True)

    existing = db.session.query(User).filter_by(email=admin_email.lower()).first()
    if existing:
        click.echo(f"WARN  User '{admin_email}' already exists (role '{existing.role.value}'), skipping...")
        return

    try:
        user = auth_service.create_user(
            admin_name,
            admin_email,
            admin_password,
            settings=get_settings(),
            role=Role.ADMIN,
        )
        click.echo(f"PASS Created admin: {user.email} (ID: {user.id})")
    except AppError as e:
        click.echo(f"FAIL Failed to create admin '{admin_email}': {e.message}")
        for error in e.errors:
            click.echo(f"     {error['field']}: {error['message']}")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Full name (20-60 chars)')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--address', default=None, help='Address')
@click.option('--role', type=click.Choice(Role.values()), prompt=True, help='Role')
@with_appcontext
def create_user_cli(name, email, password, address, role):
    """Create a user with any role."""
    try:
        user = auth_service.create_user(
            name,
            email,
            password,
            settings=get_settings(),
            address=address,
            role=Role(role),
        )
        click.echo(f"PASS Created user: {user.email} (ID: {user.id}) with role '{user.role.value}'")
    except AppError as e:
        click.echo(f"FAIL Failed to create user: {e.message}")
        for error in e.errors:
            click.echo(f"     {error['field']}: {error['message']}")


@users_group.command('list')
@click.option('--role', type=click.Choice(Role.values()), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all users with their roles."""
    query = db.session.query(User)

    if role:
        query = query.filter(User.role == Role(role))

    users = query.order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Name':<30} {'Email':<35} {'Role':<12} {'Store'}")
    click.echo("="*100)

    for user in users:
        store = db.session.query(Store).filter_by(owner_id=user.id).first()
        store_str = f"{store.name} (ID: {store.id})" if store else "-"
        click.echo(f"{user.id:<5} {user.name[:30]:<30} {user.email[:35]:<35} {user.role.value:<12} {store_str}")

    click.echo("="*100 + "\n")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-revoked-tokens')
@with_appcontext
def cleanup_revoked_tokens_cli():
    """Delete revoked-token rows whose tokens have already expired."""
    deleted = maintenance_service.cleanup_revoked_tokens()
    click.echo(f"Deleted {deleted} expired revoked tokens.")


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 90 days.
    """
    deleted = maintenance_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
