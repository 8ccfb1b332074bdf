# Overview: Flask CLI command groups for bootstrap, user administration, and ledger checks.

# backend/salesdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and seeds demo users, categories, products and customers.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --username jane --email jane@example.com --password "secret1" --full-name "Jane Doe" --role sales_rep
#   Create a user (prompts if options are omitted).
#
# Stock ledger:
# - python -m flask ledger reconcile [--product-id 3]
#   Replay stock movements and report products whose stored quantity disagrees.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import ServiceError
from .permissions import ROLES, DEFAULT_ROLE
from .services import auth_service, bootstrap_service, ledger_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create all tables and seed demo data where absent.

    Default users:
    - admin / admin123 (admin)
    - sales_rep / sales123 (sales_rep)

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing database...")
    seeded = bootstrap_service.initialize_database()

    for group, count in seeded.items():
        if count:
            click.echo(f"PASS Seeded {count} {group}")
        else:
            click.echo(f"SKIP {group} already present")

    click.echo("\nDONE Default logins:")
    click.echo("   admin     -> admin123")
    click.echo("   sales_rep -> sales123")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to seed demo data.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--role', type=click.Choice(list(ROLES)), default=DEFAULT_ROLE, show_default=True, help='Role')
@with_appcontext
def create_user_cli(username, email, password, full_name, role):
    """Create a user with the same rules as self-registration."""
    try:
        user = auth_service.register_user({
            "username": username,
            "email": email,
            "password": password,
            "full_name": full_name,
            "role": role,
        })
    except ServiceError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Created user {user.username} (ID: {user.id}, role: {user.role})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with role and active status."""
    users = auth_service.list_users()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<35} {'Role':<12} {'Active'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<35} {user.role:<12} {active_str}")

    click.echo("="*90 + "\n")


@click.group('ledger')
def ledger_group():
    """Stock ledger inspection commands."""


@ledger_group.command('reconcile')
@click.option('--product-id', type=int, help='Check a single product')
@with_appcontext
def reconcile_cli(product_id):
    """Exit with status 1 when any product disagrees with its movement log."""
    try:
        result = ledger_service.reconcile(product_id)
    except ServiceError as e:
        raise click.ClickException(e.message)

    mismatches = result["mismatches"]
    if not mismatches:
        click.echo(f"PASS {result['checked']} products match the stock ledger")
        return

    for m in mismatches:
        click.echo(
            f"FAIL product {m['product_id']} ({m['name']}): "
            f"stored {m['stock_quantity']}, ledger {m['ledger_quantity']}, "
            f"difference {m['difference']:+d}"
        )
    raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(ledger_group)
