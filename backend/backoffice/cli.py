# Overview: Flask CLI command groups for bootstrap, inspection, and scheduled maintenance.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: flask --app wsgi <group> <command> [options]
#
# System bootstrap/repair:
# - flask --app wsgi system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection:
# - flask --app wsgi users list
#   List all engineers with active status and profile state.
# - flask --app wsgi users deactivate --email someone@example.com
#   Block an account (requests answer 403 ACCOUNT_DEACTIVATED).
# - flask --app wsgi users activate --email someone@example.com
#
# Reminders (run from cron):
# - flask --app wsgi reminders send
#   Every minute: push reminders for work orders scheduled at the current HH:MM.
# - flask --app wsgi reminders purge-tokens [--days 60]
#   Daily: delete device tokens not seen within the retention window.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services import notification_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


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


@click.group('users')
def users_group():
    """User inspection commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Email':<35} {'Name':<25} {'Active':<8} {'Profile'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        profile_str = "complete" if user.is_profile_complete else "incomplete"
        click.echo(f"{user.id:<5} {user.email:<35} {user.display_name:<25} {active_str:<8} {profile_str}")

    click.echo("="*90 + "\n")


def _set_active(email: str, active: bool) -> None:
    user = db.session.query(User).filter_by(email=email).first()
    if not user:
        click.echo(f"FAIL User not found: {email}")
        return
    user.is_active = active
    db.session.commit()
    click.echo(f"PASS {email} is now {'active' if active else 'deactivated'}")


@users_group.command('deactivate')
@click.option('--email', required=True)
@with_appcontext
def deactivate_user(email):
    """Deactivate a user account."""
    _set_active(email, False)


@users_group.command('activate')
@click.option('--email', required=True)
@with_appcontext
def activate_user(email):
    """Re-activate a user account."""
    _set_active(email, True)


@click.group('reminders')
def reminders_group():
    """Push reminder jobs."""


@reminders_group.command('send')
@with_appcontext
def send_reminders_cli():
    """Send reminders for work orders scheduled at the current minute."""
    result = notification_service.send_work_order_reminders()
    click.echo(f"Notified {result['notified']} work order(s).")


@reminders_group.command('purge-tokens')
@click.option('--days', type=int, default=None, help='Retention window (default DEVICE_TOKEN_RETENTION_DAYS)')
@with_appcontext
def purge_tokens_cli(days):
    """Delete device tokens not seen within the retention window."""
    if days is None:
        days = current_app.config["DEVICE_TOKEN_RETENTION_DAYS"]
    removed = notification_service.purge_stale_device_tokens(days)
    click.echo(f"Deleted {removed} device token(s) older than {days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(reminders_group)
