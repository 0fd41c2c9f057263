# Overview: Flask CLI command groups for bootstrap, accounts, the live-cost scheduler, and report repair.

# backend/lounge/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed
#   Load the venue's ten devices and six products (skipped if devices exist).
#
# Accounts:
# - python -m flask users list
# - python -m flask users create --email admin@lounge.local --password "secret1" --role admin
# - python -m flask users set-role --email someone@lounge.local --role admin
#
# Live billing:
# - python -m flask sessions tick [--interval 1.0] [--once]
#   Recompute running session costs on a fixed cadence until interrupted.
#
# Reports:
# - python -m flask reports recompute --date 2025-04-05
# - python -m flask reports recompute --start 2025-04-01 --end 2025-04-30
#   Rebuild daily summaries from sessions, sales, and expenses.

import time
from decimal import Decimal

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db
from .models import Device, Product, User, USER_ROLES
from .services.auth_service import create_user, set_role
from .services.play_session_service import refresh_active_sessions
from .services.summary_service import rebuild_summaries, ReportError
from .validation import ValidationError, ConflictError
from .time_utils import parse_iso_date


SEED_DEVICES = (
    [(f"External {n}", "external", "1.5", "0.25", "external") for n in range(1, 9)]
    + [
        ("Internal", "internal", "2", "0.25", "internal"),
        ("VIP", "vip", "3", "0", "vip"),
    ]
)

SEED_PRODUCTS = (
    ("Coca-Cola", "0.5", 100, "market"),
    ("Pepsi", "0.5", 100, "market"),
    ("Chips", "0.25", 50, "market"),
    ("Turkish coffee", "0.75", 100, "coffee"),
    ("Nescafe", "1.0", 100, "coffee"),
    ("Tea", "0.5", 100, "coffee"),
)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system seed' to load devices and products.")


@system_group.command('seed')
@with_appcontext
def seed():
    """Load the default device board and till catalog."""
    if db.session.query(Device).count():
        click.echo("SKIP Devices already present; nothing seeded.")
        return

    for name, device_type, rate, controller_rate, location in SEED_DEVICES:
        db.session.add(Device(
            name=name,
            type=device_type,
            status="available",
            hourly_rate=Decimal(rate),
            extra_controller_rate=Decimal(controller_rate),
            location=location,
        ))

    if not db.session.query(Product).count():
        for name, price, stock, category in SEED_PRODUCTS:
            db.session.add(Product(name=name, price=Decimal(price), stock=stock, category=category))

    db.session.commit()
    click.echo(f"PASS Seeded {len(SEED_DEVICES)} devices and {len(SEED_PRODUCTS)} products.")


@click.group('users')
def users_group():
    """Account inspection and bootstrap."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found.")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.email:<40} {user.role:<6} {status}")


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(USER_ROLES), default='user', show_default=True, help='Role')
@with_appcontext
def create_user_cli(email, password, role):
    """
    Create an account. Admin accounts can only be made here or by promoting
    an existing user with set-role.

    Password must be at least 6 characters.
    """
    try:
        user = create_user(email, password, role=role)
        click.echo(f"PASS Created user: {user.email} with role '{user.role}'")
        click.echo("SECURITY Password securely hashed with bcrypt")
    except ConflictError as e:
        click.echo(f"FAIL {str(e)}")
    except ValidationError as e:
        click.echo(f"FAIL Validation failed: {str(e)}")


@users_group.command('set-role')
@click.option('--email', required=True, help='Email address')
@click.option('--role', type=click.Choice(USER_ROLES), required=True, help='Role')
@with_appcontext
def set_role_cli(email, role):
    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if not user:
        click.echo(f"FAIL User {email} not found")
        return
    set_role(user.id, role)
    click.echo(f"PASS {user.email} is now '{role}'")


@click.group('sessions')
def sessions_group():
    """Play session maintenance."""


@sessions_group.command('tick')
@click.option('--interval', type=float, default=None, help='Seconds between ticks (default SESSION_TICK_SECONDS)')
@click.option('--once', is_flag=True, help='Run a single tick and exit')
@with_appcontext
def tick(interval, once):
    """
    Recompute the running cost of every active session.

    Storage errors are reported and the next tick tries again.
    """
    if interval is None:
        interval = current_app.config["SESSION_TICK_SECONDS"]

    while True:
        try:
            result = refresh_active_sessions()
            if result.updated_session_ids or once:
                click.echo(
                    f"TICK updated={len(result.updated_session_ids)} "
                    f"expired={len(result.expired_session_ids)}"
                )
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception("Session tick failed")
            click.echo(f"FAIL Tick failed: {str(e)}")

        if once:
            return
        time.sleep(interval)


@click.group('reports')
def reports_group():
    """Daily summary repair."""


@reports_group.command('recompute')
@click.option('--date', 'day', help='Single date (YYYY-MM-DD)')
@click.option('--start', help='First date (YYYY-MM-DD)')
@click.option('--end', help='Last date (YYYY-MM-DD)')
@with_appcontext
def recompute(day, start, end):
    """Rebuild daily summary rows from the underlying facts."""
    try:
        day = parse_iso_date(day)
        start = parse_iso_date(start) or day
        end = parse_iso_date(end) or day
    except ValueError:
        click.echo("FAIL Dates must be YYYY-MM-DD")
        return

    if start is None or end is None:
        click.echo("FAIL Pass --date, or both --start and --end")
        return

    try:
        count = rebuild_summaries(start, end)
    except ReportError as e:
        click.echo(f"FAIL {str(e)}")
        return
    click.echo(f"PASS Recomputed {count} daily summaries ({start.isoformat()} .. {end.isoformat()})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(sessions_group)
    app.cli.add_command(reports_group)
