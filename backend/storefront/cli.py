# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init --email owner@shop.local --username owner --password "Password123!"
#   Create tables (if missing) and the first SUPERADMIN account.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Add demo categories, products and a customer account.
#
# User inspection/bootstrap:
# - python -m flask users list [--role ADMIN]
# - python -m flask users create --email a@b.c --username alice --name Alice --password "Password123!" --role ADMIN
# - python -m flask users set-role alice SUPERADMIN
#   Bypasses the API rule that only a SUPERADMIN may change roles; use for recovery.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --retention-days 30
# - python -m flask maintenance cleanup-security-events --retention-days 90

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Category, Product, User, ROLES
from .services.auth_service import create_user, PasswordValidationError
from .services import maintenance_service
from .services import session_service
from .validation import ConflictError, ValidationError


DEMO_CATEGORIES = ("Electronics", "Books", "Home")

DEMO_PRODUCTS = (
    # name, price_cents, stock, category
    ("Wireless Mouse", 2499, 50, "Electronics"),
    ("Mechanical Keyboard", 8900, 20, "Electronics"),
    ("USB-C Cable", 999, 200, "Electronics"),
    ("Python Cookbook", 4500, 15, "Books"),
    ("Desk Lamp", 3250, 8, "Home"),
    ("Ceramic Mug", 1200, 5, "Home"),
)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--email', prompt=True, help='SUPERADMIN email')
@click.option('--username', prompt=True, help='SUPERADMIN username')
@click.option('--name', default='Store Owner', show_default=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def init_system(email, username, name, password):
    """
    Create all tables and the first SUPERADMIN.

    Idempotent: if a SUPERADMIN already exists, no account is created.

    SECURITY: Change the password immediately in production!
    """
    click.echo("START Initializing storefront...")
    db.create_all()
    click.echo("PASS Tables ready")

    existing = db.session.query(User).filter_by(role="SUPERADMIN").first()
    if existing:
        click.echo(f"PASS SUPERADMIN already exists: {existing.username} (ID: {existing.id})")
        return

    try:
        user = create_user(email=email, username=username, name=name, password=password, role="SUPERADMIN")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        return
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {str(e)}")
        return

    click.echo(f"PASS Created SUPERADMIN: {user.username} ({user.email}, ID: {user.id})")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@system_group.command('seed-demo')
@click.option('--password', default='Password123!', show_default=True, help='Password for the demo customer')
@with_appcontext
def seed_demo(password):
    """Add demo categories, products and a customer account. Skips rows that already exist."""
    categories = {}
    for name in DEMO_CATEGORIES:
        category = db.session.query(Category).filter_by(name=name).first()
        if not category:
            category = Category(name=name)
            db.session.add(category)
        categories[name] = category
    db.session.flush()

    created = 0
    for name, price_cents, stock, category_name in DEMO_PRODUCTS:
        if db.session.query(Product).filter_by(name=name).first():
            continue
        db.session.add(Product(
            name=name,
            description=f"Demo product: {name}",
            price_cents=price_cents,
            stock=stock,
            category_id=categories[category_name].id,
        ))
        created += 1
    db.session.commit()
    click.echo(f"PASS {len(categories)} categories, {created} new products")

    if not db.session.query(User).filter_by(username="customer").first():
        create_user(
            email="customer@shop.local",
            username="customer",
            name="Demo Customer",
            password=password,
        )
        click.echo("PASS Created demo customer: customer / customer@shop.local")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--username', prompt=True, help='Username')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLES), default='USER', show_default=True, help='Role')
@with_appcontext
def create_user_cli(email, username, name, password, role):
    """
    Create a user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(email=email, username=username, name=name, password=password, role=role)
        click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}'")
        click.echo("SECURITY Password securely hashed with bcrypt")

    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")


@users_group.command('list')
@click.option('--role', type=click.Choice(ROLES), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all users with their roles."""
    query = db.session.query(User)

    if role:
        query = query.filter_by(role=role)

    users = query.order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<35} {'Role':<12} {'Last login'}")
    click.echo("="*90)

    for user in users:
        last_login = str(user.last_login_at)[:19] if user.last_login_at else "-"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<35} {user.role:<12} {last_login}")

    click.echo("="*90 + "\n")


@users_group.command('set-role')
@click.argument('username')
@click.argument('role', type=click.Choice(ROLES))
@with_appcontext
def set_role_cli(username, role):
    """Set a user's role directly (operator recovery path)."""
    user = db.session.query(User).filter(db.func.lower(User.username) == username.lower()).first()
    if not user:
        click.echo(f"FAIL User '{username}' not found")
        return

    previous = user.role
    user.role = role
    db.session.commit()
    click.echo(f"PASS {user.username}: {previous} -> {role}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    """Delete sessions that expired or were revoked more than retention_days ago."""
    deleted = session_service.cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"Deleted {deleted} sessions older than {retention_days} days.")


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


@maintenance_group.command('cleanup-reset-tokens')
@with_appcontext
def cleanup_reset_tokens_cli():
    """Clear password reset tokens that have expired."""
    cleared = maintenance_service.clear_expired_reset_tokens()
    click.echo(f"Cleared {cleared} expired password reset tokens.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
