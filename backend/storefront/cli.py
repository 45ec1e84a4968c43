# Overview: Flask CLI command groups for bootstrap, fulfilment and maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create tables (if missing) and load the starter catalog.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask catalog seed
#   Insert starter products whose names are not in the catalog yet.
# - python -m flask catalog list [--category lighters]
#
# Users:
# - python -m flask users create --username alice --email alice@example.com --password "secret123"
# - python -m flask users list [--guests]
#
# Orders (fulfilment happens outside the storefront):
# - python -m flask orders list [--status completed]
# - python -m flask orders track <orderRef> shipped --tracking-number AWB123 --location "Mumbai Hub"
#
# Returns:
# - python -m flask returns list [--status pending]
# - python -m flask returns approve <id>
# - python -m flask returns reject <id>
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --retention-days 30

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Order, ReturnRequest
from .services import auth_service, products_service, order_service, return_service, session_service
from .services.auth_service import AccountError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Idempotent bootstrap: create tables and seed the catalog."""
    db.create_all()
    created = products_service.seed_catalog()
    click.echo(f"PASS Schema ready; {created} catalog products added.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to seed the catalog.")


@click.group('catalog')
def catalog_group():
    """Product catalog commands."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog_cli():
    created = products_service.seed_catalog()
    click.echo(f"PASS Added {created} products.")


@catalog_group.command('list')
@click.option('--category', help='Filter by category')
@with_appcontext
def list_catalog_cli(category):
    products = products_service.list_products(category=category)
    if not products:
        click.echo("No products found.")
        return
    for product in products:
        click.echo(f"{product.id:<5} {product.category:<12} {product.price:>10} {product.name}")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--first-name', default=None)
@click.option('--last-name', default=None)
@with_appcontext
def create_user_cli(username, email, password, first_name, last_name):
    """Create a permanent shopper account."""
    if len(password) < 8:
        click.echo("FAIL Password must be at least 8 characters")
        return
    try:
        user = auth_service.create_user(
            username=username,
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
        )
    except AccountError as e:
        click.echo(f"FAIL Failed to create user: {e}")
        return
    click.echo(f"PASS Created user: {user.username} ({user.email}), id {user.id}")


@users_group.command('list')
@click.option('--guests', is_flag=True, help='Include guest accounts')
@with_appcontext
def list_users(guests):
    query = db.session.query(User)
    if not guests:
        query = query.filter(User.is_guest.is_(False))
    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo(f"{'ID':<5} {'Username':<24} {'Email':<32} {'Guest'}")
    for user in users:
        click.echo(f"{user.id:<5} {user.username:<24} {user.email:<32} {'Yes' if user.is_guest else 'No'}")


@click.group('orders')
def orders_group():
    """Order inspection and fulfilment commands."""


@orders_group.command('list')
@click.option('--status', type=click.Choice(['pending', 'completed', 'failed']))
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
def list_orders_cli(status, limit):
    query = db.session.query(Order)
    if status:
        query = query.filter_by(status=status)
    orders = query.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()
    if not orders:
        click.echo("No orders found.")
        return
    for order in orders:
        click.echo(
            f"{order.order_ref}  user={order.user_id:<5} {order.status:<10} "
            f"total={order.total:<10} tracking={order.tracking_status or '-'}"
        )


@orders_group.command('track')
@click.argument('order_ref')
@click.argument('tracking_status', type=click.Choice(order_service.TRACKING_STATUSES))
@click.option('--tracking-number', default=None)
@click.option('--location', default=None)
@click.option('--description', default=None)
@with_appcontext
def track_order_cli(order_ref, tracking_status, tracking_number, location, description):
    """Record a fulfilment step for a paid order."""
    try:
        order = order_service.update_tracking(
            order_ref,
            tracking_status,
            tracking_number=tracking_number,
            location=location,
            description=description,
        )
    except order_service.OrderError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Order {order.order_ref} is now {order.tracking_status}")


@click.group('returns')
def returns_group():
    """Return request review commands."""


@returns_group.command('list')
@click.option('--status', type=click.Choice(['pending', 'approved', 'rejected']))
@with_appcontext
def list_returns_cli(status):
    query = db.session.query(ReturnRequest)
    if status:
        query = query.filter_by(status=status)
    requests = query.order_by(ReturnRequest.id.asc()).all()
    if not requests:
        click.echo("No return requests found.")
        return
    for req in requests:
        click.echo(f"{req.id:<5} {req.order_ref}  {req.status:<9} {req.reason}")


def _resolve(return_id: int, approve: bool) -> None:
    try:
        req = return_service.resolve_return(return_id, approve=approve)
    except return_service.ReturnError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Return request {req.id} {req.status}")


@returns_group.command('approve')
@click.argument('return_id', type=int)
@with_appcontext
def approve_return_cli(return_id):
    _resolve(return_id, approve=True)


@returns_group.command('reject')
@click.argument('return_id', type=int)
@with_appcontext
def reject_return_cli(return_id):
    _resolve(return_id, approve=False)


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    """Delete expired or revoked sessions older than the retention window."""
    deleted = session_service.cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"Deleted {deleted} sessions older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(users_group)
    app.cli.add_command(orders_group)
    app.cli.add_command(returns_group)
    app.cli.add_command(maintenance_group)
