# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/printpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, the starter catalog and the default shop profile.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data), then reseed.
# - python -m flask system hash-passcode
#   Print a bcrypt hash for ACCESS_PASSCODE_HASH (prompts for the passcode).
#
# Catalog inspection:
# - python -m flask products list [--low-stock]
#   List products with stock levels.
#
# Credit ledger inspection:
# - python -m flask credit outstanding [--include-settled] [--search "name or phone"]
#   List customer credit accounts, largest balance first.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --older-than-days 30
#   Delete expired or revoked gate sessions.

import click
from datetime import timedelta
from flask import current_app
from flask.cli import with_appcontext

from .extensions import get_store
from .seed import seed_defaults
from .services import credit_service, products_service, session_service
from .services.auth_service import hash_passcode, PasscodeValidationError
from .services.document_service import format_money
from .store import PRODUCTS, PROFILE, SALES


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the shop: schema, starter catalog and default shop profile.

    Existing products and an existing profile are left untouched.
    """
    click.echo("START Initializing printpos...")
    store = get_store()

    created = store.execute(seed_defaults, PRODUCTS, PROFILE)

    if created["products"]:
        click.echo(f"PASS Seeded {created['products']} starter products")
    else:
        click.echo("PASS Catalog already populated, skipping seed products")

    if created["profile"]:
        click.echo("PASS Created default shop profile")
    else:
        click.echo("PASS Using existing shop profile")

    click.echo(f"\nDatabase: {store.uri}")
    if not current_app.config.get("ACCESS_PASSCODE_HASH"):
        click.echo("\nSECURITY WARNING:")
        click.echo("   - The gate uses the plaintext ACCESS_PASSCODE (default '1234').")
        click.echo("   - Set ACCESS_PASSCODE_HASH (see 'flask system hash-passcode') in production!")
    click.echo("")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@click.option('--no-seed', is_flag=True, help='Leave the catalog and profile empty')
@with_appcontext
def reset_db(yes, no_seed):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping and recreating all tables...")
    get_store().reset(seed=not no_seed)
    click.echo("PASS Database reset complete.")


@system_group.command('hash-passcode')
@click.option('--passcode', prompt=True, hide_input=True, confirmation_prompt=True, help='Passcode')
def hash_passcode_cli(passcode):
    """Print a bcrypt hash suitable for ACCESS_PASSCODE_HASH."""
    try:
        click.echo(hash_passcode(passcode))
    except PasscodeValidationError as e:
        raise click.ClickException(str(e))


@click.group('products')
def products_group():
    """Catalog inspection commands."""


@products_group.command('list')
@click.option('--low-stock', is_flag=True, help='Only products at or below their minimum stock level')
@with_appcontext
def list_products_cli(low_stock):
    products = products_service.list_products(get_store(), low_stock_only=low_stock)
    if not products:
        click.echo("No products found.")
        return

    click.echo(f"{'ID':<18} {'Name':<30} {'Category':<14} {'Price':>14} {'Stock':>7} {'Min':>5}")
    click.echo("-" * 93)
    for p in products:
        flag = " LOW" if p.is_low_stock else ""
        click.echo(
            f"{p.id:<18} {p.name[:30]:<30} {p.category[:14]:<14} "
            f"{format_money(p.price_cents):>14} {p.stock:>7} {p.min_stock_level:>5}{flag}"
        )
    click.echo(f"\n{len(products)} product(s)")


@click.group('credit')
def credit_group():
    """Credit ledger inspection commands."""


@credit_group.command('outstanding')
@click.option('--include-settled', is_flag=True, help='Also list accounts with nothing outstanding')
@click.option('--search', default=None, help='Filter by customer name or contact')
@with_appcontext
def outstanding_cli(include_settled, search):
    sales = get_store().list_all(SALES)
    entries = credit_service.list_outstanding(sales, include_settled=include_settled, search=search)
    if not entries:
        click.echo("No outstanding credit.")
        return

    click.echo(f"{'Customer':<28} {'Contact':<14} {'Billed':>14} {'Paid':>14} {'Outstanding':>14}")
    click.echo("-" * 88)
    for e in entries:
        click.echo(
            f"{e.customer_name[:28]:<28} {e.customer_contact[:14]:<14} "
            f"{format_money(e.billed_cents):>14} {format_money(e.paid_cents):>14} "
            f"{format_money(e.outstanding_cents):>14}"
        )
    click.echo(f"\nTotal receivables: {format_money(credit_service.total_receivables(entries))}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--older-than-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(older_than_days):
    deleted = session_service.cleanup_expired_sessions(get_store(), timedelta(days=older_than_days))
    click.echo(f"PASS Deleted {deleted} expired or revoked session(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(products_group)
    app.cli.add_command(credit_group)
    app.cli.add_command(maintenance_group)
