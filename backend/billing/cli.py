# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/billing/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the universal "Bardana" item.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Inventory:
# - python -m flask items ensure-universal
#   Create the universal tracking item if it is missing.
# - python -m flask items list [--low-stock]
#   List items with stock in bags.
#
# Inspection:
# - python -m flask sequences list
#   Show the next document number per prefix (BILL, INV, PAY-IN, PAY-OUT).
# - python -m flask parties list [--role supplier]
#   List parties with balances.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import document_service, inventory_service, party_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create all tables and the universal item."""
    from . import bootstrap

    click.echo("START Initializing billing backend...")
    bootstrap()
    item = inventory_service.get_universal_item()
    click.echo(f"PASS Universal item: {item.product_name} (ID: {item.id})")
    click.echo("DONE")


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
    inventory_service.ensure_universal_item()

    click.echo("DONE Database reset")


@click.group('items')
def items_group():
    """Inventory inspection commands."""


@items_group.command('ensure-universal')
@with_appcontext
def ensure_universal():
    """Create the universal tracking item if it is missing."""
    item = inventory_service.ensure_universal_item()
    click.echo(f"PASS {item.product_name} (ID: {item.id}, stock: {item.opening_stock} bags)")


@items_group.command('list')
@click.option('--low-stock', is_flag=True, help='Only items at or below their alert level')
@with_appcontext
def list_items(low_stock):
    """List items with stock in bags."""
    items = inventory_service.list_items(low_stock=low_stock)
    if not items:
        click.echo("No items found")
        return
    for item in items:
        flag = " [universal]" if item.is_universal else ""
        click.echo(f"{item.id:>5}  {item.product_name:<30} {item.category:<8} {item.opening_stock:>12} bags{flag}")


@click.group('sequences')
def sequences_group():
    """Document number sequences."""


@sequences_group.command('list')
@with_appcontext
def list_sequences():
    """Show the next number per prefix."""
    sequences = document_service.list_sequences()
    if not sequences:
        click.echo("No sequences allocated yet")
        return
    for seq in sequences:
        click.echo(f"{seq.prefix:<8} next={seq.next_number}")


@click.group('parties')
def parties_group():
    """Party inspection commands."""


@parties_group.command('list')
@click.option('--role', default=None, help='customer, supplier or general')
@with_appcontext
def list_parties(role):
    """List parties with balances."""
    parties = party_service.list_parties(role=role)
    if not parties:
        click.echo("No parties found")
        return
    for party in parties:
        click.echo(f"{party.id:>5}  {party.name:<30} {party.phone_number:<16} {party.role:<9} {party.balance:>14}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(items_group)
    app.cli.add_command(sequences_group)
    app.cli.add_command(parties_group)
