# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/lelca_pos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables and the default store settings (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Inventory:
# - python -m flask inventory list [--query "coke"]
#   List catalogue items with stock status.
# - python -m flask inventory import-csv items.csv
#   Add items from a CSV or Excel file; invalid rows are reported and skipped.
# - python -m flask inventory alerts
#   Items below the low-stock threshold, most urgent first.
#
# Sales:
# - python -m flask sales summary [--start 2025-01-01] [--end 2025-01-31]
#   Sales, refunds and net revenue for a date range (local days).

import os

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import import_service, inventory_service, ledger_service, qr_service, settings_service, stock_service
from .services.import_service import CsvImportError
from .services.ledger_service import LedgerError
from .validation import cents_to_str


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create tables and store default settings if none exist."""
    click.echo("BUILD  Creating all tables...")
    db.create_all()

    if not settings_service.settings_exist():
        settings_service.reset_settings()
        click.echo("PASS Stored default settings")
    settings = settings_service.get_settings()
    click.echo(f"PASS Database ready for {settings.store.name}")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init-db' to store default settings.")


@click.group('inventory')
def inventory_group():
    """Catalogue inspection and import."""


@inventory_group.command('list')
@click.option('--query', default=None, help='Filter by name or material details')
@with_appcontext
def list_items(query):
    """List catalogue items with their stock status."""
    items = inventory_service.search_items(query)
    if not items:
        click.echo("No items found.")
        return

    thresholds = settings_service.get_settings().inventory

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<32} {'Name':<36} {'Qty':>6} {'Price':>12}  {'Status'}")
    click.echo("="*100)

    for item in items:
        status = stock_service.classify(
            item.quantity, thresholds.low_stock_threshold, thresholds.critical_stock_level
        )
        click.echo(
            f"{item.id:<32} {item.item_name[:36]:<36} {item.quantity:>6} "
            f"{cents_to_str(item.price_cents):>12}  {stock_service.stock_label(status)}"
        )

    click.echo("="*100)
    click.echo(f"Total value: {cents_to_str(inventory_service.total_inventory_value_cents())}\n")


@inventory_group.command('import-csv')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_csv(path):
    """Add inventory items from a CSV or Excel file."""
    with open(path, 'rb') as fh:
        raw = fh.read()

    try:
        result = import_service.import_file(
            os.path.basename(path), raw, qr_encoder=qr_service.configured_encoder()
        )
    except CsvImportError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Added {len(result.added)} of {result.total_rows} rows")
    for invalid in result.invalid_rows:
        click.echo(f"SKIP Row {invalid['row']}: {'; '.join(invalid['errors'])}")


@inventory_group.command('alerts')
@with_appcontext
def stock_alerts():
    """Items below the low-stock threshold, most urgent first."""
    thresholds = settings_service.get_settings().inventory
    alerts = stock_service.stock_alerts(
        inventory_service.load_inventory(),
        thresholds.low_stock_threshold,
        thresholds.critical_stock_level,
    )
    if not alerts:
        click.echo("PASS No stock alerts.")
        return

    for alert in alerts:
        item = alert["item"]
        click.echo(
            f"{alert['label']:<14} {item['item_name']:<36} qty={item['quantity']:<6} "
            f"restock +{alert['suggested_restock']}"
        )


@click.group('sales')
def sales_group():
    """Sales reporting."""


@sales_group.command('summary')
@click.option('--start', default=None, help='First day (YYYY-MM-DD)')
@click.option('--end', default=None, help='Last day (YYYY-MM-DD), defaults to today')
@with_appcontext
def sales_summary(start, end):
    """Sales, refunds and net revenue for a date range."""
    try:
        totals = ledger_service.aggregate(start, end)
    except LedgerError as e:
        raise click.ClickException(str(e))

    click.echo(f"Transactions:  {totals['transaction_count']}")
    click.echo(f"Items sold:    {totals['items_sold']}")
    click.echo(f"Total sales:   {cents_to_str(totals['total_sales_cents'])}")
    click.echo(f"Refunds:       {cents_to_str(totals['total_refunds_cents'])} ({totals['refund_count']})")
    click.echo(f"Net revenue:   {cents_to_str(totals['net_revenue_cents'])}")
    click.echo(f"Avg sale:      {cents_to_str(totals['avg_transaction_cents'])}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(sales_group)
