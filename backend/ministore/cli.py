# Overview: Flask CLI command groups for setup, backup and reports.

# backend/ministore/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to ministore (PowerShell: $env:FLASK_APP="ministore").
# - Use: python -m flask <group> <command> [options]
#
# Store setup and maintenance:
# - python -m flask store init
#   Create the local storage table (idempotent).
# - python -m flask store seed-demo --yes
#   Replace all data with the demo store.
# - python -m flask store export --output backup.json
#   Write a full backup snapshot (stdout when --output is omitted).
# - python -m flask store restore backup.json --yes
#   Replace all data with a backup snapshot.
# - python -m flask store wipe --yes
#   Delete all products, sales and history; settings reset to defaults.
# - python -m flask store push / python -m flask store pull --yes
#   Synchronous write to / read from the remote document store.
# - python -m flask store import-csv products.csv
#   Import products; the whole file is rejected if any row is invalid.
#
# Reports:
# - python -m flask reports monthly --month 2026-03
# - python -m flask reports inventory

import json

import click
from flask.cli import with_appcontext

from .models import StoreState
from .services import backup_service, import_service, reporting_service
from .services.demo_data import build_demo_state
from .services.store_service import get_store
from .time_utils import month_key
from .validation import StoreError


def _fail(exc: StoreError):
    raise click.ClickException(exc.message)


def _echo_notices(result) -> None:
    for notice in result.notices:
        click.echo(f"WARN {notice}")


@click.group('store')
def store_group():
    """Local storage, backup and remote sync commands."""


@store_group.command('init')
@with_appcontext
def init_store():
    """Create local storage and report what the store loaded."""
    try:
        store = get_store()
    except StoreError as e:
        _fail(e)
    status = store.status()
    click.echo(f"PASS Store ready (source: {status['source']}, storage: {status['local_storage']})")
    for key, count in status["counts"].items():
        click.echo(f"  {key}: {count}")


@store_group.command('seed-demo')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def seed_demo(yes):
    """Replace all data with the demo store."""
    if not yes:
        click.confirm("WARN This will REPLACE all data with demo data. Are you sure?", abort=True)
    try:
        store = get_store()
        result = store.replace_state(build_demo_state(store.now()))
    except StoreError as e:
        _fail(e)
    _echo_notices(result)
    click.echo(f"PASS Seeded {len(result.value.products)} products and {len(result.value.sales)} sales")


@store_group.command('export')
@click.option('--output', '-o', type=click.Path(dir_okay=False, writable=True), help='Output file')
@with_appcontext
def export_store(output):
    """Write a backup snapshot as JSON."""
    store = get_store()
    snapshot = backup_service.export_snapshot(store.state, store.now())
    text = json.dumps(snapshot, indent=2, ensure_ascii=False)
    if output:
        with open(output, "w", encoding="utf-8") as fh:
            fh.write(text)
        click.echo(f"PASS Exported {snapshot['totalProducts']} products, {snapshot['totalSales']} sales to {output}")
    else:
        click.echo(text)


@store_group.command('restore')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def restore_store(path, yes):
    """Replace all data with a backup snapshot."""
    with open(path, encoding="utf-8") as fh:
        try:
            document = json.load(fh)
        except ValueError as e:
            raise click.ClickException(f"Not a JSON file: {e}")
    if not yes:
        click.confirm("WARN This will REPLACE all data. Are you sure?", abort=True)
    try:
        state = backup_service.restore_snapshot(document)
        result = get_store().replace_state(state)
    except StoreError as e:
        _fail(e)
    _echo_notices(result)
    click.echo(f"PASS Restored {len(state.products)} products and {len(state.sales)} sales")


@store_group.command('wipe')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def wipe_store(yes):
    """Delete all data and reset settings."""
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)
    try:
        result = get_store().replace_state(backup_service.clear_all_data())
    except StoreError as e:
        _fail(e)
    _echo_notices(result)
    click.echo("PASS All data cleared")


@store_group.command('push')
@with_appcontext
def push_store():
    """Write the full state to the remote document store now."""
    try:
        get_store().push()
    except StoreError as e:
        _fail(e)
    click.echo("PASS Remote document updated")


@store_group.command('pull')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def pull_store(yes):
    """Replace local data with the remote document."""
    if not yes:
        click.confirm("WARN Local data will be REPLACED by the remote copy. Are you sure?", abort=True)
    try:
        state: StoreState = get_store().pull()
    except StoreError as e:
        _fail(e)
    click.echo(f"PASS Pulled {len(state.products)} products and {len(state.sales)} sales")


@store_group.command('import-csv')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_csv(path):
    """Import products from a CSV file."""
    with open(path, encoding="utf-8-sig") as fh:
        text = fh.read()
    try:
        result = get_store().execute(import_service.import_products_csv, text)
    except StoreError as e:
        _fail(e)
    _echo_notices(result)
    summary = result.value
    click.echo(
        f"PASS Imported: {len(summary.created)} created, {len(summary.updated)} updated, "
        f"{summary.price_changes} price changes"
    )


@click.group('reports')
def reports_group():
    """Read-only report commands."""


@reports_group.command('monthly')
@click.option('--month', help='YYYY-MM (defaults to the current month)')
@with_appcontext
def monthly_report(month):
    store = get_store()
    try:
        report = reporting_service.monthly_report(store.state, month or month_key(store.now()))
    except StoreError as e:
        _fail(e)
    metrics = report["metrics"]
    growth = report["growth"]
    click.echo(f"Monthly report {report['month']}")
    click.echo(f"  Revenue:       {metrics['revenue']:,.2f} ({growth['revenue']:+.1f}%)")
    click.echo(f"  Profit:        {metrics['profit']:,.2f} ({growth['profit']:+.1f}%)")
    click.echo(f"  Items sold:    {metrics['items_sold']} ({growth['volume']:+.1f}%)")
    click.echo(f"  Transactions:  {metrics['transactions']}")
    if report["top_products"]:
        click.echo("  Top products:")
        for row in report["top_products"]:
            click.echo(f"    {row['name']:<30} {row['quantity']:>6} {row['revenue']:>12,.2f}")


@reports_group.command('inventory')
@with_appcontext
def inventory_report():
    state = get_store().state
    stats = reporting_service.inventory_stats(state)
    valuation = reporting_service.inventory_valuation(state)
    click.echo(f"Products: {stats['total_products']}  Low stock: {stats['low_stock_count']}  "
               f"Out of stock: {stats['out_of_stock_count']}")
    click.echo(f"Value at cost: {valuation['cost_value']:,.2f}  At selling price: {valuation['selling_value']:,.2f}")
    for row in reporting_service.category_breakdown_rows(state):
        click.echo(f"  {row['category']:<20} {row['products']:>4} products {row['total_stock']:>6} units")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(store_group)
    app.cli.add_command(reports_group)
