# Overview: Flask CLI command groups for bootstrap, ledger maintenance, reports and offline sync.

# backend/salon/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create tables, seed the default price list, add the log header row.
#
# Ledger maintenance:
# - python -m flask ledger backfill-ids
#   Give every row without an ID a new one (safe to re-run).
# - python -m flask ledger add-headers
#   Insert the column header row when the log has none.
# - python -m flask ledger list [--date 01/06/2024]
#
# Reports:
# - python -m flask reports daily [--date 01/06/2024]
# - python -m flask reports range --start 01/06/2024 --end 07/06/2024
#
# Catalog:
# - python -m flask catalog seed
# - python -m flask catalog workers [--active-only]
#
# Offline sync (client side):
# - python -m flask sync drain [--queue-file offline_queue.json] [--url http://127.0.0.1:5000]
#   Replay queued offline transactions against the ledger API.

import asyncio

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services import catalog_service
from .services.aggregation_service import ReportError
from .services.ledger_service import current_ledger
from .services.remote_client import RemoteLedgerClient
from .services.sync_queue import JsonFileQueueStore, SyncQueue
from .time_utils import format_clock_time, format_display_time


def _echo_report(result) -> None:
    click.echo("\n" + "=" * 60)
    click.echo(f"Date:          {result.date or 'all'}")
    click.echo(f"Total sales:   {result.total_sales}")
    click.echo(f"Transactions:  {result.transaction_count}")
    click.echo(f"Cash / Card:   {result.cash_total} / {result.card_total}")
    click.echo(f"Tips:          {result.total_tips}")
    click.echo("-" * 60)
    for name, stats in result.worker_stats.items():
        click.echo(f"{name:<25} {stats.count:>4} sales  {stats.total:>10}")
    click.echo("=" * 60 + "\n")


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the salon backend: tables, default price list and the
    transaction log header row. Idempotent.
    """
    click.echo("START Initializing salon backend...")

    db.create_all()
    click.echo("PASS Tables ready")

    added = catalog_service.seed_default_services()
    click.echo(f"PASS Seeded {added} default services")

    if current_ledger().add_headers():
        click.echo("PASS Added transaction log header row")
    else:
        click.echo("PASS Transaction log header already present")

    click.echo(f"DONE {current_app.config['SALON_NAME']} initialized")


@click.group('ledger')
def ledger_group():
    """Transaction log maintenance."""


@ledger_group.command('backfill-ids')
@with_appcontext
def backfill_ids_cli():
    """Assign IDs to rows that have none."""
    result = current_ledger().backfill_missing_ids()
    click.echo(f"Updated {result.updated_count} of {result.total_transactions} transactions.")
    if result.partial:
        click.echo(f"WARN {len(result.failed_positions)} rows could not be updated: {result.failed_positions}")


@ledger_group.command('add-headers')
@with_appcontext
def add_headers_cli():
    if current_ledger().add_headers():
        click.echo("Header row added.")
    else:
        click.echo("Header row already present.")


@ledger_group.command('list')
@click.option('--date', default=None, help='Only this day (DD/MM/YYYY or any recognized form)')
@with_appcontext
def list_transactions_cli(date):
    """List transactions, oldest first."""
    tz = current_app.config["SALON_TIMEZONE"]
    try:
        records = current_ledger().list_transactions(date)
    except ReportError as e:
        raise click.BadParameter(str(e), param_hint="--date")

    if not records:
        click.echo("No transactions found.")
        return

    click.echo("\n" + "=" * 100)
    click.echo(f"{'ID':<30} {'Date':<11} {'Time':<9} {'Worker':<16} {'Service':<22} {'Amount':>8}")
    click.echo("=" * 100)
    for r in records:
        if r.created_at:
            time_label = format_clock_time(r.created_at, tz)
        else:
            # Legacy clients stored a display string such as "01/06/2024, 14:30:00"
            time_label = format_display_time(r.timestamp, tz)
        click.echo(
            f"{r.id or '-':<30} {r.date:<11} {time_label:<9} {r.worker_label[:16]:<16} "
            f"{r.service[:22]:<22} {r.amount_value:>8}"
        )
    click.echo("=" * 100 + "\n")


@click.group('reports')
def reports_group():
    """Sales reports."""


@reports_group.command('daily')
@click.option('--date', default=None, help='Defaults to today in the salon timezone')
@with_appcontext
def daily_report_cli(date):
    try:
        result = current_ledger().daily_report(date)
    except ReportError as e:
        raise click.BadParameter(str(e), param_hint="--date")
    _echo_report(result)


@reports_group.command('range')
@click.option('--start', required=True)
@click.option('--end', required=True)
@with_appcontext
def range_report_cli(start, end):
    try:
        overall, per_day = current_ledger().range_report(start, end)
    except ReportError as e:
        raise click.ClickException(str(e))
    for day in per_day.values():
        _echo_report(day)
    click.echo("TOTAL")
    _echo_report(overall)


@click.group('catalog')
def catalog_group():
    """Workers and price list."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog_cli():
    added = catalog_service.seed_default_services()
    click.echo(f"Added {added} default services.")


@catalog_group.command('workers')
@click.option('--active-only', is_flag=True)
@with_appcontext
def list_workers_cli(active_only):
    workers = catalog_service.list_workers(active_only=active_only)
    if not workers:
        click.echo("No workers found.")
        return
    for w in workers:
        click.echo(f"{w.id:<5} {w.name:<25} {w.role:<16} {w.status}")


@click.group('sync')
def sync_group():
    """Offline queue replay."""


@sync_group.command('drain')
@click.option('--queue-file', default=None, help='Defaults to OFFLINE_QUEUE_PATH')
@click.option('--url', default=None, help='Defaults to LEDGER_API_URL')
@with_appcontext
def drain_queue_cli(queue_file, url):
    """Replay every queued offline transaction once."""
    config = current_app.config
    store = JsonFileQueueStore(queue_file or config["OFFLINE_QUEUE_PATH"])

    async def run():
        async with RemoteLedgerClient(url or config["LEDGER_API_URL"], timeout=config["LEDGER_API_TIMEOUT"]) as client:
            return await SyncQueue(store, client.save).drain()

    result = asyncio.run(run())
    click.echo(
        f"Attempted {result.attempted}, synced {result.succeeded}, "
        f"{result.remaining} still queued."
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(reports_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(sync_group)
