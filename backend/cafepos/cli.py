# Overview: Flask CLI command groups for bootstrap, inspection, and analytics.

# backend/cafepos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Inventory inspection:
# - python -m flask inventory low-stock
#   List items at or below their minimum quantity.
# - python -m flask inventory alerts [--days 7]
#   Out-of-stock, low-stock and expiry alerts, most severe first.
#
# Analytics:
# - python -m flask analytics forecast --product-id 1 [--window-days 30]
#   Next-day demand forecast for one product.
# - python -m flask analytics reorder-points [--service-level 0.95]
#   (s, Q) reorder policy for every inventory item.
# - python -m flask analytics abc [--start 2026-01-01] [--end 2026-01-31]
#   ABC classification of delivered revenue.

import click
from flask.cli import with_appcontext

from .context import get_engine
from .errors import EngineError
from .extensions import db
from .time_utils import parse_iso_datetime
from .validation import ValidationError


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

    click.echo("PASS Database reset complete.")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('low-stock')
@with_appcontext
def low_stock():
    """List inventory items at or below their minimum quantity."""
    items = get_engine().ledger.list_low_stock()
    if not items:
        click.echo("No low-stock items.")
        return

    click.echo(f"\n{'ID':<6} {'Product':<30} {'Qty':>8} {'Min':>8} Unit")
    click.echo("-" * 64)
    for item in items:
        name = item.product.name if item.product else f"#{item.product_id}"
        click.echo(f"{item.id:<6} {name[:30]:<30} {item.quantity:>8} {item.minimum_quantity:>8} {item.unit}")
    click.echo(f"\nTotal: {len(items)} items")


@inventory_group.command('alerts')
@click.option('--days', type=int, default=None, help='Expiry horizon in days')
@with_appcontext
def alerts(days):
    """Show current inventory alerts, most severe first."""
    found = get_engine().alerts.check_alerts(days=days)
    if not found:
        click.echo("No alerts.")
        return

    for alert in found:
        click.echo(f"[{alert.severity:<8}] {alert.alert_type:<13} item={alert.inventory_item_id} {alert.message}")
    click.echo(f"\nTotal: {len(found)} alerts")


@click.group('analytics')
def analytics_group():
    """Forecast, reorder point and ABC commands."""


@analytics_group.command('forecast')
@click.option('--product-id', type=int, required=True, help='Product ID')
@click.option('--window-days', type=int, default=None, help='History window in days')
@with_appcontext
def forecast(product_id, window_days):
    """Forecast next-day demand for a product."""
    engine = get_engine()
    try:
        result = engine.forecaster.forecast_demand(product_id, window_days=window_days)
    except (EngineError, ValidationError) as e:
        raise click.ClickException(str(e))

    click.echo(f"Product:      {result.product_id}")
    click.echo(f"Forecast:     {result.forecast} units/day")
    click.echo(f"Confidence:   {result.confidence:.2f}")
    click.echo(f"Observations: {result.observations} days (window {result.window_days})")
    click.echo(f"Method:       {result.method}")
    click.echo(f"Min stock:    {engine.forecaster.minimum_stock_for(result)} units")


@analytics_group.command('reorder-points')
@click.option('--service-level', type=float, default=None, help='Target service level in (0, 1)')
@with_appcontext
def reorder_points(service_level):
    """Compute the (s, Q) policy for every inventory item."""
    try:
        points = get_engine().reorder.compute_all(service_level=service_level)
    except ValidationError as e:
        raise click.ClickException(str(e))

    if not points:
        click.echo("No inventory items.")
        return

    click.echo(f"\n{'Item':<6} {'Product':<8} {'s':>6} {'Q':>6} {'Mean':>8} {'Std':>8}")
    click.echo("-" * 48)
    for p in points:
        click.echo(
            f"{p.inventory_item_id:<6} {p.product_id:<8} {p.reorder_point:>6} {p.reorder_quantity:>6} "
            f"{p.mean_demand:>8.2f} {p.std_demand:>8.2f}"
        )


@analytics_group.command('abc')
@click.option('--start', default=None, help='ISO start datetime')
@click.option('--end', default=None, help='ISO end datetime')
@with_appcontext
def abc(start, end):
    """ABC classification of delivered revenue."""
    try:
        report = get_engine().abc.report(parse_iso_datetime(start), parse_iso_datetime(end))
    except (ValidationError, ValueError) as e:
        raise click.ClickException(str(e))

    for row in report["classifications"]:
        click.echo(
            f"{row['tier']}  {row['product_id']:<6} {str(row['product_name'])[:30]:<30} "
            f"{row['revenue_cents']:>12} {row['cumulative_pct']:>8.2f}%"
        )
    for tier, summary in report["tiers"].items():
        click.echo(f"Tier {tier}: {summary['count']} products, {summary['revenue_cents']} cents")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(analytics_group)
