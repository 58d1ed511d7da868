# Overview: Flask CLI command groups for bootstrap, data transfer, inventory and maintenance.

# backend/g24pos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--no-demo]
#   Idempotent bootstrap: creates tables, store settings and (once) the demo catalog.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Data transfer:
# - python -m flask data export [--out backup.json]
#   Write the export blob to a file (or stdout).
# - python -m flask data import backup.json
#   Replace all store data with an export blob.
# - python -m flask data stats
#   Print headline counts and today's revenue.
#
# Inventory:
# - python -m flask inventory alerts [--unread]
#   List alerts, most urgent first.
# - python -m flask inventory reorder
#   Create DRAFT purchase orders for every low-stock product, one per supplier.
#
# Maintenance:
# - python -m flask maintenance prune --alert-days 90 --movement-days 365
#   Delete read alerts and stock movements older than the retention windows.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Product
from .services import maintenance_service
from .services.alert_service import get_alerts
from .services.customers_service import add_customer, find_customer_by_phone
from .services.data_service import DataImportError, export_data, get_system_stats, import_data
from .services.products_service import add_product, find_product_by_barcode
from .services.purchase_order_service import generate_auto_reorders
from .services.settings_service import get_store_settings
from .time_utils import parse_iso_date


DEMO_PRODUCTS = [
    {
        "name": "Mì tôm Hảo Hảo",
        "barcode": "8934563113567",
        "price": 8000,
        "cost_price": 6000,
        "stock": 50,
        "min_stock": 10,
        "max_stock": 100,
        "category": "Thực Phẩm Khô",
        "supplier": "Công ty ACECOOK",
        "description": "Mì tôm ăn liền hương vị truyền thống",
    },
    {
        "name": "Coca Cola 330ml",
        "barcode": "8934561234567",
        "price": 12000,
        "cost_price": 9000,
        "stock": 30,
        "min_stock": 15,
        "max_stock": 60,
        "category": "Nước Giải Khát",
        "supplier": "Coca Cola Vietnam",
        "description": "Nước ngọt có gas",
    },
    {
        "name": "Bánh mì sandwich",
        "barcode": "8936012345678",
        "price": 25000,
        "cost_price": 18000,
        "stock": 20,
        "min_stock": 5,
        "max_stock": 30,
        "category": "Thực Phẩm Tươi Sống",
        "supplier": "Kinh Đô",
        "description": "Bánh mì sandwich tươi",
    },
]

DEMO_CUSTOMERS = [
    {
        "name": "Nguyễn Văn An",
        "phone": "0123456789",
        "email": "an.nguyen@email.com",
        "address": "123 Đường ABC, Quận 1, TP.HCM",
        "loyalty_points": 1250,
        "total_spent": 2500000,
        "visit_count": 45,
        "last_visit": parse_iso_date("2025-01-10"),
        "tier": "Gold",
    },
]


def seed_demo_data() -> tuple[int, int]:
    """Create demo products and customers that do not exist yet. Returns (products, customers) created."""
    products_created = 0
    for data in DEMO_PRODUCTS:
        if find_product_by_barcode(data["barcode"]) is None:
            add_product(patch=dict(data))
            products_created += 1

    customers_created = 0
    for data in DEMO_CUSTOMERS:
        if find_customer_by_phone(data["phone"]) is None:
            add_customer(patch=dict(data))
            customers_created += 1

    return products_created, customers_created


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--no-demo', is_flag=True, help='Skip the demo catalog')
@with_appcontext
def init_system(no_demo):
    """
    Initialize the G24 POS database.

    Creates:
    - All tables (if missing)
    - Store settings from the configured defaults
    - Demo products and customer, unless --no-demo or SEED_DEMO_DATA=false
    """
    click.echo("START Initializing G24 POS...")

    db.create_all()
    click.echo("PASS Tables ready")

    settings = get_store_settings()
    click.echo(f"PASS Store settings: {settings.store_name} ({settings.currency})")

    if no_demo or not current_app.config["SEED_DEMO_DATA"]:
        click.echo("SKIP Demo data")
    else:
        products, customers = seed_demo_data()
        click.echo(f"PASS Demo data: {products} product(s), {customers} customer(s) created")

    click.echo("\nCOMPLETE Initialization complete!")


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


@click.group('data')
def data_group():
    """Store data export and import."""


@data_group.command('export')
@click.option('--out', 'out_path', type=click.Path(dir_okay=False, writable=True), help='Output file (default: stdout)')
@with_appcontext
def export_cli(out_path):
    blob = export_data()
    if out_path:
        with open(out_path, "w", encoding="utf-8") as f:
            f.write(blob)
        click.echo(f"PASS Exported to {out_path}")
    else:
        click.echo(blob)


@data_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def import_cli(path, yes):
    """Replace all store data with the export blob at PATH."""
    if not yes:
        click.confirm("WARN This will REPLACE ALL DATA. Are you sure?", abort=True)

    with open(path, encoding="utf-8") as f:
        text = f.read()

    try:
        counts = import_data(text)
    except DataImportError as e:
        raise click.ClickException(str(e))

    click.echo(
        f"PASS Imported {counts['products']} products, "
        f"{counts['customers']} customers, {counts['orders']} orders"
    )


@data_group.command('stats')
@with_appcontext
def stats_cli():
    stats = get_system_stats()
    for key, value in stats.items():
        click.echo(f"{key:<16} {value}")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('alerts')
@click.option('--unread', is_flag=True, help='Only unread alerts')
@with_appcontext
def alerts_cli(unread):
    alerts = get_alerts(unread_only=unread)
    if not alerts:
        click.echo("No alerts.")
        return

    click.echo(f"{'ID':<6} {'Priority':<9} {'Type':<13} {'Read':<5} Message")
    click.echo("-" * 80)
    for a in alerts:
        click.echo(f"{a.id:<6} {a.priority:<9} {a.type:<13} {'yes' if a.is_read else 'no':<5} {a.message}")


@inventory_group.command('reorder')
@with_appcontext
def reorder_cli():
    """Create DRAFT purchase orders for low-stock products."""
    low_stock = db.session.query(Product).filter(Product.stock <= Product.min_stock).count()
    if not low_stock:
        click.echo("No low-stock products.")
        return

    orders = generate_auto_reorders()
    for po in orders:
        click.echo(f"PASS {po.order_number} {po.supplier_name}: {len(po.lines)} line(s), total {po.total_amount}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('prune')
@click.option('--alert-days', type=int, default=None, help='Read alert retention (default: ALERT_RETENTION_DAYS)')
@click.option('--movement-days', type=int, default=None, help='Movement retention (default: MOVEMENT_RETENTION_DAYS)')
@with_appcontext
def prune_cli(alert_days, movement_days):
    """
    Prune old history.

    Unread alerts are always kept.
    """
    try:
        result = maintenance_service.prune_history(alert_days=alert_days, movement_days=movement_days)
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(
        f"Deleted {result['alerts_deleted']} alert(s) and {result['movements_deleted']} movement(s)."
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(data_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(maintenance_group)
