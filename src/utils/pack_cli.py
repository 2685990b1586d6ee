"""
Pack Tracker CLI Utility

Simple command-line interface for setting up and inspecting the database.
No UI required - designed for programmatic and testing use.

Usage Examples:
    # Create the database tables
    python -m src.utils.pack_cli init-db

    # Load a small demo catalog with imports, production and sales
    python -m src.utils.pack_cli seed-demo

    # Print the report for March 2024
    python -m src.utils.pack_cli report --start 2024-03-01 --end 2024-03-31

    # Print dashboard headline numbers
    python -m src.utils.pack_cli dashboard

    # Drop and recreate every table
    python -m src.utils.pack_cli reset-db --yes

    # Capture today's inventory snapshot
    python -m src.utils.pack_cli snapshot
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from src.services import (
    inventory_snapshot_service,
    material_service,
    material_transaction_service,
    product_service,
    production_service,
    report_service,
    sales_service,
)
from src.services.database import initialize_app_database, reset_database
from src.services.exceptions import ServiceError
from src.services.logging_utils import configure_logging


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD") from None


def seed_demo():
    """Create a demo catalog and some activity."""
    print("Seeding demo data...")
    try:
        bottle = material_transaction_service.import_material(
            new_material={"name": "Bottle 500ml", "unit": "piece"},
            quantity=200,
            unit_price="0.12",
            note="Opening stock",
        )["material"]
        cap = material_transaction_service.import_material(
            new_material={"name": "Cap", "unit": "piece"},
            quantity=200,
            unit_price="0.03",
            note="Opening stock",
        )["material"]
        label = material_transaction_service.import_material(
            new_material={"name": "Label", "unit": "sheet"},
            quantity=50,
            unit_price="0.25",
            note="Opening stock",
        )["material"]
        material_service.create_material("Shrink Wrap", "meter")

        product = product_service.create_product(
            "Water 500ml",
            "1.50",
            [
                {"material_id": bottle["id"], "quantity": 1},
                {"material_id": cap["id"], "quantity": 1},
                {"material_id": label["id"], "quantity": "0.5"},
            ],
        )
        production_service.produce(product["id"], 40, note="Demo run")
        sales_service.sell(product["id"], 25, customer_name="Corner Shop")
    except ServiceError as e:
        print(f"ERROR: {e}")
        return 1

    print("Demo data created")
    return 0


def print_report(start: date = None, end: date = None, top_n: int = None):
    """Print the financial and inventory report."""
    try:
        report = report_service.get_report(start, end, top_n=top_n)
    except ServiceError as e:
        print(f"ERROR: {e}")
        return 1

    print(f"\nReport {report.start_date} .. {report.end_date}")
    print("-" * 40)
    print(f"Total revenue:      {report.total_revenue:.2f}")
    print(f"Total cost:         {report.total_cost:.2f}")
    print(f"Total profit:       {report.total_profit:.2f}")
    print(f"Profit margin:      {report.profit_margin:.1%}")
    print()
    print(f"Period revenue:     {report.period_revenue:.2f} ({report.revenue_growth:+.1%})")
    print(f"Period cost:        {report.period_cost:.2f} ({report.cost_growth:+.1%})")
    print(f"Period profit:      {report.period_profit:.2f} ({report.profit_growth:+.1%})")
    print()
    print(f"Material value:     {report.total_material_value:.2f}")
    print(f"Product value:      {report.total_product_value:.2f}")
    print(f"Low stock items:    {report.low_stock_items}")
    if report.top_selling_products:
        print("\nTop sellers:")
        for seller in report.top_selling_products:
            print(f"  {seller.product_name}: {seller.quantity_sold} sold, {seller.revenue:.2f}")
    return 0


def print_dashboard():
    """Print dashboard headline numbers and recent activity."""
    stats = report_service.get_dashboard_stats()

    print("\nDashboard")
    print("-" * 40)
    print(f"Materials: {stats['total_materials']}  Products: {stats['total_products']}")
    print(f"Revenue: {stats['total_revenue']:.2f}  Cost: {stats['total_cost']:.2f}")
    print(f"Profit: {stats['total_profit']:.2f}  Today: {stats['today_sales']:.2f}")
    print(f"Low stock items: {stats['low_stock_items']}")
    for material in stats["low_stock_materials"]:
        print(f"  {material['name']}: {material['current_stock']} {material['unit']}")
    if stats["recent_activities"]:
        print("\nRecent activity:")
        for activity in stats["recent_activities"]:
            print(f"  {activity['timestamp']:%Y-%m-%d %H:%M}  {activity['description']}")
    return 0


def take_snapshot(snapshot_date: date = None):
    """Create (or replace) an inventory snapshot."""
    snapshot = inventory_snapshot_service.create_snapshot(snapshot_date)
    print(f"Snapshot {snapshot['snapshot_date']}")
    print(f"  Material value: {snapshot['total_material_value']:.2f}")
    print(f"  Product value:  {snapshot['total_product_value']:.2f}")
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Command-line utility for Pack Tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Create the database:
    python -m src.utils.pack_cli init-db

  Report for a date window:
    python -m src.utils.pack_cli report --start 2024-03-01 --end 2024-03-31 --top 3
""",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log service operations at DEBUG level",
    )

    # Create subparsers for different commands
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("init-db", help="Create database tables")
    reset_parser = subparsers.add_parser("reset-db", help="Drop and recreate all tables")
    reset_parser.add_argument(
        "--yes",
        dest="confirm",
        action="store_true",
        help="Confirm that all data will be deleted",
    )
    subparsers.add_parser("seed-demo", help="Load demo materials, products and activity")

    report_parser = subparsers.add_parser("report", help="Print the report")
    report_parser.add_argument("--start", type=_parse_date, help="First day (YYYY-MM-DD)")
    report_parser.add_argument("--end", type=_parse_date, help="Last day (YYYY-MM-DD)")
    report_parser.add_argument("--top", type=int, dest="top_n", help="Number of top sellers")

    subparsers.add_parser("dashboard", help="Print dashboard stats")

    snapshot_parser = subparsers.add_parser("snapshot", help="Create an inventory snapshot")
    snapshot_parser.add_argument("--date", type=_parse_date, dest="snapshot_date")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    # Initialize database (required for all operations)
    initialize_app_database()

    if args.command == "init-db":
        print("Database initialized")
        return 0
    elif args.command == "reset-db":
        if not args.confirm:
            print("ERROR: reset-db deletes all data; pass --yes to confirm")
            return 1
        reset_database(confirm=True)
        print("Database reset")
        return 0
    elif args.command == "seed-demo":
        return seed_demo()
    elif args.command == "report":
        return print_report(args.start, args.end, args.top_n)
    elif args.command == "dashboard":
        return print_dashboard()
    elif args.command == "snapshot":
        return take_snapshot(args.snapshot_date)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
