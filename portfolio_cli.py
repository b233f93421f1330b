#!/usr/bin/env python3
"""
Portfolio CLI

Command-line tool for inspecting holdings and refreshing prices from the
server terminal, without going through the HTTP API.

Usage:
    python portfolio_cli.py list [--type Crypto] [--tags tech,long-term] [--sort amount:desc]
    python portfolio_cli.py refresh-prices
    python portfolio_cli.py --test list
"""
import sys
import argparse
import asyncio
from pathlib import Path

# Add project root to path (file is in root)
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from sqlmodel.ext.asyncio.session import AsyncSession

from backend.app.config import get_settings, set_test_mode
from backend.app.db.session import get_async_engine, init_db
from backend.app.logging_config import configure_logging
from backend.app.services.errors import PortfolioError
from backend.app.services.pricing import PricingContext


def _fmt(value, places: int = 2) -> str:
    if value is None:
        return "-"
    return f"{value:,.{places}f}"


async def cmd_list(asset_type: str = None, tags: str = None, sort: str = None) -> bool:
    """List holdings."""
    await init_db()
    pricing = PricingContext.from_settings(get_settings())

    async with AsyncSession(get_async_engine(), expire_on_commit=False) as session:
        try:
            holdings = await pricing.holding_service(session).list_holdings(asset_type, tags, sort)
        except PortfolioError as e:
            print(f"❌ {e.message}")
            return False

    if not holdings:
        print("No holdings found")
        return True

    print(f"\n{'ID':<5} {'Name':<20} {'Symbol':<10} {'Type':<7} {'Quantity':>14} {'Price':>14} {'Amount':>18} {'P/L %':>9}")
    print("-" * 104)
    for h in holdings:
        print(
            f"{h.id:<5} {h.name[:20]:<20} {(h.symbol or '')[:10]:<10} {h.asset_type.value:<7} "
            f"{_fmt(h.quantity, 6):>14} {_fmt(h.current_price):>14} {_fmt(h.amount):>18} "
            f"{_fmt(h.profit_loss_percentage):>9}"
            )
    print(f"\nTotal: {len(holdings)} holding(s)")
    return True


async def cmd_refresh_prices() -> bool:
    """Re-price every holding and print the outcome of each."""
    await init_db()
    pricing = PricingContext.from_settings(get_settings())

    async with AsyncSession(get_async_engine(), expire_on_commit=False) as session:
        report = await pricing.refresh_orchestrator(session).refresh_all()

    for h in report.updates:
        print(f"✅ {h.name}: {_fmt(h.current_price)} (amount {_fmt(h.amount)})")
    for failure in report.failures:
        print(f"❌ {failure.name}: [{failure.error}] {failure.message}")

    print(f"\nUpdated: {len(report.updates)}, failed: {len(report.failures)}")
    return not report.failures


def main():
    parser = argparse.ArgumentParser(
        description="IPM Portfolio CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python portfolio_cli.py list
  python portfolio_cli.py list --type Crypto --sort amount:desc
  python portfolio_cli.py refresh-prices
        """
    )
    parser.add_argument("--test", action="store_true", help="Use the test database")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # list
    list_parser = subparsers.add_parser("list", help="List holdings")
    list_parser.add_argument("--type", dest="asset_type", help="Asset type (Stock, Crypto, Other)")
    list_parser.add_argument("--tags", help="Comma-separated tags, match any")
    list_parser.add_argument("--sort", help="field:asc|desc (default createdAt:desc)")

    # refresh-prices
    subparsers.add_parser("refresh-prices", help="Refresh the price of every holding")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    if args.test:
        set_test_mode(True)
    configure_logging(get_settings().LOG_LEVEL, enable_file_logging=False)

    if args.command == "list":
        ok = asyncio.run(cmd_list(args.asset_type, args.tags, args.sort))
    elif args.command == "refresh-prices":
        ok = asyncio.run(cmd_refresh_prices())
    else:
        ok = False

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
