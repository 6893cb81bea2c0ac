#!/usr/bin/env python3
"""Entry point for the Monero pool dashboard."""

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv
from rich.console import Console
from rich.live import Live

from pooldash.api_client import PoolClient
from pooldash.config import DashboardConfig
from pooldash.poller import DashboardPoller
from pooldash.renderer import ChartRenderer, ChartSlot
from pooldash.state import AddressStore, AppState
from pooldash.sync import Dashboard
from pooldash.view import create_layout

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO", log_file: str = None):
    """Configure logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file to log to in addition to stderr
    """
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s | %(levelname)-8s | %(message)s',
        datefmt='%H:%M:%S',
        handlers=handlers,
    )

    # Reduce noise from aiohttp and the scheduler
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("matplotlib").setLevel(logging.WARNING)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Monero Pool Dashboard")
    parser.add_argument("--config", default="config.yaml", help="Path to config.yaml")
    parser.add_argument("--address", help="Sign in with a wallet address")
    parser.add_argument("--logout", action="store_true", help="Forget the stored wallet address")
    parser.add_argument("--threshold", type=float, help="Set the payout threshold (coins)")
    email = parser.add_mutually_exclusive_group()
    email.add_argument("--email-enable", action="store_true", help="Enable email notifications")
    email.add_argument("--email-disable", action="store_true", help="Disable email notifications")
    parser.add_argument("--email-from", default="", help="Notification sender filter")
    parser.add_argument("--email-to", default="", help="Notification recipient")
    parser.add_argument("--once", action="store_true", help="Run a single refresh and print the dashboard")
    return parser.parse_args(argv)


def build_state(config: DashboardConfig, store: AddressStore) -> AppState:
    renderer = ChartRenderer(
        dpi=config.charts.dpi,
        figsize=config.charts.figsize,
        style=config.charts.style,
    )
    address = config.state.address or store.get_address()
    return AppState(
        address=address,
        min_payout=config.display.min_payout,
        pool_chart=ChartSlot('pool', renderer, config.charts.output_dir),
        miner_chart=ChartSlot('miner', renderer, config.charts.output_dir),
    )


async def apply_account_actions(dashboard: Dashboard, args, console: Console):
    """Run the sign-in/out and settings actions requested on the command line."""
    if args.logout:
        dashboard.logout()
        console.print("Signed out")

    if args.address:
        await dashboard.login(args.address)
        console.print("Signed in")

    if args.threshold is not None:
        # Minimum payout comes from the pool config
        await dashboard.pool.load_config()
        console.print(await dashboard.update_threshold(args.threshold))

    if args.email_enable or args.email_disable:
        console.print(await dashboard.subscribe_email(args.email_enable, args.email_from, args.email_to))


async def run(config: DashboardConfig, args) -> int:
    console = Console()
    store = AddressStore(config.state.database_path)
    state = build_state(config, store)

    try:
        async with PoolClient(
            config.api.base_url,
            coin_price_url=config.api.coin_price_url,
            bonus_url=config.api.bonus_url,
            timeout=config.api.timeout,
        ) as client:
            dashboard = Dashboard(client, state, config, store)

            try:
                await apply_account_actions(dashboard, args, console)
            except ValueError as e:
                console.print(f"[red]{e}[/red]")
                return 1

            if args.once:
                await dashboard.refresh_data()
                console.print(create_layout(state))
                return 0

            with Live(create_layout(state), console=console, screen=True,
                      refresh_per_second=1) as live:

                async def redraw():
                    live.update(create_layout(state))

                poller = DashboardPoller(
                    dashboard,
                    interval=config.refresh.interval,
                    allow_overlap=config.refresh.allow_overlap,
                    on_cycle=redraw,
                )
                await poller.run()
    finally:
        state.close()
        store.close()

    return 0


def main():
    """Main entry point."""
    args = parse_args()
    load_dotenv()

    try:
        config = DashboardConfig.load(args.config)
    except Exception as e:
        print(f"Error loading config: {e}")
        sys.exit(1)

    setup_logging(config.logging.log_level, config.logging.log_file)

    try:
        sys.exit(asyncio.run(run(config, args)))
    except KeyboardInterrupt:
        print("\nExiting...")
        sys.exit(0)


if __name__ == "__main__":
    main()
