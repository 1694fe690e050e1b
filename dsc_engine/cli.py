"""Command-line interface for the DSC engine."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .config import AppConfig, load_config
from .logging_setup import configure_logging
from .notifications import TelegramNotifier
from .oracles import PythOracle
from .services import LiquidationMonitor
from .services.monitor import format_wad
from .simulation import ScenarioRunner, StepResult, load_scenario

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="dsc-engine",
        description="Over-collateralized stablecoin engine",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("prices", help="Fetch live Pyth prices for configured collateral")

    run_parser = sub.add_parser("run", help="Replay a scenario and print positions")
    check_parser = sub.add_parser(
        "check", help="Replay a scenario, then alert on unhealthy positions"
    )
    for p in (run_parser, check_parser):
        p.add_argument("scenario", help="Path to scenario YAML")
        p.add_argument(
            "--live-prices",
            action="store_true",
            help="Seed the engine with current Pyth prices before replaying",
        )

    return parser


def _print_results(results: list[StepResult]) -> None:
    for r in results:
        mark = "ok" if r.ok else f"FAILED ({r.error})"
        print(f"  [{r.index}] {r.op}: {mark}")


def _print_positions(monitor: LiquidationMonitor) -> None:
    for report in monitor.scan():
        print(
            f"  {report.user}: collateral ${format_wad(report.collateral_value, 2)}"
            f" · debt {format_wad(report.debt, 2)} DSC"
            f" · HF {format_wad(report.health_factor)} · {report.status}"
        )


async def _prices(config: AppConfig) -> None:
    oracle = PythOracle(config.oracle.pyth)
    prices = await oracle.fetch_prices([c.feed for c in config.collateral])
    for c in config.collateral:
        data = prices.get(c.feed)
        if data is None:
            print(f"  {c.symbol}: unavailable")
        else:
            print(f"  {c.symbol}: ${data.answer / 10**data.decimals:,.4f}")


async def _run(args: argparse.Namespace) -> int:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)

    if args.command == "prices":
        await _prices(config)
        return 0

    oracle = None
    if args.live_prices:
        feeds = [c.feed for c in config.collateral]
        oracle = await PythOracle(config.oracle.pyth).snapshot(feeds)
        missing = [feed for feed in feeds if feed not in oracle.feeds()]
        if missing:
            logger.warning("No live price for %s", ", ".join(missing))

    runner = ScenarioRunner(config, load_scenario(args.scenario), oracle)
    results = runner.run()
    _print_results(results)

    notifiers = []
    if args.command == "check" and config.notifications.telegram.enabled:
        notifiers.append(TelegramNotifier(config.notifications.telegram))
    monitor = LiquidationMonitor(runner.engine, config.monitor.thresholds, notifiers)

    if args.command == "check":
        await monitor.check_and_alert()
    _print_positions(monitor)
    return 0 if all(r.ok for r in results) else 2


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
