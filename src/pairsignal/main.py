"""Entry point for the pair signal monitor.

Wires all components together and runs the refresh loop. Handles
SIGINT/SIGTERM for graceful shutdown.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. CcxtMarketDataClient (public market data)
4. PairBarFetcher (concurrent bar fetch with retry)
5. PairMonitor (fetch-analyze-log loop)
"""

import argparse
import asyncio
import json
import signal
from typing import Any

from pairsignal.config import AppSettings
from pairsignal.data.fetcher import PairBarFetcher
from pairsignal.exceptions import MarketDataError
from pairsignal.exchange.ccxt_client import CcxtMarketDataClient
from pairsignal.logging import get_logger, setup_logging
from pairsignal.models import PairSymbols
from pairsignal.monitor import PairMonitor


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build the client, fetcher and monitor from settings."""
    symbols = PairSymbols(
        reference=settings.pair.reference,
        comparison=settings.pair.comparison,
        benchmark=settings.pair.benchmark,
    )
    client = CcxtMarketDataClient(settings.exchange)
    fetcher = PairBarFetcher(client, settings.fetch)
    monitor = PairMonitor(
        fetcher=fetcher,
        symbols=symbols,
        fetch_settings=settings.fetch,
        analysis_settings=settings.analysis,
        indicator_settings=settings.indicators,
    )
    return {"client": client, "fetcher": fetcher, "monitor": monitor}


def _setup_signal_handlers(monitor: PairMonitor) -> None:
    """Register SIGINT/SIGTERM to stop the monitor gracefully.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("pairsignal.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        asyncio.create_task(monitor.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pairsignal",
        description="Pairs-trading recommendations for two correlated assets.",
    )
    parser.add_argument("--once", action="store_true", help="run a single cycle and exit")
    parser.add_argument("--json", action="store_true", help="print the report as JSON (with --once)")
    return parser.parse_args(argv)


async def run(once: bool = False, as_json: bool = False) -> int:
    """Run the monitor. Returns a process exit code."""
    settings = AppSettings()
    setup_logging(settings.log_level)
    logger = get_logger("pairsignal.main")

    components = _build_components(settings)
    client: CcxtMarketDataClient = components["client"]
    monitor: PairMonitor = components["monitor"]

    try:
        try:
            await client.connect()
        except MarketDataError as e:
            logger.error("exchange_unavailable", error=str(e))
            return 1

        if once:
            report = await monitor.run_cycle()
            if report is None:
                return 1
            if as_json:
                print(json.dumps(report.to_dict(), indent=2))
            return 0

        _setup_signal_handlers(monitor)
        await monitor.start()
        return 0
    finally:
        await client.close()
        logger.info("pairsignal_stopped")


def main(argv: list[str] | None = None) -> None:
    """Synchronous entry point."""
    args = _parse_args(argv)
    raise SystemExit(asyncio.run(run(once=args.once, as_json=args.json)))


if __name__ == "__main__":
    main()
