"""Tests for the PairMonitor refresh loop.

Tests verify:
- A successful cycle stores and returns the report
- Fetch failures and malformed data skip the cycle without raising
- Short series produce a report without a decision
- The loop runs cycles until stop() and then exits
"""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from pairsignal.config import FetchSettings
from pairsignal.data.fetcher import PairBarFetcher, PairMarketData
from pairsignal.exceptions import MarketDataError
from pairsignal.models import Action, Bar, PairSymbols
from pairsignal.monitor import PairMonitor


def _bars(closes: list) -> list[Bar]:
    return [
        Bar(timestamp_ms=1_700_000_000_000 + i * 3_600_000, close=Decimal(str(c)))
        for i, c in enumerate(closes)
    ]


def _market_data(symbols: PairSymbols, count: int = 12) -> PairMarketData:
    return PairMarketData(
        symbols=symbols,
        reference_bars=_bars([100] * count),
        comparison_bars=_bars([100] + [101 if i % 2 else 99 for i in range(1, count)]),
        current_prices={"ETH/USDT": Decimal("103")},
    )


@pytest.fixture
def fetcher(symbols: PairSymbols) -> AsyncMock:
    mock = AsyncMock(spec=PairBarFetcher)
    mock.fetch_pair.return_value = _market_data(symbols)
    return mock


@pytest.fixture
def monitor(fetcher: AsyncMock, symbols: PairSymbols, fetch_settings: FetchSettings) -> PairMonitor:
    return PairMonitor(fetcher=fetcher, symbols=symbols, fetch_settings=fetch_settings)


class TestRunCycle:
    """Tests for a single fetch-analyze cycle."""

    @pytest.mark.asyncio
    async def test_successful_cycle_stores_report(
        self, monitor: PairMonitor, fetcher: AsyncMock, symbols: PairSymbols
    ) -> None:
        report = await monitor.run_cycle()

        assert report is not None
        assert report.decision.action == Action.PAIRS_TRADE
        assert report.decision.long_symbol == "BTC/USDT"
        assert monitor.last_report is report
        fetcher.fetch_pair.assert_awaited_once_with(symbols)

    @pytest.mark.asyncio
    async def test_fetch_failure_skips_cycle(self, monitor: PairMonitor, fetcher: AsyncMock) -> None:
        fetcher.fetch_pair.side_effect = MarketDataError("exchange down")

        assert await monitor.run_cycle() is None
        assert monitor.last_report is None

    @pytest.mark.asyncio
    async def test_empty_bars_skip_cycle(
        self, monitor: PairMonitor, fetcher: AsyncMock, symbols: PairSymbols
    ) -> None:
        fetcher.fetch_pair.return_value = PairMarketData(
            symbols=symbols, reference_bars=[], comparison_bars=_bars([100] * 12)
        )

        assert await monitor.run_cycle() is None

    @pytest.mark.asyncio
    async def test_failed_cycle_keeps_previous_report(
        self, monitor: PairMonitor, fetcher: AsyncMock
    ) -> None:
        first = await monitor.run_cycle()
        fetcher.fetch_pair.side_effect = MarketDataError("exchange down")

        await monitor.run_cycle()

        assert monitor.last_report is first

    @pytest.mark.asyncio
    async def test_short_series_has_no_decision(
        self, monitor: PairMonitor, fetcher: AsyncMock, symbols: PairSymbols
    ) -> None:
        fetcher.fetch_pair.return_value = _market_data(symbols, count=6)

        report = await monitor.run_cycle()

        assert report is not None
        assert report.decision is None


class TestMonitorLifecycle:
    """Tests for start/stop lifecycle."""

    @pytest.mark.asyncio
    async def test_start_and_stop(
        self, fetcher: AsyncMock, symbols: PairSymbols
    ) -> None:
        """Monitor can be started and stopped gracefully."""
        monitor = PairMonitor(
            fetcher=fetcher,
            symbols=symbols,
            fetch_settings=FetchSettings(window="12h", refresh_interval=0),
        )
        task = asyncio.create_task(monitor.start())

        await asyncio.sleep(0.05)
        assert monitor.is_running
        await monitor.stop()

        await asyncio.wait_for(task, timeout=2.0)
        assert not monitor.is_running
        assert fetcher.fetch_pair.await_count >= 1

    @pytest.mark.asyncio
    async def test_stop_during_cycle_exits_without_sleeping(
        self, monitor: PairMonitor, fetcher: AsyncMock
    ) -> None:
        async def _fetch_and_stop(symbols: PairSymbols) -> PairMarketData:
            await monitor.stop()
            raise MarketDataError("exchange down")

        fetcher.fetch_pair.side_effect = _fetch_and_stop

        with patch("pairsignal.monitor.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await asyncio.wait_for(monitor.start(), timeout=2.0)

        fetcher.fetch_pair.assert_awaited_once()
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_loop_survives_failed_cycles(
        self, monitor: PairMonitor, fetcher: AsyncMock, symbols: PairSymbols
    ) -> None:
        outcomes = [MarketDataError("timeout"), _market_data(symbols)]

        async def _fetch(symbols: PairSymbols) -> PairMarketData:
            outcome = outcomes.pop(0)
            if not outcomes:
                await monitor.stop()
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        fetcher.fetch_pair.side_effect = _fetch

        with patch("pairsignal.monitor.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await asyncio.wait_for(monitor.start(), timeout=2.0)

        assert fetcher.fetch_pair.await_count == 2
        sleep.assert_awaited_once_with(300)
        assert monitor.last_report is not None

    @pytest.mark.asyncio
    async def test_stop_sets_running_false(self, monitor: PairMonitor) -> None:
        monitor._running = True
        await monitor.stop()
        assert monitor.is_running is False
