"""Refresh loop: fetch both legs, analyze, log the recommendation.

Each cycle is independent. Any PairSignalError (fetch failure, malformed or
insufficient data) skips the cycle and the loop retries on the next refresh;
a bad cycle never stops the monitor.
"""

from __future__ import annotations

import asyncio

from pairsignal.analysis.pipeline import AnalysisReport, build_report
from pairsignal.config import AnalysisSettings, FetchSettings, IndicatorSettings
from pairsignal.data.fetcher import PairBarFetcher
from pairsignal.exceptions import PairSignalError
from pairsignal.logging import get_logger, pair_context
from pairsignal.models import PairSymbols

logger = get_logger(__name__)


class PairMonitor:
    """Periodically produces an AnalysisReport for one symbol pair.

    Args:
        fetcher: Bar fetcher for both legs.
        symbols: The pair to analyze, including its benchmark leg.
        fetch_settings: Refresh interval.
        analysis_settings: Trend/dominance/decision constants.
        indicator_settings: Gap technicals and pattern constants.
    """

    def __init__(
        self,
        fetcher: PairBarFetcher,
        symbols: PairSymbols,
        fetch_settings: FetchSettings,
        analysis_settings: AnalysisSettings | None = None,
        indicator_settings: IndicatorSettings | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._symbols = symbols
        self._fetch_settings = fetch_settings
        self._analysis_settings = analysis_settings or AnalysisSettings()
        self._indicator_settings = indicator_settings or IndicatorSettings()
        self._running = False
        self._last_report: AnalysisReport | None = None

    @property
    def last_report(self) -> AnalysisReport | None:
        """Most recent successful report (None until the first one)."""
        return self._last_report

    @property
    def is_running(self) -> bool:
        return self._running

    async def run_cycle(self) -> AnalysisReport | None:
        """Fetch, analyze and log one cycle.

        Returns:
            The report, or None if the cycle was skipped.
        """
        with pair_context(self._symbols.reference, self._symbols.comparison):
            try:
                data = await self._fetcher.fetch_pair(self._symbols)
                report = build_report(
                    data.reference_bars,
                    data.comparison_bars,
                    data.current_prices,
                    self._symbols,
                    self._analysis_settings,
                    self._indicator_settings,
                )
            except PairSignalError as e:
                logger.warning("cycle_skipped", error_type=type(e).__name__, error=str(e))
                return None

            self._log_report(report)
            self._last_report = report
            return report

    def _log_report(self, report: AnalysisReport) -> None:
        decision = report.decision
        if decision is None:
            logger.info(
                "no_decision_available",
                points=len(report.series.points),
                required=self._analysis_settings.decision_min_points,
                regime=report.trend.regime.value,
            )
            return

        logger.info(
            "decision_ready",
            regime=decision.regime.value,
            strength=report.trend.strength_percent,
            strategy=decision.strategy.value,
            action=decision.action.value,
            long=decision.long_symbol,
            short=decision.short_symbol,
            confidence=decision.confidence_percent,
            current_gap=str(decision.current_gap),
            mean_gap=str(decision.mean_gap),
            expected_move=str(decision.expected_move_percent),
            risk=decision.risk_level.value,
            patterns=[p.kind.value for p in report.patterns],
        )

    async def start(self) -> None:
        """Run cycles until stop() is called."""
        self._running = True
        logger.info(
            "monitor_started",
            reference=self._symbols.reference,
            comparison=self._symbols.comparison,
            benchmark=self._symbols.benchmark,
            refresh_interval=self._fetch_settings.refresh_interval,
        )
        try:
            while self._running:
                await self.run_cycle()
                if not self._running:
                    break
                await asyncio.sleep(self._fetch_settings.refresh_interval)
        except asyncio.CancelledError:
            pass
        finally:
            self._running = False
            logger.info("monitor_stopped")

    async def stop(self) -> None:
        """Signal the loop to stop after the current cycle."""
        logger.info("monitor_stopping")
        self._running = False
