"""Analysis pipeline: bars in, decision out.

Runs every stage from scratch on each call:
  1. Normalize both bar sequences against their first aligned bar
  2. Classify the reference regime (soft NEUTRAL default on short input)
  3. Estimate dominance statistics (soft neutral prior on short input)
  4. Decide strategy and legs (None on insufficient data)
  5. Compute gap technicals and spread patterns

``build_report`` returns everything the presentation layer may want.
``analyze`` returns only the Decision and raises when none is available.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from pairsignal.analysis.decision import decide
from pairsignal.analysis.dominance import estimate_dominance
from pairsignal.analysis.indicators import GapTechnicals, compute_gap_technicals
from pairsignal.analysis.normalizer import NormalizedSeries, normalize_series
from pairsignal.analysis.patterns import Pattern, detect_patterns
from pairsignal.analysis.trend import classify_trend
from pairsignal.config import AnalysisSettings, IndicatorSettings
from pairsignal.exceptions import InsufficientDataError
from pairsignal.logging import get_logger
from pairsignal.models import Bar, Decision, DominanceResult, PairSymbols, TrendResult

logger = get_logger(__name__)


@dataclass(frozen=True)
class AnalysisReport:
    """Everything one analysis run produced. ``decision`` is None on insufficient data."""

    symbols: PairSymbols
    series: NormalizedSeries
    trend: TrendResult
    dominance: DominanceResult
    decision: Decision | None
    technicals: GapTechnicals | None = None
    patterns: list[Pattern] = field(default_factory=list)

    @property
    def has_decision(self) -> bool:
        return self.decision is not None

    def to_dict(self) -> dict:
        """Serialize to JSON-safe dict."""
        return {
            "reference": self.symbols.reference,
            "comparison": self.symbols.comparison,
            "benchmark": self.symbols.benchmark,
            "points": len(self.series.points),
            "reference_change_pct": str(self.series.reference.total_change_pct),
            "comparison_change_pct": str(self.series.comparison.total_change_pct),
            "trend": self.trend.to_dict(),
            "dominance": self.dominance.to_dict(),
            "decision": self.decision.to_dict() if self.decision else None,
            "technicals": self.technicals.to_dict() if self.technicals else None,
            "patterns": [p.to_dict() for p in self.patterns],
        }


def build_report(
    reference_bars: Sequence[Bar],
    comparison_bars: Sequence[Bar],
    current_prices: Mapping[str, Decimal] | None,
    symbols: PairSymbols,
    analysis_settings: AnalysisSettings | None = None,
    indicator_settings: IndicatorSettings | None = None,
) -> AnalysisReport:
    """Run the full pipeline and collect every intermediate result.

    Args:
        reference_bars: Reference asset bars, oldest first.
        comparison_bars: Comparison asset bars, oldest first.
        current_prices: Live prices keyed by symbol. Missing entries fall back
            to the last aligned close.
        symbols: Pair symbols including the benchmark leg.
        analysis_settings: Trend/dominance/decision constants. None = defaults.
        indicator_settings: Gap technicals and pattern constants. None = defaults.

    Returns:
        AnalysisReport whose decision is None when there is not enough data.

    Raises:
        EmptySeriesError: if either bar sequence is empty.
        MalformedInputError: if prices are non-numeric or the anchor is not positive.
    """
    a = analysis_settings or AnalysisSettings()
    prices = current_prices or {}

    series = normalize_series(
        reference_bars,
        comparison_bars,
        reference_price=prices.get(symbols.reference),
        comparison_price=prices.get(symbols.comparison),
        symbols=symbols,
    )
    points = series.points

    trend = classify_trend(points, a)
    dominance = estimate_dominance(points, a)
    decision = decide(points, trend, dominance, series.reference, series.comparison, symbols, a)
    technicals = compute_gap_technicals(points, indicator_settings)
    patterns = detect_patterns(points, technicals, indicator_settings)

    logger.debug(
        "analysis_complete",
        reference=symbols.reference,
        comparison=symbols.comparison,
        points=len(points),
        regime=trend.regime.value,
        strength=trend.strength_percent,
        dominance_confidence=dominance.confidence,
        action=decision.action.value if decision else None,
        patterns=len(patterns),
    )

    return AnalysisReport(
        symbols=symbols,
        series=series,
        trend=trend,
        dominance=dominance,
        decision=decision,
        technicals=technicals,
        patterns=patterns,
    )


def analyze(
    reference_bars: Sequence[Bar],
    comparison_bars: Sequence[Bar],
    current_prices: Mapping[str, Decimal] | None,
    symbols: PairSymbols,
    settings: AnalysisSettings | None = None,
) -> Decision:
    """Produce the trade decision for one pair of bar sequences.

    A SKIP decision is a valid result; the absence of a decision is not and
    is signalled with InsufficientDataError.

    Raises:
        InsufficientDataError: if fewer than ``decision_min_points`` aligned
            points exist.
        EmptySeriesError: if either bar sequence is empty.
        MalformedInputError: if prices are non-numeric or the anchor is not positive.
    """
    report = build_report(reference_bars, comparison_bars, current_prices, symbols, settings)
    if report.decision is None:
        s = settings or AnalysisSettings()
        raise InsufficientDataError(
            f"{len(report.series.points)} aligned points for "
            f"{symbols.reference}/{symbols.comparison}, need {s.decision_min_points}"
        )
    return report.decision
