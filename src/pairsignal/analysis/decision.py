"""Decision engine: regime + dominance + gap statistics to a pairs trade.

Core flow:
  1. Compute population mean/std of the historical spread and the live gap
  2. Branch on regime family (downtrend, uptrend, neutral)
  3. Trend regimes follow the trend, using dominance to pick the long leg
  4. Neutral regime trades mean reversion when the gap leaves the band
  5. Derive expected move and risk tier

The engine is pure: no I/O, no state across calls. Returning None means
"not enough data this cycle", which is a different outcome from SKIP.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from pairsignal.analysis.stats import population_stats
from pairsignal.config import AnalysisSettings
from pairsignal.logging import get_logger
from pairsignal.models import (
    Action,
    Decision,
    DominanceResult,
    NormalizedPoint,
    PairSymbols,
    PriceSnapshot,
    RiskLevel,
    Strategy,
    TrendResult,
    quantize_pct,
    round_percent,
)

logger = get_logger(__name__)

_ZERO = Decimal("0")
_FIFTY = Decimal("50")


@dataclass(frozen=True)
class GapStats:
    """Population statistics of the spread series plus the live gap."""

    current: Decimal
    mean: Decimal
    std_dev: Decimal


@dataclass(frozen=True)
class _Legs:
    strategy: Strategy
    action: Action
    long_symbol: str | None
    short_symbol: str | None
    confidence: int
    reasoning: str


def compute_gap_stats(
    points: Sequence[NormalizedPoint],
    reference: PriceSnapshot,
    comparison: PriceSnapshot,
) -> GapStats:
    mean, std_dev = population_stats([p.spread for p in points])
    return GapStats(
        current=comparison.total_change_pct - reference.total_change_pct,
        mean=mean,
        std_dev=std_dev,
    )


def classify_risk(std_dev: Decimal, settings: AnalysisSettings) -> RiskLevel:
    """Risk tier from spread volatility: > high -> HIGH, > medium -> MEDIUM."""
    if std_dev > settings.risk_high_std:
        return RiskLevel.HIGH
    if std_dev > settings.risk_medium_std:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def _trend_confidence(rate: Decimal, strength: int, s: AnalysisSettings) -> int:
    raw = (
        s.trend_confidence_base
        + rate * s.trend_confidence_rate_weight
        + strength * s.trend_confidence_strength_weight
    )
    return round_percent(min(s.trend_confidence_cap, raw))


def _downtrend_legs(
    trend: TrendResult, dominance: DominanceResult, symbols: PairSymbols, s: AnalysisSettings
) -> _Legs:
    if symbols.benchmark_is_reference and dominance.dominance_in_downtrend:
        return _Legs(
            strategy=Strategy.TREND_FOLLOWING,
            action=Action.PAIRS_TRADE,
            long_symbol=symbols.reference,
            short_symbol=symbols.comparison,
            confidence=_trend_confidence(dominance.ref_dominance_rate, trend.strength_percent, s),
            reasoning=(
                f"{trend.regime.value}: {symbols.reference} held up better than "
                f"{symbols.comparison} in {dominance.ref_dominance_rate}% of "
                f"{dominance.down_sample_count} past down periods"
            ),
        )
    return _Legs(
        strategy=Strategy.TREND_FOLLOWING,
        action=Action.PAIRS_TRADE,
        long_symbol=symbols.benchmark,
        short_symbol=symbols.non_benchmark,
        confidence=s.fallback_confidence,
        reasoning=(
            f"{trend.regime.value}: favoring benchmark {symbols.benchmark} as the "
            f"safe-haven long leg against {symbols.non_benchmark}"
        ),
    )


def _uptrend_legs(
    trend: TrendResult, dominance: DominanceResult, symbols: PairSymbols, s: AnalysisSettings
) -> _Legs:
    if symbols.benchmark_is_reference and dominance.cmp_outperform_rate > _FIFTY:
        return _Legs(
            strategy=Strategy.TREND_FOLLOWING,
            action=Action.PAIRS_TRADE,
            long_symbol=symbols.comparison,
            short_symbol=symbols.reference,
            confidence=_trend_confidence(dominance.cmp_outperform_rate, trend.strength_percent, s),
            reasoning=(
                f"{trend.regime.value}: {symbols.comparison} outperformed "
                f"{symbols.reference} in {dominance.cmp_outperform_rate}% of "
                f"{dominance.up_sample_count} past up periods"
            ),
        )
    return _Legs(
        strategy=Strategy.TREND_FOLLOWING,
        action=Action.PAIRS_TRADE,
        long_symbol=symbols.non_benchmark,
        short_symbol=symbols.benchmark,
        confidence=s.fallback_confidence,
        reasoning=(
            f"{trend.regime.value}: favoring {symbols.non_benchmark} over benchmark "
            f"{symbols.benchmark} for higher beta"
        ),
    )


def _neutral_legs(gap: GapStats, symbols: PairSymbols, s: AnalysisSettings) -> _Legs:
    band = s.mean_reversion_band * gap.std_dev
    if gap.current > gap.mean + band:
        return _Legs(
            strategy=Strategy.MEAN_REVERSION,
            action=Action.PAIRS_TRADE,
            long_symbol=symbols.reference,
            short_symbol=symbols.comparison,
            confidence=s.mean_reversion_confidence,
            reasoning=(
                f"NEUTRAL: gap {quantize_pct(gap.current)}% is above its mean "
                f"{quantize_pct(gap.mean)}%, expecting it to narrow"
            ),
        )
    if gap.current < gap.mean - band:
        return _Legs(
            strategy=Strategy.MEAN_REVERSION,
            action=Action.PAIRS_TRADE,
            long_symbol=symbols.comparison,
            short_symbol=symbols.reference,
            confidence=s.mean_reversion_confidence,
            reasoning=(
                f"NEUTRAL: gap {quantize_pct(gap.current)}% is below its mean "
                f"{quantize_pct(gap.mean)}%, expecting it to widen"
            ),
        )
    return _Legs(
        strategy=Strategy.MEAN_REVERSION,
        action=Action.SKIP,
        long_symbol=None,
        short_symbol=None,
        confidence=0,
        reasoning=(
            f"NEUTRAL: gap {quantize_pct(gap.current)}% is within "
            f"{s.mean_reversion_band} std of its mean, no edge"
        ),
    )


def decide(
    points: Sequence[NormalizedPoint],
    trend: TrendResult,
    dominance: DominanceResult,
    reference: PriceSnapshot | None,
    comparison: PriceSnapshot | None,
    symbols: PairSymbols,
    settings: AnalysisSettings | None = None,
) -> Decision | None:
    """Select strategy, legs, confidence, expected move and risk tier.

    Regime families are matched by substring: both STRONG_DOWNTREND and
    DOWNTREND follow the downtrend branch, likewise for uptrends.

    Args:
        points: Normalized points ordered oldest-first.
        trend: Regime classification for the same points.
        dominance: Dominance statistics for the same points.
        reference: Live snapshot of the reference leg.
        comparison: Live snapshot of the comparison leg.
        symbols: Pair symbols including the benchmark leg.
        settings: Decision constants. None = defaults.

    Returns:
        Decision, or None when fewer than ``decision_min_points`` points are
        available or a snapshot is missing.
    """
    s = settings or AnalysisSettings()

    if len(points) < s.decision_min_points or reference is None or comparison is None:
        logger.debug(
            "decision_unavailable",
            points=len(points),
            required=s.decision_min_points,
            has_reference=reference is not None,
            has_comparison=comparison is not None,
        )
        return None

    gap = compute_gap_stats(points, reference, comparison)

    if trend.regime.is_downtrend:
        legs = _downtrend_legs(trend, dominance, symbols, s)
        expected_move = abs(gap.current) * s.downtrend_move_factor
    elif trend.regime.is_uptrend:
        legs = _uptrend_legs(trend, dominance, symbols, s)
        expected_move = abs(gap.current) * s.uptrend_move_factor
    else:
        legs = _neutral_legs(gap, symbols, s)
        expected_move = abs(gap.current - gap.mean) * s.neutral_move_factor

    if legs.action == Action.SKIP:
        logger.debug(
            "decision_skipped",
            regime=trend.regime.value,
            current_gap=str(quantize_pct(gap.current)),
            mean_gap=str(quantize_pct(gap.mean)),
            std_dev_gap=str(quantize_pct(gap.std_dev)),
        )

    return Decision(
        strategy=legs.strategy,
        action=legs.action,
        long_symbol=legs.long_symbol,
        short_symbol=legs.short_symbol,
        reasoning=legs.reasoning,
        confidence_percent=legs.confidence,
        current_gap=quantize_pct(gap.current),
        mean_gap=quantize_pct(gap.mean),
        std_dev_gap=quantize_pct(gap.std_dev),
        expected_move_percent=quantize_pct(expected_move),
        risk_level=classify_risk(gap.std_dev, s),
        regime=trend.regime,
    )
