"""Market regime classification from the reference asset's recent trajectory.

The regime thresholds overlap, so the order in which they are evaluated is
part of the contract. TREND_RULES lists them top-to-bottom; the first rule
whose condition holds wins.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from decimal import Decimal

from pairsignal.config import AnalysisSettings
from pairsignal.logging import get_logger
from pairsignal.models import NormalizedPoint, Regime, TrendResult, round_percent

logger = get_logger(__name__)

_ZERO = Decimal("0")

#: (latest_change, momentum, settings) -> bool / Decimal
_Condition = Callable[[Decimal, int, AnalysisSettings], bool]
_Strength = Callable[[Decimal, int, AnalysisSettings], Decimal]


@dataclass(frozen=True)
class TrendRule:
    """One row of the regime table."""

    regime: Regime
    condition: _Condition
    strength: _Strength


def _strong_down(latest: Decimal, momentum: int, s: AnalysisSettings) -> bool:
    return latest < -s.trend_strong_change or (
        latest < _ZERO and momentum <= -s.trend_strong_momentum
    )


def _down(latest: Decimal, momentum: int, s: AnalysisSettings) -> bool:
    return latest < -s.trend_change or momentum < 0


def _strong_up(latest: Decimal, momentum: int, s: AnalysisSettings) -> bool:
    return latest > s.trend_strong_change or (
        latest > _ZERO and momentum >= s.trend_strong_momentum
    )


def _up(latest: Decimal, momentum: int, s: AnalysisSettings) -> bool:
    return latest > s.trend_change or momentum > 0


def _always(latest: Decimal, momentum: int, s: AnalysisSettings) -> bool:
    return True


def _strong_strength(latest: Decimal, momentum: int, s: AnalysisSettings) -> Decimal:
    raw = abs(latest) * s.strong_change_weight + abs(momentum) * s.strong_momentum_weight
    return min(s.strong_strength_cap, raw)


def _plain_strength(latest: Decimal, momentum: int, s: AnalysisSettings) -> Decimal:
    raw = abs(latest) * s.change_weight + abs(momentum) * s.momentum_weight
    return min(s.strength_cap, raw)


def _signed_strong_strength(latest: Decimal, momentum: int, s: AnalysisSettings) -> Decimal:
    raw = latest * s.strong_change_weight + momentum * s.strong_momentum_weight
    return min(s.strong_strength_cap, raw)


def _signed_plain_strength(latest: Decimal, momentum: int, s: AnalysisSettings) -> Decimal:
    # latest may be slightly negative here (between -1 and 0 with rising momentum)
    raw = latest * s.change_weight + momentum * s.momentum_weight
    return min(s.strength_cap, raw)


def _neutral_strength(latest: Decimal, momentum: int, s: AnalysisSettings) -> Decimal:
    return Decimal(s.neutral_strength)


TREND_RULES: tuple[TrendRule, ...] = (
    TrendRule(Regime.STRONG_DOWNTREND, _strong_down, _strong_strength),
    TrendRule(Regime.DOWNTREND, _down, _plain_strength),
    TrendRule(Regime.STRONG_UPTREND, _strong_up, _signed_strong_strength),
    TrendRule(Regime.UPTREND, _up, _signed_plain_strength),
    TrendRule(Regime.NEUTRAL, _always, _neutral_strength),
)


def compute_momentum(window: Sequence[Decimal]) -> int:
    """Count of step-ups minus count of step-downs across adjacent values.

    Flat steps count toward neither side.
    """
    momentum = 0
    for prev, curr in zip(window, window[1:]):
        if curr > prev:
            momentum += 1
        elif curr < prev:
            momentum -= 1
    return momentum


def match_rule(
    latest_change: Decimal,
    momentum: int,
    settings: AnalysisSettings,
    rules: Sequence[TrendRule] = TREND_RULES,
) -> TrendRule:
    """Return the first rule whose condition holds (first match wins)."""
    for rule in rules:
        if rule.condition(latest_change, momentum, settings):
            return rule
    raise LookupError("Rule table has no catch-all row")


def classify_trend(
    points: Sequence[NormalizedPoint],
    settings: AnalysisSettings | None = None,
) -> TrendResult:
    """Classify the market regime from recent reference percent changes.

    Inspects the last ``trend_window`` reference changes: ``recent_delta`` is
    last minus first, ``momentum`` is step-ups minus step-downs. The latest
    change and momentum are then run through TREND_RULES.

    Graceful degradation: returns NEUTRAL with strength 0 when fewer than
    ``trend_min_points`` points are available.

    Args:
        points: Normalized points ordered oldest-first.
        settings: Thresholds and weights. None = defaults.

    Returns:
        TrendResult with strength rounded to an integer in [0, 100].
    """
    s = settings or AnalysisSettings()

    if len(points) < s.trend_min_points:
        latest = points[-1].ref_change_pct if points else _ZERO
        return TrendResult(
            regime=Regime.NEUTRAL,
            strength_percent=0,
            ref_change_percent=latest,
            momentum=0,
            recent_delta=_ZERO,
        )

    latest_change = points[-1].ref_change_pct
    window = [p.ref_change_pct for p in points[-s.trend_window :]]
    recent_delta = window[-1] - window[0]
    momentum = compute_momentum(window)

    rule = match_rule(latest_change, momentum, s)
    strength = max(_ZERO, rule.strength(latest_change, momentum, s))

    result = TrendResult(
        regime=rule.regime,
        strength_percent=round_percent(strength),
        ref_change_percent=latest_change,
        momentum=momentum,
        recent_delta=recent_delta,
    )

    logger.debug(
        "trend_classified",
        regime=result.regime.value,
        strength=result.strength_percent,
        latest_change=str(latest_change),
        momentum=momentum,
    )
    return result
