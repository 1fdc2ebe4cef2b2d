"""Technical indicators over the spread (gap) series.

Treats the spread as a price series in its own right: moving averages,
RSI of its step changes, Bollinger bands, quantile support/resistance
levels, and least-squares linear trends over three horizons.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from pairsignal.analysis.stats import population_stats, simple_moving_average
from pairsignal.config import IndicatorSettings
from pairsignal.models import NormalizedPoint

_ZERO = Decimal("0")
_FIFTY = Decimal("50")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class LinearTrend:
    slope: Decimal
    intercept: Decimal

    @property
    def strength(self) -> Decimal:
        return abs(self.slope)


@dataclass(frozen=True)
class SupportResistance:
    support1: Decimal
    support2: Decimal
    resistance1: Decimal
    resistance2: Decimal


@dataclass(frozen=True)
class GapTechnicals:
    """Indicator snapshot of the spread series at its latest point."""

    ma_short: Decimal
    ma_long: Decimal
    rsi: Decimal
    mean: Decimal
    std_dev: Decimal
    upper_band: Decimal
    lower_band: Decimal
    levels: SupportResistance
    short_trend: LinearTrend
    medium_trend: LinearTrend
    long_trend: LinearTrend

    def to_dict(self) -> dict:
        """Serialize to JSON-safe dict with Decimal values as strings."""
        return {
            "ma_short": str(self.ma_short),
            "ma_long": str(self.ma_long),
            "rsi": str(self.rsi),
            "mean": str(self.mean),
            "std_dev": str(self.std_dev),
            "upper_band": str(self.upper_band),
            "lower_band": str(self.lower_band),
            "support_resistance": {
                "support1": str(self.levels.support1),
                "support2": str(self.levels.support2),
                "resistance1": str(self.levels.resistance1),
                "resistance2": str(self.levels.resistance2),
            },
            "trends": {
                name: {"slope": str(t.slope), "intercept": str(t.intercept)}
                for name, t in (
                    ("short", self.short_trend),
                    ("medium", self.medium_trend),
                    ("long", self.long_trend),
                )
            },
        }


def compute_rsi(values: Sequence[Decimal], period: int = 14) -> Decimal:
    """Relative Strength Index of step changes over the last ``period`` steps.

    Uses simple averages (gains and losses divided by ``period``), not
    Wilder smoothing.

    Returns:
        RSI in [0, 100]. 50 when fewer than ``period + 1`` values,
        100 when there are no losses.
    """
    if len(values) < period + 1:
        return _FIFTY

    changes = [curr - prev for prev, curr in zip(values, values[1:])][-period:]
    gains = sum((c for c in changes if c > 0), _ZERO) / Decimal(period)
    losses = abs(sum((c for c in changes if c < 0), _ZERO)) / Decimal(period)

    if losses == _ZERO:
        return _HUNDRED
    rs = gains / losses
    return _HUNDRED - _HUNDRED / (Decimal("1") + rs)


def find_support_resistance(
    values: Sequence[Decimal],
    support_quantiles: tuple[Decimal, Decimal],
    resistance_quantiles: tuple[Decimal, Decimal],
) -> SupportResistance:
    """Pick levels at fixed quantiles of the sorted series (floor indexing)."""
    ordered = sorted(values)
    n = len(ordered)

    def at(q: Decimal) -> Decimal:
        return ordered[min(int(n * q), n - 1)]

    return SupportResistance(
        support1=at(support_quantiles[0]),
        support2=at(support_quantiles[1]),
        resistance1=at(resistance_quantiles[0]),
        resistance2=at(resistance_quantiles[1]),
    )


def fit_linear_trend(values: Sequence[Decimal]) -> LinearTrend:
    """Ordinary least-squares line through (index, value).

    Degenerate input (fewer than 2 values) yields a flat line.
    """
    n = Decimal(len(values))
    if len(values) < 2:
        return LinearTrend(slope=_ZERO, intercept=values[0] if values else _ZERO)

    xs = [Decimal(i) for i in range(len(values))]
    sum_x = sum(xs, _ZERO)
    sum_y = sum(values, _ZERO)
    sum_xy = sum((x * y for x, y in zip(xs, values)), _ZERO)
    sum_x2 = sum((x * x for x in xs), _ZERO)

    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)
    intercept = (sum_y - slope * sum_x) / n
    return LinearTrend(slope=slope, intercept=intercept)


def compute_gap_technicals(
    points: Sequence[NormalizedPoint],
    settings: IndicatorSettings | None = None,
) -> GapTechnicals | None:
    """Compute the indicator snapshot for the spread series.

    The long moving average falls back to the short one until
    ``ma_long_period`` points exist.

    Args:
        points: Normalized points ordered oldest-first.
        settings: Indicator periods and quantiles. None = defaults.

    Returns:
        GapTechnicals, or None when fewer than ``ma_short_period`` points.
    """
    s = settings or IndicatorSettings()
    spreads = [p.spread for p in points]

    if len(spreads) < s.ma_short_period:
        return None

    ma_short = simple_moving_average(spreads, s.ma_short_period)
    ma_long = (
        simple_moving_average(spreads, s.ma_long_period)
        if len(spreads) >= s.ma_long_period
        else ma_short
    )
    mean, std_dev = population_stats(spreads)

    return GapTechnicals(
        ma_short=ma_short,
        ma_long=ma_long,
        rsi=compute_rsi(spreads, s.rsi_period),
        mean=mean,
        std_dev=std_dev,
        upper_band=mean + s.bollinger_width * std_dev,
        lower_band=mean - s.bollinger_width * std_dev,
        levels=find_support_resistance(spreads, s.support_quantiles, s.resistance_quantiles),
        short_trend=fit_linear_trend(spreads[-s.short_trend_window :]),
        medium_trend=fit_linear_trend(spreads[-s.medium_trend_window :]),
        long_trend=fit_linear_trend(spreads),
    )
