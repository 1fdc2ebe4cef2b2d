"""Named spread patterns derived from the gap technicals.

Each detector inspects the latest spread value against one indicator and
emits at most one Pattern. Directions refer to the spread itself
(comparison change minus reference change): LONG means the spread is
expected to rise, i.e. long the comparison leg against the reference.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from pairsignal.analysis.indicators import GapTechnicals
from pairsignal.config import IndicatorSettings
from pairsignal.models import NormalizedPoint

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


class PatternKind(str, Enum):
    SPREAD_UPTREND = "SPREAD_UPTREND"
    SPREAD_DOWNTREND = "SPREAD_DOWNTREND"
    BOLLINGER_UPPER = "BOLLINGER_UPPER"
    BOLLINGER_LOWER = "BOLLINGER_LOWER"
    RSI_OVERBOUGHT = "RSI_OVERBOUGHT"
    RSI_OVERSOLD = "RSI_OVERSOLD"
    AT_SUPPORT = "AT_SUPPORT"
    AT_RESISTANCE = "AT_RESISTANCE"
    MA_GOLDEN_CROSS = "MA_GOLDEN_CROSS"
    MA_DEATH_CROSS = "MA_DEATH_CROSS"
    MOMENTUM = "MOMENTUM"
    VOLATILITY_BREAKOUT = "VOLATILITY_BREAKOUT"


class PatternDirection(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


@dataclass(frozen=True)
class Pattern:
    kind: PatternKind
    strength: Decimal  # 0-100
    direction: PatternDirection
    description: str

    def to_dict(self) -> dict:
        """Serialize to JSON-safe dict."""
        return {
            "kind": self.kind.value,
            "strength": f"{self.strength:.1f}",
            "direction": self.direction.value,
            "description": self.description,
        }


def _cap(value: Decimal) -> Decimal:
    return min(value, _HUNDRED)


def _trend_pattern(tech: GapTechnicals, s: IndicatorSettings) -> Pattern | None:
    strength = (tech.short_trend.strength + tech.medium_trend.strength) / 2
    if strength <= s.trend_pattern_threshold:
        return None
    rising = tech.short_trend.slope > 0
    return Pattern(
        kind=PatternKind.SPREAD_UPTREND if rising else PatternKind.SPREAD_DOWNTREND,
        strength=_cap(strength * 200),
        direction=PatternDirection.LONG if rising else PatternDirection.SHORT,
        description=f"Spread {'uptrend' if rising else 'downtrend'} with slope {strength * 100:.1f}%",
    )


def _bollinger_pattern(last: Decimal, tech: GapTechnicals) -> Pattern | None:
    if tech.std_dev == _ZERO:
        return None
    if last > tech.upper_band:
        return Pattern(
            kind=PatternKind.BOLLINGER_UPPER,
            strength=_cap((last - tech.upper_band) / tech.std_dev * 40),
            direction=PatternDirection.SHORT,
            description=f"Spread above upper Bollinger band ({tech.upper_band:.2f}%)",
        )
    if last < tech.lower_band:
        return Pattern(
            kind=PatternKind.BOLLINGER_LOWER,
            strength=_cap((tech.lower_band - last) / tech.std_dev * 40),
            direction=PatternDirection.LONG,
            description=f"Spread below lower Bollinger band ({tech.lower_band:.2f}%)",
        )
    return None


def _rsi_pattern(tech: GapTechnicals, s: IndicatorSettings) -> Pattern | None:
    if tech.rsi > s.rsi_overbought:
        return Pattern(
            kind=PatternKind.RSI_OVERBOUGHT,
            strength=_cap((tech.rsi - s.rsi_overbought) * 2),
            direction=PatternDirection.SHORT,
            description=f"Spread RSI overbought at {tech.rsi:.1f}",
        )
    if tech.rsi < s.rsi_oversold:
        return Pattern(
            kind=PatternKind.RSI_OVERSOLD,
            strength=_cap((s.rsi_oversold - tech.rsi) * 2),
            direction=PatternDirection.LONG,
            description=f"Spread RSI oversold at {tech.rsi:.1f}",
        )
    return None


def _level_pattern(last: Decimal, tech: GapTechnicals, s: IndicatorSettings) -> Pattern | None:
    tolerance = tech.std_dev * s.level_tolerance
    if abs(last - tech.levels.support1) < tolerance:
        return Pattern(
            kind=PatternKind.AT_SUPPORT,
            strength=Decimal("75"),
            direction=PatternDirection.LONG,
            description=f"Spread at support level ({tech.levels.support1:.2f}%)",
        )
    if abs(last - tech.levels.resistance1) < tolerance:
        return Pattern(
            kind=PatternKind.AT_RESISTANCE,
            strength=Decimal("75"),
            direction=PatternDirection.SHORT,
            description=f"Spread at resistance level ({tech.levels.resistance1:.2f}%)",
        )
    return None


def _crossover_pattern(
    spreads: Sequence[Decimal], tech: GapTechnicals, s: IndicatorSettings
) -> Pattern | None:
    # Needs a value ma_long_period points back to compare against
    if len(spreads) < s.ma_long_period:
        return None
    short_ago = spreads[-s.ma_short_period]
    long_ago = spreads[-s.ma_long_period]
    if tech.ma_short > tech.ma_long and short_ago <= long_ago:
        return Pattern(
            kind=PatternKind.MA_GOLDEN_CROSS,
            strength=Decimal("80"),
            direction=PatternDirection.LONG,
            description=f"MA{s.ma_short_period} crossed above MA{s.ma_long_period}",
        )
    if tech.ma_short < tech.ma_long and short_ago >= long_ago:
        return Pattern(
            kind=PatternKind.MA_DEATH_CROSS,
            strength=Decimal("80"),
            direction=PatternDirection.SHORT,
            description=f"MA{s.ma_short_period} crossed below MA{s.ma_long_period}",
        )
    return None


def count_consecutive_moves(values: Sequence[Decimal]) -> int:
    """Count how many of the latest step pairs continue in the same direction.

    Walks backward from the newest value and stops at the first pair of
    steps that do not share a sign (a flat step breaks the run).
    """
    count = 0
    for i in range(len(values) - 1, 1, -1):
        if (values[i] - values[i - 1]) * (values[i - 1] - values[i - 2]) > 0:
            count += 1
        else:
            break
    return count


def _momentum_pattern(spreads: Sequence[Decimal], s: IndicatorSettings) -> Pattern | None:
    consecutive = count_consecutive_moves(spreads[-s.momentum_window :])
    if consecutive < 2:
        return None
    rising = spreads[-1] > spreads[-2]
    return Pattern(
        kind=PatternKind.MOMENTUM,
        strength=_cap(Decimal(consecutive * 25)),
        direction=PatternDirection.LONG if rising else PatternDirection.SHORT,
        description=f"{consecutive} consecutive spread moves in the same direction",
    )


def _volatility_pattern(
    spreads: Sequence[Decimal], tech: GapTechnicals, s: IndicatorSettings
) -> Pattern | None:
    recent = spreads[-s.momentum_window :]
    history = spreads[: -s.momentum_window]
    if not history:
        return None

    recent_vol = sum((abs(v) for v in recent), _ZERO) / Decimal(len(recent))
    historical_vol = sum((abs(v) for v in history), _ZERO) / Decimal(len(history))
    if recent_vol <= historical_vol * s.volatility_breakout_ratio:
        return None

    if historical_vol == _ZERO:
        strength, description = _HUNDRED, "Volatility breakout from a flat spread"
    else:
        ratio = recent_vol / historical_vol
        strength = _cap(ratio * 40)
        description = f"Spread volatility increased by {(ratio - 1) * 100:.0f}%"

    rising = tech.short_trend.slope > 0
    return Pattern(
        kind=PatternKind.VOLATILITY_BREAKOUT,
        strength=strength,
        direction=PatternDirection.LONG if rising else PatternDirection.SHORT,
        description=description,
    )


def detect_patterns(
    points: Sequence[NormalizedPoint],
    technicals: GapTechnicals | None,
    settings: IndicatorSettings | None = None,
) -> list[Pattern]:
    """Run every detector against the latest spread value.

    Args:
        points: Normalized points ordered oldest-first.
        technicals: Indicator snapshot for the same points.
        settings: Pattern thresholds. None = defaults.

    Returns:
        Detected patterns in detector order. Empty below
        ``pattern_min_points`` points or without technicals.
    """
    s = settings or IndicatorSettings()
    if len(points) < s.pattern_min_points or technicals is None:
        return []

    spreads = [p.spread for p in points]
    last = spreads[-1]

    candidates = (
        _trend_pattern(technicals, s),
        _bollinger_pattern(last, technicals),
        _rsi_pattern(technicals, s),
        _level_pattern(last, technicals, s),
        _crossover_pattern(spreads, technicals, s),
        _momentum_pattern(spreads, s),
        _volatility_pattern(spreads, technicals, s),
    )
    return [p for p in candidates if p is not None]
