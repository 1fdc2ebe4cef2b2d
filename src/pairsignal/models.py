"""Core data models for the pair analysis pipeline.

CRITICAL: All prices, percent changes and rates use Decimal. Never use float.
Percent values are quantized to 2 decimal places with ROUND_HALF_UP.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from pairsignal.exceptions import MalformedInputError

_TWO_DP = Decimal("0.01")


def quantize_pct(value: Decimal) -> Decimal:
    """Round a percent value to 2 decimal places (half-up)."""
    return value.quantize(_TWO_DP, rounding=ROUND_HALF_UP)


def round_percent(value: Decimal) -> int:
    """Round a percent score to an integer (half-up)."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class Regime(str, Enum):
    """Market regime derived from the reference asset's recent trajectory."""

    STRONG_DOWNTREND = "STRONG_DOWNTREND"
    DOWNTREND = "DOWNTREND"
    NEUTRAL = "NEUTRAL"
    UPTREND = "UPTREND"
    STRONG_UPTREND = "STRONG_UPTREND"

    @property
    def is_downtrend(self) -> bool:
        return "DOWNTREND" in self.value

    @property
    def is_uptrend(self) -> bool:
        return "UPTREND" in self.value


class Strategy(str, Enum):
    TREND_FOLLOWING = "TREND_FOLLOWING"
    MEAN_REVERSION = "MEAN_REVERSION"


class Action(str, Enum):
    PAIRS_TRADE = "PAIRS_TRADE"
    SKIP = "SKIP"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True)
class Bar:
    """A single price bar. Only ``close`` is used by the analysis pipeline."""

    timestamp_ms: int
    close: Decimal
    open: Decimal | None = None
    high: Decimal | None = None
    low: Decimal | None = None
    volume: Decimal | None = None


@dataclass(frozen=True)
class PairSymbols:
    """The analyzed pair and which leg is the trend-defining benchmark.

    ``benchmark`` defaults to the reference symbol and must name one of the
    two legs.
    """

    reference: str
    comparison: str
    benchmark: str = ""

    def __post_init__(self) -> None:
        if not self.benchmark:
            object.__setattr__(self, "benchmark", self.reference)
        if self.reference == self.comparison:
            raise MalformedInputError(
                f"Reference and comparison must differ, got {self.reference!r} twice"
            )
        if self.benchmark not in (self.reference, self.comparison):
            raise MalformedInputError(
                f"Benchmark {self.benchmark!r} is neither {self.reference!r} "
                f"nor {self.comparison!r}"
            )

    @property
    def benchmark_is_reference(self) -> bool:
        return self.benchmark == self.reference

    @property
    def non_benchmark(self) -> str:
        return self.comparison if self.benchmark_is_reference else self.reference


@dataclass(frozen=True)
class NormalizedPoint:
    """Percent change of both legs from the first aligned bar.

    ``spread`` is always exactly ``cmp_change_pct - ref_change_pct``.
    """

    timestamp_ms: int
    label: str
    ref_change_pct: Decimal
    cmp_change_pct: Decimal
    spread: Decimal


@dataclass(frozen=True)
class PriceSnapshot:
    """Live price of one leg and its total change over the analyzed period."""

    symbol: str
    current_price: Decimal
    total_change_pct: Decimal


@dataclass(frozen=True)
class TrendResult:
    regime: Regime
    strength_percent: int
    ref_change_percent: Decimal
    momentum: int
    recent_delta: Decimal

    def to_dict(self) -> dict:
        """Serialize to JSON-safe dict with Decimal values as strings."""
        return {
            "regime": self.regime.value,
            "strength_percent": self.strength_percent,
            "ref_change_percent": str(self.ref_change_percent),
            "momentum": self.momentum,
            "recent_delta": str(self.recent_delta),
        }


@dataclass(frozen=True)
class DominanceResult:
    """Historical conditional outperformance statistics.

    ``ref_dominance_rate``: % of down samples where the reference fell less.
    ``cmp_outperform_rate``: % of up samples where the comparison gained more.
    """

    ref_dominance_rate: Decimal
    cmp_outperform_rate: Decimal
    down_sample_count: int
    up_sample_count: int
    confidence: int
    dominance_in_downtrend: bool

    def to_dict(self) -> dict:
        """Serialize to JSON-safe dict with Decimal values as strings."""
        return {
            "ref_dominance_rate": str(self.ref_dominance_rate),
            "cmp_outperform_rate": str(self.cmp_outperform_rate),
            "down_sample_count": self.down_sample_count,
            "up_sample_count": self.up_sample_count,
            "confidence": self.confidence,
            "dominance_in_downtrend": self.dominance_in_downtrend,
        }


@dataclass(frozen=True)
class Decision:
    """Terminal artifact of the pipeline. ``long_symbol``/``short_symbol`` are None on SKIP."""

    strategy: Strategy
    action: Action
    long_symbol: str | None
    short_symbol: str | None
    reasoning: str
    confidence_percent: int
    current_gap: Decimal
    mean_gap: Decimal
    std_dev_gap: Decimal
    expected_move_percent: Decimal
    risk_level: RiskLevel
    regime: Regime

    @property
    def is_actionable(self) -> bool:
        return self.action == Action.PAIRS_TRADE

    def to_dict(self) -> dict:
        """Serialize to JSON-safe dict with Decimal values as 2dp strings."""
        return {
            "strategy": self.strategy.value,
            "action": self.action.value,
            "long_symbol": self.long_symbol,
            "short_symbol": self.short_symbol,
            "reasoning": self.reasoning,
            "confidence_percent": self.confidence_percent,
            "current_gap": f"{self.current_gap:.2f}",
            "mean_gap": f"{self.mean_gap:.2f}",
            "std_dev_gap": f"{self.std_dev_gap:.2f}",
            "expected_move_percent": f"{self.expected_move_percent:.2f}",
            "risk_level": self.risk_level.value,
            "regime": self.regime.value,
        }
