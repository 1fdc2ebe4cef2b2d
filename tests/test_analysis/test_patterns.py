"""Tests for spread pattern detection.

Technicals are built by hand so each detector can be triggered in isolation.
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from pairsignal.analysis.indicators import GapTechnicals, LinearTrend, SupportResistance
from pairsignal.analysis.patterns import (
    Pattern,
    PatternDirection,
    PatternKind,
    count_consecutive_moves,
    detect_patterns,
)
from pairsignal.models import NormalizedPoint

_FLAT = LinearTrend(slope=Decimal("0"), intercept=Decimal("0"))


def _technicals(**overrides) -> GapTechnicals:
    """Quiet technicals: no detector fires against an all-zero spread."""
    base = GapTechnicals(
        ma_short=Decimal("0"),
        ma_long=Decimal("0"),
        rsi=Decimal("50"),
        mean=Decimal("0"),
        std_dev=Decimal("1"),
        upper_band=Decimal("2"),
        lower_band=Decimal("-2"),
        levels=SupportResistance(
            support1=Decimal("-10"),
            support2=Decimal("-11"),
            resistance1=Decimal("10"),
            resistance2=Decimal("11"),
        ),
        short_trend=_FLAT,
        medium_trend=_FLAT,
        long_trend=_FLAT,
    )
    return replace(base, **overrides)


def _points(spreads: list) -> list[NormalizedPoint]:
    return [
        NormalizedPoint(
            timestamp_ms=i,
            label=str(i),
            ref_change_pct=Decimal("0"),
            cmp_change_pct=Decimal(str(s)),
            spread=Decimal(str(s)),
        )
        for i, s in enumerate(spreads)
    ]


def _find(patterns: list[Pattern], kind: PatternKind) -> Pattern | None:
    return next((p for p in patterns if p.kind == kind), None)


def _trend(slope: str) -> LinearTrend:
    return LinearTrend(slope=Decimal(slope), intercept=Decimal("0"))


class TestGuards:
    """Inputs that produce no patterns at all."""

    def test_quiet_spread_has_no_patterns(self) -> None:
        assert detect_patterns(_points([0] * 12), _technicals()) == []

    def test_fewer_than_ten_points(self) -> None:
        assert detect_patterns(_points([0] * 9), _technicals(rsi=Decimal("95"))) == []

    def test_missing_technicals(self) -> None:
        assert detect_patterns(_points([0] * 30), None) == []


class TestTrendPattern:
    """Average of short and medium slope magnitudes."""

    def test_rising_spread(self) -> None:
        tech = _technicals(short_trend=_trend("0.3"), medium_trend=_trend("0.1"))
        pattern = _find(detect_patterns(_points([0] * 12), tech), PatternKind.SPREAD_UPTREND)

        assert pattern is not None
        assert pattern.direction == PatternDirection.LONG
        assert pattern.strength == Decimal("40")

    def test_falling_spread_caps_at_100(self) -> None:
        tech = _technicals(short_trend=_trend("-0.9"), medium_trend=_trend("-0.5"))
        pattern = _find(detect_patterns(_points([0] * 12), tech), PatternKind.SPREAD_DOWNTREND)

        assert pattern.direction == PatternDirection.SHORT
        assert pattern.strength == Decimal("100")

    def test_threshold_is_strict(self) -> None:
        tech = _technicals(short_trend=_trend("0.1"), medium_trend=_trend("0.1"))
        assert detect_patterns(_points([0] * 12), tech) == []


class TestBandPatterns:
    """Bollinger, RSI and support/resistance."""

    def test_above_upper_band(self) -> None:
        pattern = _find(
            detect_patterns(_points([1, -1] * 5 + [3]), _technicals()),
            PatternKind.BOLLINGER_UPPER,
        )
        assert pattern.direction == PatternDirection.SHORT
        # (3 - 2) / 1 * 40
        assert pattern.strength == Decimal("40")

    def test_below_lower_band(self) -> None:
        pattern = _find(
            detect_patterns(_points([1, -1] * 5 + [-4.5]), _technicals()),
            PatternKind.BOLLINGER_LOWER,
        )
        assert pattern.direction == PatternDirection.LONG
        assert pattern.strength == Decimal("100")

    def test_zero_std_skips_bollinger(self) -> None:
        tech = _technicals(std_dev=Decimal("0"), upper_band=Decimal("0"), lower_band=Decimal("0"))
        patterns = detect_patterns(_points([0] * 11 + [1]), tech)
        assert _find(patterns, PatternKind.BOLLINGER_UPPER) is None

    @pytest.mark.parametrize(
        ("rsi", "kind", "direction", "strength"),
        [
            ("85", PatternKind.RSI_OVERBOUGHT, PatternDirection.SHORT, "30"),
            ("20", PatternKind.RSI_OVERSOLD, PatternDirection.LONG, "20"),
        ],
    )
    def test_rsi_extremes(
        self, rsi: str, kind: PatternKind, direction: PatternDirection, strength: str
    ) -> None:
        patterns = detect_patterns(_points([0] * 12), _technicals(rsi=Decimal(rsi)))

        assert [p.kind for p in patterns] == [kind]
        assert patterns[0].direction == direction
        assert patterns[0].strength == Decimal(strength)

    @pytest.mark.parametrize("rsi", ["70", "30"])
    def test_rsi_bounds_are_strict(self, rsi: str) -> None:
        assert detect_patterns(_points([0] * 12), _technicals(rsi=Decimal(rsi))) == []

    def test_at_support(self) -> None:
        levels = SupportResistance(
            support1=Decimal("0.1"),
            support2=Decimal("-1"),
            resistance1=Decimal("10"),
            resistance2=Decimal("11"),
        )
        patterns = detect_patterns(_points([0] * 12), _technicals(levels=levels))

        assert [p.kind for p in patterns] == [PatternKind.AT_SUPPORT]
        assert patterns[0].direction == PatternDirection.LONG
        assert patterns[0].strength == Decimal("75")

    def test_at_resistance(self) -> None:
        levels = SupportResistance(
            support1=Decimal("-10"),
            support2=Decimal("-11"),
            resistance1=Decimal("-0.2"),
            resistance2=Decimal("1"),
        )
        patterns = detect_patterns(_points([0] * 12), _technicals(levels=levels))

        assert [p.kind for p in patterns] == [PatternKind.AT_RESISTANCE]
        assert patterns[0].direction == PatternDirection.SHORT


class TestCrossoverPattern:
    """MA crossover needs ma_long_period points of history."""

    def test_golden_cross(self) -> None:
        patterns = detect_patterns(_points([0] * 50), _technicals(ma_short=Decimal("1")))

        assert [p.kind for p in patterns] == [PatternKind.MA_GOLDEN_CROSS]
        assert patterns[0].strength == Decimal("80")
        assert patterns[0].direction == PatternDirection.LONG

    def test_death_cross(self) -> None:
        patterns = detect_patterns(_points([0] * 50), _technicals(ma_short=Decimal("-1")))
        assert [p.kind for p in patterns] == [PatternKind.MA_DEATH_CROSS]

    def test_no_cross_when_already_above(self) -> None:
        """Short MA above long, but the spread 20 bars ago was already above 50 bars ago."""
        spreads = [0] * 30 + [1] * 20
        patterns = detect_patterns(_points(spreads), _technicals(ma_short=Decimal("1")))
        assert _find(patterns, PatternKind.MA_GOLDEN_CROSS) is None

    def test_needs_fifty_points(self) -> None:
        patterns = detect_patterns(_points([0] * 49), _technicals(ma_short=Decimal("1")))
        assert patterns == []


class TestMomentumPattern:
    """Consecutive same-direction spread moves."""

    @pytest.mark.parametrize(
        ("values", "expected"),
        [
            ([1, 2, 3], 1),
            ([3, 2, 1, 0], 2),
            ([0, 1, 2, 3, 4], 3),
            ([1, 2, 2, 3], 0),
            ([1, 2, 1, 2], 0),
            ([5], 0),
        ],
    )
    def test_count_consecutive_moves(self, values: list, expected: int) -> None:
        assert count_consecutive_moves([Decimal(v) for v in values]) == expected

    def test_rising_run(self) -> None:
        spreads = [1, -1] * 3 + [0, 1, 2, 3, 4]
        patterns = detect_patterns(_points(spreads), _technicals())
        pattern = _find(patterns, PatternKind.MOMENTUM)

        assert pattern.direction == PatternDirection.LONG
        assert pattern.strength == Decimal("75")

    def test_single_continuation_is_ignored(self) -> None:
        patterns = detect_patterns(_points([0] * 9 + [1, 2]), _technicals())
        assert _find(patterns, PatternKind.MOMENTUM) is None


class TestVolatilityPattern:
    """Recent mean |spread| against the earlier history."""

    def test_breakout_from_flat_history(self) -> None:
        patterns = detect_patterns(_points([0] * 5 + [1, -1, 1, -1, 1]), _technicals())
        pattern = _find(patterns, PatternKind.VOLATILITY_BREAKOUT)

        assert pattern.strength == Decimal("100")
        assert pattern.direction == PatternDirection.SHORT

    def test_breakout_ratio_strength(self) -> None:
        """History |1|, recent |2|: ratio 2 -> strength 80; rising short trend -> LONG."""
        spreads = [1, -1] * 5 + [2, -2, 2, -2, 2]
        tech = _technicals(
            std_dev=Decimal("10"),
            upper_band=Decimal("20"),
            lower_band=Decimal("-20"),
            short_trend=_trend("0.05"),
        )
        pattern = _find(detect_patterns(_points(spreads), tech), PatternKind.VOLATILITY_BREAKOUT)

        assert pattern.strength == Decimal("80")
        assert pattern.direction == PatternDirection.LONG
        assert "100%" in pattern.description

    def test_ratio_at_threshold_is_not_breakout(self) -> None:
        spreads = [1, -1] * 5 + [1.5, -1.5, 1.5, -1.5, 1.5]
        tech = _technicals(std_dev=Decimal("10"), upper_band=Decimal("20"), lower_band=Decimal("-20"))
        assert _find(detect_patterns(_points(spreads), tech), PatternKind.VOLATILITY_BREAKOUT) is None


class TestPatternRendering:
    def test_to_dict(self) -> None:
        pattern = Pattern(
            kind=PatternKind.MOMENTUM,
            strength=Decimal("75"),
            direction=PatternDirection.LONG,
            description="3 consecutive spread moves in the same direction",
        )
        assert pattern.to_dict() == {
            "kind": "MOMENTUM",
            "strength": "75.0",
            "direction": "LONG",
            "description": "3 consecutive spread moves in the same direction",
        }
