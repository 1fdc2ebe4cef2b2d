"""Series normalization: raw bar pairs to anchored percent-change points.

Aligns the reference and comparison sequences by index (truncating to the
shorter one; no timestamp reconciliation), expresses every close as a percent
change from the first aligned bar, and records the running spread
``cmp_change_pct - ref_change_pct``.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from pairsignal.exceptions import EmptySeriesError, MalformedInputError
from pairsignal.logging import get_logger
from pairsignal.models import Bar, NormalizedPoint, PairSymbols, PriceSnapshot, quantize_pct

logger = get_logger(__name__)

_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class NormalizedSeries:
    """Aligned percent-change points plus the live snapshot of each leg."""

    points: tuple[NormalizedPoint, ...]
    reference: PriceSnapshot
    comparison: PriceSnapshot

    @property
    def spreads(self) -> list[Decimal]:
        return [p.spread for p in self.points]


def to_price(value: object, what: str) -> Decimal:
    """Coerce a price to a finite Decimal.

    Floats are converted through ``str`` so 0.1 stays 0.1.

    Raises:
        MalformedInputError: if the value is not numeric or not finite.
    """
    if isinstance(value, Decimal):
        price = value
    elif isinstance(value, (int, float, str)) and not isinstance(value, bool):
        try:
            price = Decimal(str(value))
        except InvalidOperation as e:
            raise MalformedInputError(f"{what} is not numeric: {value!r}") from e
    else:
        raise MalformedInputError(f"{what} is not numeric: {value!r}")
    if not price.is_finite():
        raise MalformedInputError(f"{what} is not finite: {value!r}")
    return price


def percent_change(price: Decimal, anchor: Decimal) -> Decimal:
    """Percent change of ``price`` from ``anchor``, rounded to 2 decimals."""
    return quantize_pct((price - anchor) / anchor * _HUNDRED)


def _anchor(bars: Sequence[Bar], side: str) -> Decimal:
    anchor = to_price(bars[0].close, f"{side} anchor close")
    if anchor <= 0:
        raise MalformedInputError(f"{side} anchor close must be positive, got {anchor}")
    return anchor


def _label(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).isoformat()


def normalize_series(
    reference_bars: Sequence[Bar],
    comparison_bars: Sequence[Bar],
    reference_price: Decimal | None = None,
    comparison_price: Decimal | None = None,
    symbols: PairSymbols | None = None,
) -> NormalizedSeries:
    """Convert two bar sequences into anchored percent-change points.

    For each aligned index i, the change of a leg is
    ``(close[i] - close[0]) / close[0] * 100`` rounded to 2 decimals, so the
    first point is always (0, 0, 0). Snapshot totals use the same formula
    against the first bar, with the live price when supplied or the last
    aligned close otherwise.

    Args:
        reference_bars: Reference asset bars, oldest first.
        comparison_bars: Comparison asset bars, oldest first.
        reference_price: Current reference price. None = last aligned close.
        comparison_price: Current comparison price. None = last aligned close.
        symbols: Pair symbols used to label the snapshots.

    Returns:
        NormalizedSeries with at least one point.

    Raises:
        EmptySeriesError: if either sequence is empty.
        MalformedInputError: if an anchor close is zero, negative or non-numeric,
            or any other close or live price is non-numeric.
    """
    if not reference_bars or not comparison_bars:
        raise EmptySeriesError(
            f"Cannot normalize empty series (reference={len(reference_bars)}, "
            f"comparison={len(comparison_bars)})"
        )

    length = min(len(reference_bars), len(comparison_bars))
    if len(reference_bars) != len(comparison_bars):
        logger.debug(
            "series_length_mismatch",
            reference=len(reference_bars),
            comparison=len(comparison_bars),
            aligned=length,
        )

    ref_anchor = _anchor(reference_bars, "reference")
    cmp_anchor = _anchor(comparison_bars, "comparison")

    points: list[NormalizedPoint] = []
    for ref_bar, cmp_bar in zip(reference_bars[:length], comparison_bars[:length]):
        ref_change = percent_change(to_price(ref_bar.close, "reference close"), ref_anchor)
        cmp_change = percent_change(to_price(cmp_bar.close, "comparison close"), cmp_anchor)
        points.append(
            NormalizedPoint(
                timestamp_ms=ref_bar.timestamp_ms,
                label=_label(ref_bar.timestamp_ms),
                ref_change_pct=ref_change,
                cmp_change_pct=cmp_change,
                spread=cmp_change - ref_change,
            )
        )

    ref_current = (
        to_price(reference_price, "reference current price")
        if reference_price is not None
        else to_price(reference_bars[length - 1].close, "reference close")
    )
    cmp_current = (
        to_price(comparison_price, "comparison current price")
        if comparison_price is not None
        else to_price(comparison_bars[length - 1].close, "comparison close")
    )

    ref_symbol = symbols.reference if symbols else "reference"
    cmp_symbol = symbols.comparison if symbols else "comparison"

    return NormalizedSeries(
        points=tuple(points),
        reference=PriceSnapshot(
            symbol=ref_symbol,
            current_price=ref_current,
            total_change_pct=percent_change(ref_current, ref_anchor),
        ),
        comparison=PriceSnapshot(
            symbol=cmp_symbol,
            current_price=cmp_current,
            total_change_pct=percent_change(cmp_current, cmp_anchor),
        ),
    )
