"""Descriptive statistics shared by the decision engine and gap technicals.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

_ZERO = Decimal("0")


def population_stats(values: Sequence[Decimal]) -> tuple[Decimal, Decimal]:
    """Return (mean, population std dev) of a non-empty sequence.

    Population (N denominator), not sample, standard deviation.
    """
    n = Decimal(len(values))
    mean = sum(values, _ZERO) / n
    variance = sum(((v - mean) ** 2 for v in values), _ZERO) / n
    return mean, variance.sqrt()


def simple_moving_average(values: Sequence[Decimal], period: int) -> Decimal:
    """Mean of the last ``period`` values (all values if fewer)."""
    window = values[-period:]
    return sum(window, _ZERO) / Decimal(len(window))
