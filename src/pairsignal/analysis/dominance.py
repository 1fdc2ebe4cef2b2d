"""Historical dominance statistics between the two legs.

Slides a fixed lookback across the normalized series and, for every point
where the reference moved decisively, records which leg did better:

- reference down more than the dead zone: a down sample; the reference wins
  when it fell less than the comparison.
- reference up more than the dead zone: an up sample; the comparison wins
  when it gained more than the reference.

Consecutive samples share most of their lookback window (the step defaults
to 1). ``dominance_step`` widens the spacing when non-overlapping samples
are wanted.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

from pairsignal.config import AnalysisSettings
from pairsignal.models import DominanceResult, NormalizedPoint, quantize_pct

_FIFTY = Decimal("50")
_HUNDRED = Decimal("100")


def _rate(wins: int, samples: int) -> Decimal:
    if samples == 0:
        return _FIFTY
    return quantize_pct(Decimal(wins) / Decimal(samples) * _HUNDRED)


def neutral_dominance(settings: AnalysisSettings | None = None) -> DominanceResult:
    """The prior used when there is not enough history to sample."""
    s = settings or AnalysisSettings()
    return DominanceResult(
        ref_dominance_rate=_FIFTY,
        cmp_outperform_rate=_FIFTY,
        down_sample_count=0,
        up_sample_count=0,
        confidence=s.dominance_prior_confidence,
        dominance_in_downtrend=True,
    )


def estimate_dominance(
    points: Sequence[NormalizedPoint],
    settings: AnalysisSettings | None = None,
) -> DominanceResult:
    """Estimate how often each leg outperforms in down and up periods.

    Confidence is a sample-size proxy, ``min(cap, samples * per_sample)``,
    not a significance test.

    Graceful degradation: returns the neutral prior (rates 50, confidence 50,
    dominance_in_downtrend True) below ``dominance_min_points`` points.

    Args:
        points: Normalized points ordered oldest-first.
        settings: Lookback, dead zone and confidence parameters. None = defaults.

    Returns:
        DominanceResult with rates in [0, 100] and confidence in [0, cap].
    """
    s = settings or AnalysisSettings()

    if len(points) < s.dominance_min_points:
        return neutral_dominance(s)

    lookback = s.dominance_lookback
    dead_zone = s.dominance_dead_zone
    down_samples = ref_wins_in_down = 0
    up_samples = cmp_wins_in_up = 0

    for i in range(lookback, len(points), s.dominance_step):
        ref_delta = points[i].ref_change_pct - points[i - lookback].ref_change_pct
        cmp_delta = points[i].cmp_change_pct - points[i - lookback].cmp_change_pct

        if ref_delta < -dead_zone:
            down_samples += 1
            if ref_delta > cmp_delta:
                ref_wins_in_down += 1
        elif ref_delta > dead_zone:
            up_samples += 1
            if cmp_delta > ref_delta:
                cmp_wins_in_up += 1

    ref_rate = _rate(ref_wins_in_down, down_samples)
    confidence = min(
        s.dominance_confidence_cap,
        (down_samples + up_samples) * s.dominance_confidence_per_sample,
    )

    return DominanceResult(
        ref_dominance_rate=ref_rate,
        cmp_outperform_rate=_rate(cmp_wins_in_up, up_samples),
        down_sample_count=down_samples,
        up_sample_count=up_samples,
        confidence=confidence,
        dominance_in_downtrend=ref_rate > _FIFTY,
    )
