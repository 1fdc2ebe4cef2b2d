"""Analysis pipeline for pairs-trading recommendations.

Provides the series normalizer, trend classifier, dominance estimator,
decision engine, gap technicals and pattern detector, plus the ``analyze``
and ``build_report`` entry points that chain them.
"""

from pairsignal.analysis.decision import classify_risk, compute_gap_stats, decide
from pairsignal.analysis.dominance import estimate_dominance, neutral_dominance
from pairsignal.analysis.indicators import GapTechnicals, compute_gap_technicals
from pairsignal.analysis.normalizer import NormalizedSeries, normalize_series
from pairsignal.analysis.patterns import Pattern, PatternKind, detect_patterns
from pairsignal.analysis.pipeline import AnalysisReport, analyze, build_report
from pairsignal.analysis.trend import TREND_RULES, classify_trend

__all__ = [
    "AnalysisReport",
    "GapTechnicals",
    "NormalizedSeries",
    "Pattern",
    "PatternKind",
    "TREND_RULES",
    "analyze",
    "build_report",
    "classify_risk",
    "classify_trend",
    "compute_gap_stats",
    "compute_gap_technicals",
    "decide",
    "detect_patterns",
    "estimate_dominance",
    "neutral_dominance",
    "normalize_series",
]
