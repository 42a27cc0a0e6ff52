"""Multi-expiration aggregation and the analysis pipeline."""

from .levels import AggregateLevels, aggregate_levels, expiration_weight, weighted_level
from .pipeline import AnalysisResult, Diagnostics, GammaRegime, analyze_chain, select_expirations

__all__ = [
    "AggregateLevels",
    "aggregate_levels",
    "expiration_weight",
    "weighted_level",
    "AnalysisResult",
    "Diagnostics",
    "GammaRegime",
    "analyze_chain",
    "select_expirations",
]
