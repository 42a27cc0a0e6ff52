"""Beta estimation and beta-adjusted projections."""

from .estimator import BetaEstimate, beta_from_closes, daily_returns, estimate_beta, project_price
from .projection import BetaProjection, LevelRole, Polarity, project_levels

__all__ = [
    "BetaEstimate",
    "beta_from_closes",
    "daily_returns",
    "estimate_beta",
    "project_price",
    "BetaProjection",
    "LevelRole",
    "Polarity",
    "project_levels",
]
