"""
GEXFLOW: Gamma Exposure Flow Analytics

Quantitative core for options market-structure signals. Raw option chains are
normalized into priced exposure records, folded into per-expiration snapshots
(walls, gamma flip, sentiment, directional probabilities, expected move) and
aggregated across expirations into recommendation bands, swing scenarios and
beta-adjusted projections for correlated instruments.
"""

__version__ = '0.1.0'

from gexflow.config import (
    RISK_FREE_RATE,
    DIVIDEND_YIELD,
    STRIKE_WINDOW,
    GAMMA_FLIP_SCAN_RANGE,
)

__all__ = [
    '__version__',
    'RISK_FREE_RATE',
    'DIVIDEND_YIELD',
    'STRIKE_WINDOW',
    'GAMMA_FLIP_SCAN_RANGE',
]
