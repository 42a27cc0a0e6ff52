"""
Beta of one instrument against a benchmark.

Beta is Cov(r_ticker, r_benchmark) / Var(r_benchmark) over aligned daily
returns, computed with the two-pass mean/covariance formula. An ordinary
least-squares fit of the same pairs supplies alpha and R^2 as fit-quality
descriptors; the beta itself never comes from the regression.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, Mapping, Optional, Tuple, Union
import logging

import numpy as np
import pandas as pd
from sklearn.linear_model import LinearRegression

from gexflow.analysis.pricing import clamp, safe_float
from gexflow.config import (
    BETA_DEFAULT,
    BETA_LOOKBACK_MAX_MONTHS,
    BETA_LOOKBACK_MIN_MONTHS,
    BETA_LOOKBACK_MONTHS,
    BETA_MIN_OBSERVATIONS,
)

logger = logging.getLogger(__name__)

CloseSeries = Union[pd.Series, Mapping[Union[str, date], float]]


@dataclass(frozen=True)
class BetaEstimate:
    beta: float
    sample_size: int
    alpha: float = 0.0
    r_squared: float = 0.0
    lookback_months: Optional[int] = None

    @property
    def is_default(self) -> bool:
        return self.sample_size < BETA_MIN_OBSERVATIONS

    def to_dict(self) -> Dict[str, Union[float, int, None]]:
        return {
            "beta": self.beta,
            "sample_size": self.sample_size,
            "alpha": self.alpha,
            "r_squared": self.r_squared,
            "lookback_months": self.lookback_months,
        }


def _as_close_series(closes: CloseSeries) -> pd.Series:
    series = closes if isinstance(closes, pd.Series) else pd.Series(dict(closes), dtype=float)
    series = series.astype(float)
    index = pd.to_datetime(series.index)
    if index.tz is not None:
        index = index.tz_localize(None)
    series.index = index.normalize()
    series = series[~series.index.duplicated(keep="last")]
    return series.sort_index()


def clamp_lookback(months: int) -> int:
    return int(clamp(int(months), BETA_LOOKBACK_MIN_MONTHS, BETA_LOOKBACK_MAX_MONTHS))


def daily_returns(
    ticker_closes: CloseSeries,
    benchmark_closes: CloseSeries,
    lookback_months: int = BETA_LOOKBACK_MONTHS,
    as_of: Optional[date] = None,
) -> Tuple[pd.Series, pd.Series]:
    """
    Aligned simple daily returns for the ticker and benchmark.

    Closes are inner-joined on calendar date and trimmed to the lookback
    window ending at ``as_of`` (default: the last shared date) before
    differencing. The lookback is clamped to 1..24 months.
    """
    months = clamp_lookback(lookback_months)
    frame = pd.concat(
        {"ticker": _as_close_series(ticker_closes), "benchmark": _as_close_series(benchmark_closes)},
        axis=1,
        join="inner",
    ).dropna()

    if frame.empty:
        empty = pd.Series(dtype=float)
        return empty, empty.copy()

    end = pd.Timestamp(as_of) if as_of is not None else frame.index[-1]
    start = end - pd.DateOffset(months=months)
    frame = frame.loc[(frame.index >= start) & (frame.index <= end)]

    returns = frame.pct_change().replace([np.inf, -np.inf], np.nan).dropna()
    return returns["ticker"], returns["benchmark"]


def _fit_quality(x: np.ndarray, y: np.ndarray) -> Tuple[float, float]:
    model = LinearRegression()
    model.fit(x.reshape(-1, 1), y)
    r_squared = model.score(x.reshape(-1, 1), y)
    return safe_float(model.intercept_), safe_float(r_squared)


def estimate_beta(
    ticker_returns,
    benchmark_returns,
    lookback_months: Optional[int] = None,
) -> BetaEstimate:
    """
    Beta of ``ticker_returns`` against ``benchmark_returns``.

    The two sequences must already be paired date by date (see
    daily_returns); differing lengths raise ValueError. Pairs where either
    value is non-finite are dropped. Fewer than ten remaining pairs, or a
    benchmark with zero variance, yields beta 1.0.
    """
    x = np.asarray(benchmark_returns, dtype=float)
    y = np.asarray(ticker_returns, dtype=float)
    if x.shape != y.shape:
        raise ValueError(
            f"ticker and benchmark returns are not aligned: {y.shape} vs {x.shape}"
        )

    mask = np.isfinite(x) & np.isfinite(y)
    x, y = x[mask], y[mask]
    n = int(x.size)

    if n < BETA_MIN_OBSERVATIONS:
        logger.debug("Only %d aligned returns; using default beta", n)
        return BetaEstimate(beta=BETA_DEFAULT, sample_size=n, lookback_months=lookback_months)

    dx = x - x.mean()
    dy = y - y.mean()
    covariance = float(np.sum(dy * dx)) / (n - 1)
    variance = float(np.sum(dx * dx)) / (n - 1)

    if variance == 0:
        logger.debug("Benchmark returns have zero variance; using default beta")
        return BetaEstimate(
            beta=BETA_DEFAULT,
            sample_size=n,
            alpha=safe_float(y.mean()),
            lookback_months=lookback_months,
        )

    alpha, r_squared = _fit_quality(x, y)
    return BetaEstimate(
        beta=safe_float(covariance / variance, BETA_DEFAULT),
        sample_size=n,
        alpha=alpha,
        r_squared=r_squared,
        lookback_months=lookback_months,
    )


def beta_from_closes(
    ticker_closes: CloseSeries,
    benchmark_closes: CloseSeries,
    lookback_months: int = BETA_LOOKBACK_MONTHS,
    as_of: Optional[date] = None,
) -> BetaEstimate:
    """daily_returns followed by estimate_beta."""
    months = clamp_lookback(lookback_months)
    ticker_returns, benchmark_returns = daily_returns(ticker_closes, benchmark_closes, months, as_of)
    return estimate_beta(ticker_returns.to_numpy(), benchmark_returns.to_numpy(), lookback_months=months)


def project_price(
    current_price: float,
    beta: float,
    benchmark_target: float,
    benchmark_current: float,
) -> float:
    """current * (1 + beta * (benchmark_target / benchmark_current - 1))."""
    if benchmark_current <= 0:
        return current_price
    return current_price * (1 + beta * (benchmark_target / benchmark_current - 1))
