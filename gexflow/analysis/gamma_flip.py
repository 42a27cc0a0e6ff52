"""Gamma flip: the spot price where net dealer exposure crosses zero."""
from __future__ import annotations

from typing import Optional, Sequence
import logging

import numpy as np

from gexflow.analysis.contracts import ProcessedContract
from gexflow.analysis.pricing import black_scholes_gamma, safe_float
from gexflow.config import (
    CONTRACT_MULTIPLIER,
    DIVIDEND_YIELD,
    GAMMA_FLIP_MAX_ITERATIONS,
    GAMMA_FLIP_SCAN_RANGE,
    GAMMA_FLIP_TOLERANCE,
    GREEK_SIGMA_FLOOR,
    RISK_FREE_RATE,
    TIME_EPSILON,
)

logger = logging.getLogger(__name__)


def net_exposure_at_spot(
    contracts: Sequence[ProcessedContract],
    spot: float,
    time_to_expiration: Optional[float] = None,
    *,
    rate: float = RISK_FREE_RATE,
    dividend_yield: float = DIVIDEND_YIELD,
    greek_sigma_floor: float = GREEK_SIGMA_FLOOR,
) -> float:
    """
    Total signed exposure if the underlying traded at ``spot``.

    Gamma is re-priced at the hypothetical spot for every contract. When
    ``time_to_expiration`` is None each contract keeps its own T, so a single
    call can span several expirations.
    """
    if not contracts:
        return 0.0

    strikes = np.array([c.strike for c in contracts], dtype=float)
    sigmas = np.array([max(c.implied_volatility, greek_sigma_floor) for c in contracts], dtype=float)
    open_interest = np.array([c.open_interest for c in contracts], dtype=float)
    signs = np.array([c.side.sign for c in contracts], dtype=float)
    if time_to_expiration is None:
        times = np.array([c.time_to_expiration for c in contracts], dtype=float)
    else:
        times = np.full(len(contracts), float(time_to_expiration))
    times = np.maximum(times, TIME_EPSILON)

    adjusted_spot = spot * np.exp(-dividend_yield * times)
    gamma = np.abs(black_scholes_gamma(adjusted_spot, strikes, times, rate, sigmas))

    with np.errstate(all="ignore"):
        exposure = signs * gamma * open_interest * CONTRACT_MULTIPLIER * spot * spot * 0.01
    exposure = np.where(np.isfinite(exposure), exposure, 0.0)

    return safe_float(np.sum(exposure))


def find_gamma_flip(
    contracts: Sequence[ProcessedContract],
    spot: float,
    time_to_expiration: Optional[float] = None,
    scan_range: float = GAMMA_FLIP_SCAN_RANGE,
    max_iterations: int = GAMMA_FLIP_MAX_ITERATIONS,
    tolerance: float = GAMMA_FLIP_TOLERANCE,
) -> float:
    """
    Locate the net-exposure zero crossing inside spot * (1 +/- scan_range).

    Bisection with an early exit once |exposure| < tolerance. When both window
    edges share a sign there is no crossing in range and the edge closer to
    zero is returned. An empty contract set returns ``spot`` unchanged.
    """
    if not contracts:
        return spot

    def exposure_at(price: float) -> float:
        return net_exposure_at_spot(contracts, price, time_to_expiration)

    low = spot * (1 - scan_range)
    high = spot * (1 + scan_range)
    exposure_low = exposure_at(low)
    exposure_high = exposure_at(high)

    if exposure_low * exposure_high > 0:
        logger.debug(
            "No gamma flip inside +/-%.0f%% of %.2f (edges %.1f / %.1f)",
            scan_range * 100, spot, exposure_low, exposure_high,
        )
        return low if abs(exposure_low) < abs(exposure_high) else high

    for _ in range(max_iterations):
        mid = (low + high) / 2
        exposure_mid = exposure_at(mid)

        if abs(exposure_mid) < tolerance:
            return mid

        # low only ever moves onto points sharing exposure_low's sign
        if exposure_low * exposure_mid <= 0:
            high = mid
        else:
            low = mid

    return (low + high) / 2
