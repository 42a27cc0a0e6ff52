"""Black-Scholes pricing, gamma and implied-volatility inversion."""
from __future__ import annotations

import logging
import math
from typing import Any

import numpy as np
from scipy.stats import norm

from gexflow.config import (
    IV_CLAMP_MAX,
    IV_CLAMP_MIN,
    IV_SOLVER_BUMP,
    IV_SOLVER_INITIAL,
    IV_SOLVER_MAX_ITERATIONS,
    IV_SOLVER_PRECISION,
)

logger = logging.getLogger(__name__)


def safe_float(value: Any, fallback: float = 0.0) -> float:
    """Return value as a finite float, or fallback for None/NaN/inf/garbage."""
    try:
        result = float(value)
    except (TypeError, ValueError):
        return fallback
    return result if math.isfinite(result) else fallback


def clamp(value: float, lower: float, upper: float) -> float:
    return min(upper, max(lower, value))


def _d1(spot, strike, t, rate, sigma):
    return (np.log(spot / strike) + (rate + 0.5 * sigma ** 2) * t) / (sigma * np.sqrt(t))


def black_scholes_price(
    spot: float,
    strike: float,
    t: float,
    rate: float,
    sigma: float,
    is_call: bool,
) -> float:
    """
    European option price under Black-Scholes.

    Args:
        spot: Underlying price (already dividend adjusted by the caller)
        strike: Strike price
        t: Time to expiry in years
        rate: Risk-free rate (0.043 for 4.3%)
        sigma: Volatility (0.20 for 20%)
        is_call: True for a call, False for a put

    Returns:
        Option price; intrinsic value when t or sigma is non-positive.
    """
    if t <= 0 or sigma <= 0:
        return max(0.0, spot - strike) if is_call else max(0.0, strike - spot)

    d1 = float(_d1(spot, strike, t, rate, sigma))
    d2 = d1 - sigma * math.sqrt(t)
    discount = math.exp(-rate * t)
    if is_call:
        return float(spot * norm.cdf(d1) - strike * discount * norm.cdf(d2))
    return float(strike * discount * norm.cdf(-d2) - spot * norm.cdf(-d1))


def black_scholes_gamma(spot, strike, t, rate, sigma):
    """
    Black-Scholes gamma, identical for calls and puts.

    Accepts scalars or numpy arrays (broadcast). Degenerate inputs
    (non-positive spot/strike/t/sigma, overflow) yield 0 rather than NaN.
    """
    spot_a = np.asarray(spot, dtype=float)
    strike_a = np.asarray(strike, dtype=float)
    t_a = np.asarray(t, dtype=float)
    sigma_a = np.asarray(sigma, dtype=float)

    with np.errstate(all="ignore"):
        d1 = _d1(spot_a, strike_a, t_a, rate, sigma_a)
        gamma = norm.pdf(d1) / (spot_a * sigma_a * np.sqrt(t_a))

    valid = (spot_a > 0) & (strike_a > 0) & (t_a > 0) & (sigma_a > 0) & np.isfinite(gamma)
    gamma = np.where(valid, gamma, 0.0)

    if gamma.ndim == 0:
        return float(gamma)
    return gamma


def implied_volatility(
    target_price: float,
    spot: float,
    strike: float,
    t: float,
    rate: float,
    is_call: bool,
) -> float:
    """
    Invert Black-Scholes for sigma with Newton-Raphson.

    Starts at 0.20 and uses a forward-difference vega (bump 0.001). Stops on
    |price error| < 0.0001, on a vanishing vega, or after the iteration cap.
    Steps landing at or below zero restart from 1e-4; steps above 5.0 are
    pinned to 5.0. Never raises.
    """
    sigma = IV_SOLVER_INITIAL

    for _ in range(IV_SOLVER_MAX_ITERATIONS):
        try:
            price = black_scholes_price(spot, strike, t, rate, sigma, is_call)
            diff = price - target_price
            if abs(diff) < IV_SOLVER_PRECISION:
                return sigma

            bumped = black_scholes_price(spot, strike, t, rate, sigma + IV_SOLVER_BUMP, is_call)
            vega = (bumped - price) / IV_SOLVER_BUMP
        except (ValueError, ZeroDivisionError, OverflowError) as exc:
            logger.debug("IV solve aborted for strike %s: %s", strike, exc)
            break

        if not math.isfinite(vega) or abs(vega) < 0.00001:
            break

        sigma = sigma - diff / vega
        if not math.isfinite(sigma):
            return IV_SOLVER_INITIAL
        if sigma <= 0:
            sigma = IV_CLAMP_MIN
        if sigma > IV_CLAMP_MAX:
            sigma = IV_CLAMP_MAX

    return sigma
