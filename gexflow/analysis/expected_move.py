"""Implied-volatility expected move and gamma-adjusted expected price."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence
import math

from gexflow.analysis.contracts import ProcessedContract
from gexflow.analysis.pricing import clamp
from gexflow.config import (
    ATM_MONEYNESS,
    EXPECTED_MOVE_FRACTION,
    FALLBACK_IV,
    GAMMA_BIAS_WEIGHT,
    MAX_COMBINED_BIAS,
    SENTIMENT_BIAS_WEIGHT,
)


@dataclass(frozen=True)
class ExpectedMove:
    lower: float
    upper: float
    move: float
    avg_iv: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "expected_lower": self.lower,
            "expected_upper": self.upper,
            "move": self.move,
            "avg_iv": self.avg_iv,
        }


def near_the_money_iv(
    contracts: Sequence[ProcessedContract],
    spot: float,
    moneyness: float = ATM_MONEYNESS,
    fallback_iv: float = FALLBACK_IV,
) -> float:
    """Mean IV of contracts with |strike - spot| / spot < moneyness."""
    ivs = [c.implied_volatility for c in contracts if abs(c.strike - spot) / spot < moneyness]
    if not ivs:
        return fallback_iv
    return sum(ivs) / len(ivs)


def expected_move(
    contracts: Sequence[ProcessedContract],
    spot: float,
    time_to_expiration: float,
    k: float = EXPECTED_MOVE_FRACTION,
    moneyness: float = ATM_MONEYNESS,
    fallback_iv: float = FALLBACK_IV,
) -> ExpectedMove:
    """
    Expected move band around spot.

    move = spot * avg_iv * sqrt(max(T, 1/365)) * k. ``k`` is 0.4 for the
    standard one-period band and 0.25 for the tighter high-confidence one.
    """
    avg_iv = near_the_money_iv(contracts, spot, moneyness, fallback_iv)
    move = spot * avg_iv * math.sqrt(max(time_to_expiration, 1 / 365)) * k
    return ExpectedMove(lower=spot - move, upper=spot + move, move=move, avg_iv=avg_iv)


def gamma_adjusted_expected_price(
    range_mid: float,
    range_half: float,
    sentiment: float,
    gamma_flip: float,
    total_exposure: float,
) -> float:
    """
    Tilt the middle of the realistic range by sentiment and gamma-flip position.

    Sentiment contributes up to +/-0.3 of the half range; the flip's offset
    from the middle (clamped to +/-1 half range) contributes up to +/-0.2,
    pointing toward the flip in positive gamma and away from it in negative
    gamma. The combined tilt is capped at +/-0.35.
    """
    if not math.isfinite(range_half) or range_half <= 0:
        return range_mid

    sentiment_bias = sentiment / 100 * SENTIMENT_BIAS_WEIGHT
    if math.isfinite(gamma_flip):
        gamma_bias_raw = clamp((gamma_flip - range_mid) / range_half, -1, 1)
    else:
        gamma_bias_raw = 0.0
    gamma_sign = 1 if total_exposure >= 0 else -1
    gamma_bias = gamma_bias_raw * gamma_sign * GAMMA_BIAS_WEIGHT

    combined_bias = clamp(sentiment_bias + gamma_bias, -MAX_COMBINED_BIAS, MAX_COMBINED_BIAS)
    return range_mid + range_half * combined_bias
