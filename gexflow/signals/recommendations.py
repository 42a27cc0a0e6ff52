"""Six-band trading guidance derived from support and resistance."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Sequence, Union

MIN_WIDTH_RATIO = 0.02
NEUTRAL_HALF_WIDTH = 0.1
PANIC_RATIO = 0.97
TOP_BAND_SPAN = 20.0


class BandSignal(str, Enum):
    EXTREME_RISK = "extreme_risk"
    STRONG_BUY = "strong_buy"
    BUY = "buy"
    NEUTRAL = "neutral"
    SELL = "sell"
    STRONG_SELL = "strong_sell"


_BAND_TEXT: Dict[BandSignal, tuple] = {
    BandSignal.EXTREME_RISK: ("Extreme Risk", "Support breakdown: panic risk zone (avoid / wait for base)"),
    BandSignal.STRONG_BUY: ("Strong Buy", "Oversold near support: staged accumulation zone"),
    BandSignal.BUY: ("Buy", "Support to lower neutral: staged buy zone"),
    BandSignal.NEUTRAL: ("Neutral", "Mid range: wait / hold zone"),
    BandSignal.SELL: ("Sell", "Upper neutral to resistance: staged sell zone"),
    BandSignal.STRONG_SELL: ("Strong Sell", "Above resistance: overheating sell zone"),
}


@dataclass(frozen=True)
class RecommendationBand:
    """Half-open price interval [lower, upper) with its guidance."""

    signal: BandSignal
    lower: float
    upper: float

    @property
    def label(self) -> str:
        return _BAND_TEXT[self.signal][0]

    @property
    def description(self) -> str:
        return _BAND_TEXT[self.signal][1]

    def contains(self, price: float) -> bool:
        return self.lower <= price < self.upper

    def to_dict(self) -> Dict[str, Union[str, float]]:
        return {
            "signal": self.signal.value,
            "status": self.label,
            "description": self.description,
            "min": self.lower,
            "max": self.upper,
        }


def generate_recommendation_bands(
    support: float,
    resistance: float,
    current_price: float,
) -> List[RecommendationBand]:
    """
    Partition prices into six ordered, contiguous bands.

    Support and resistance may come in either order. A range narrower than 2%
    of the current price is widened symmetrically around its midpoint, then
    shifted up if that would take it below zero. The neutral band spans the
    middle 20% of the range and the panic level sits 3% under support.
    """
    low = min(support, resistance)
    high = max(support, resistance)

    min_width = current_price * MIN_WIDTH_RATIO
    if high - low < min_width:
        center = (low + high) / 2
        low = center - min_width / 2
        high = center + min_width / 2
        if low < 0:
            # prices are non-negative; slide the range up instead of crossing 0
            high -= low
            low = 0.0

    mid = (low + high) / 2
    span = high - low
    neutral_start = mid - span * NEUTRAL_HALF_WIDTH
    neutral_end = mid + span * NEUTRAL_HALF_WIDTH
    panic_level = low * PANIC_RATIO

    edges = [0.0, panic_level, low, neutral_start, neutral_end, high, high + TOP_BAND_SPAN]
    return [
        RecommendationBand(signal=signal, lower=lower, upper=upper)
        for signal, lower, upper in zip(BandSignal, edges[:-1], edges[1:])
    ]


def band_for_price(bands: Sequence[RecommendationBand], price: float) -> RecommendationBand:
    """Band containing ``price``; prices past the last edge map to the last band."""
    for band in bands:
        if band.contains(price):
            return band
    return bands[-1]
