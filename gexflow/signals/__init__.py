"""Trading guidance derived from aggregated levels."""

from .recommendations import BandSignal, RecommendationBand, band_for_price, generate_recommendation_bands
from .scenarios import Direction, SwingScenario, generate_swing_scenarios

__all__ = [
    "BandSignal",
    "RecommendationBand",
    "band_for_price",
    "generate_recommendation_bands",
    "Direction",
    "SwingScenario",
    "generate_swing_scenarios",
]
