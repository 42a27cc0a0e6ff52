"""Net-exposure sentiment and directional probability estimates."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence, Tuple
import math

from gexflow.analysis.contracts import ProcessedContract
from gexflow.config import (
    ENERGY_EPSILON,
    PROBABILITY_DIRECTION_CAP,
    PROBABILITY_MIN_NEUTRAL,
)


@dataclass(frozen=True)
class PriceProbability:
    """Up / down / neutral percentages; always sums to 100."""

    up: int
    down: int
    neutral: int

    def swapped(self) -> "PriceProbability":
        """Up and down exchanged (inverse instruments)."""
        return PriceProbability(up=self.down, down=self.up, neutral=self.neutral)

    def to_dict(self) -> Dict[str, int]:
        return {"up": self.up, "down": self.down, "neutral": self.neutral}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def sentiment_score(call_exposure: float, put_exposure: float) -> float:
    """100 * net / gross exposure, in [-100, 100]; 0 with no exposure."""
    gross = abs(call_exposure) + abs(put_exposure)
    if gross <= 0:
        return 0.0
    return (call_exposure + put_exposure) / gross * 100


def exposure_energies(contracts: Sequence[ProcessedContract]) -> Tuple[float, float]:
    """(call energy, put energy): positive exposure total, |negative| exposure total."""
    call_energy = sum(max(0.0, c.exposure) for c in contracts)
    put_energy = sum(abs(min(0.0, c.exposure)) for c in contracts)
    return call_energy, put_energy


def split_probability(
    up_weight: float,
    down_weight: float,
    cap: float = PROBABILITY_DIRECTION_CAP,
) -> PriceProbability:
    """
    Convert two non-negative weights into an up/down/neutral split.

    Neutral takes at least 15 and grows as the weights converge; the rest is
    shared in proportion to the weights, each side capped. Whatever a cap
    removes goes back to neutral.
    """
    total = up_weight + down_weight
    raw_up = up_weight / total * 100
    raw_down = down_weight / total * 100

    neutral = max(PROBABILITY_MIN_NEUTRAL, 100 - abs(raw_up - raw_down) * 1.2 - 10)
    remaining = 100 - neutral
    ratio = raw_up / (raw_up + raw_down)

    up = min(cap, remaining * ratio)
    down = min(cap, remaining * (1 - ratio))

    up_pct = _round_half_up(up)
    down_pct = _round_half_up(down)
    return PriceProbability(up=up_pct, down=down_pct, neutral=100 - up_pct - down_pct)


def price_probabilities(
    contracts: Sequence[ProcessedContract],
    call_open_interest: float,
    put_open_interest: float,
    cap: float = PROBABILITY_DIRECTION_CAP,
) -> PriceProbability:
    """
    Directional probabilities from exposure energy.

    Falls back to the call/put open-interest ratio when total energy is
    negligible, and to an even 50/50 split when there is no OI either.
    """
    call_energy, put_energy = exposure_energies(contracts)
    if call_energy + put_energy > ENERGY_EPSILON:
        return split_probability(call_energy, put_energy, cap)

    if call_open_interest + put_open_interest > 0:
        return split_probability(max(call_open_interest, 0.0), max(put_open_interest, 0.0), cap)

    return PriceProbability(up=50, down=50, neutral=0)
