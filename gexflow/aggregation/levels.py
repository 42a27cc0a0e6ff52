"""Time-weighted combination of per-expiration levels."""
from __future__ import annotations

from dataclasses import dataclass
from functools import reduce
from typing import Dict, Optional, Sequence, Tuple
import math

from gexflow.analysis.expiration import ExpirationSnapshot

# Fields that can be folded across expirations
LEVEL_FIELDS = ("put_wall", "call_wall", "expected_lower", "expected_upper", "expected_price")

MIN_WEIGHT_TIME = 1 / 365


@dataclass(frozen=True)
class AggregateLevels:
    support: float
    resistance: float
    expected_lower: float
    expected_upper: float
    realistic_support: float
    realistic_resistance: float
    expirations: int

    def to_dict(self) -> Dict[str, float]:
        return {
            "support": self.support,
            "resistance": self.resistance,
            "expected_lower": self.expected_lower,
            "expected_upper": self.expected_upper,
            "realistic_support": self.realistic_support,
            "realistic_resistance": self.realistic_resistance,
            "expirations": self.expirations,
        }


def expiration_weight(time_to_expiration: float) -> float:
    """1/sqrt(T) with T floored at one day; nearer expirations weigh more."""
    return 1 / math.sqrt(max(time_to_expiration, MIN_WEIGHT_TIME))


def weighted_level(snapshots: Sequence[ExpirationSnapshot], field: str) -> Optional[float]:
    """
    Weighted mean of ``field`` across snapshots, or None for an empty sequence.

    Folds (sum of weighted values, sum of weights) over the snapshots in order.
    """
    if field not in LEVEL_FIELDS:
        raise ValueError(f"unsupported level field: {field}")
    if not snapshots:
        return None

    def step(acc: Tuple[float, float], snapshot: ExpirationSnapshot) -> Tuple[float, float]:
        weight = expiration_weight(snapshot.time_to_expiration)
        return acc[0] + getattr(snapshot, field) * weight, acc[1] + weight

    value_sum, weight_sum = reduce(step, snapshots, (0.0, 0.0))
    return value_sum / weight_sum


def aggregate_levels(snapshots: Sequence[ExpirationSnapshot]) -> Optional[AggregateLevels]:
    """
    Support/resistance covering the whole outlook horizon.

    Realistic support is the higher of the weighted put wall and the weighted
    expected-move floor; realistic resistance the lower of the weighted call
    wall and expected-move ceiling.
    """
    if not snapshots:
        return None

    support = weighted_level(snapshots, "put_wall")
    resistance = weighted_level(snapshots, "call_wall")
    expected_lower = weighted_level(snapshots, "expected_lower")
    expected_upper = weighted_level(snapshots, "expected_upper")

    return AggregateLevels(
        support=support,
        resistance=resistance,
        expected_lower=expected_lower,
        expected_upper=expected_upper,
        realistic_support=max(support, expected_lower),
        realistic_resistance=min(resistance, expected_upper),
        expirations=len(snapshots),
    )
