"""Entry/exit swing scenarios scored across the expiration curve."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from itertools import combinations
from typing import Any, Dict, List, Sequence
import math

from gexflow.analysis.expiration import ExpirationSnapshot
from gexflow.analysis.pricing import clamp
from gexflow.config import (
    SCENARIO_BASE_PROBABILITY,
    SCENARIO_DURATION_PENALTY,
    SCENARIO_EXPOSURE_STEP,
    SCENARIO_HIGH_CONVICTION,
    SCENARIO_MAX_SNAPSHOTS,
    SCENARIO_PROBABILITY_MAX,
    SCENARIO_PROBABILITY_MIN,
    SCENARIO_SENTIMENT_WEIGHT,
    SCENARIO_SKEW_WEIGHT,
    SCENARIO_TARGET_HAIRCUT,
    SCENARIO_TOP_N,
)


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"

    @classmethod
    def of(cls, change: float) -> "Direction":
        if change > 0:
            return cls.UP
        if change < 0:
            return cls.DOWN
        return cls.FLAT

    def inverted(self) -> "Direction":
        if self is Direction.UP:
            return Direction.DOWN
        if self is Direction.DOWN:
            return Direction.UP
        return self


@dataclass(frozen=True)
class SwingScenario:
    entry_label: str
    exit_label: str
    entry_level: float
    exit_level: float
    extension_level: float
    base_return: float
    extension_return: float
    success_probability: int
    duration: int
    direction: Direction = Direction.UP

    @property
    def high_conviction(self) -> bool:
        return self.success_probability >= SCENARIO_HIGH_CONVICTION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entry_label": self.entry_label,
            "exit_label": self.exit_label,
            "entry_level": self.entry_level,
            "exit_level": self.exit_level,
            "extension_level": self.extension_level,
            "base_return": self.base_return,
            "extension_return": self.extension_return,
            "success_probability": self.success_probability,
            "duration": self.duration,
            "direction": self.direction.value,
        }


def scenario_probability(
    entry: ExpirationSnapshot,
    exit_: ExpirationSnapshot,
    duration: int,
    cap: int = SCENARIO_PROBABILITY_MAX,
) -> int:
    """
    Success probability for holding from ``entry`` to ``exit_``.

    Rises with improving sentiment, growing total exposure and an upside skew
    at exit; each period held costs two points. Clamped to [35, cap].
    """
    sentiment_delta = exit_.sentiment - entry.sentiment
    exposure_step = SCENARIO_EXPOSURE_STEP if exit_.total_exposure > entry.total_exposure else -SCENARIO_EXPOSURE_STEP
    skew = exit_.price_probability.up - exit_.price_probability.down

    raw = (
        SCENARIO_BASE_PROBABILITY
        + SCENARIO_SENTIMENT_WEIGHT * sentiment_delta
        + exposure_step
        + SCENARIO_SKEW_WEIGHT * skew
        - SCENARIO_DURATION_PENALTY * duration
    )
    return int(math.floor(clamp(raw, SCENARIO_PROBABILITY_MIN, cap) + 0.5))


def _build_scenario(
    entry_index: int,
    entry: ExpirationSnapshot,
    exit_index: int,
    exit_: ExpirationSnapshot,
) -> SwingScenario:
    entry_level = max(entry.put_wall, entry.expected_lower)
    exit_level = min(exit_.call_wall, exit_.expected_upper)
    base_target = exit_level * SCENARIO_TARGET_HAIRCUT
    duration = exit_index - entry_index

    base_return = (base_target - entry_level) / entry_level * 100
    return SwingScenario(
        entry_label=entry.label,
        exit_label=exit_.label,
        entry_level=entry_level,
        exit_level=base_target,
        extension_level=exit_level,
        base_return=base_return,
        extension_return=(exit_level - entry_level) / entry_level * 100,
        success_probability=scenario_probability(entry, exit_, duration),
        duration=duration,
        direction=Direction.of(base_return),
    )


def generate_swing_scenarios(
    snapshots: Sequence[ExpirationSnapshot],
    max_snapshots: int = SCENARIO_MAX_SNAPSHOTS,
    top_n: int = SCENARIO_TOP_N,
) -> List[SwingScenario]:
    """
    Best entry/exit pairs over the nearest expirations.

    Every pair with entry earlier than exit among the first ``max_snapshots``
    snapshots is scored; pairs without a positive base return are dropped.
    High-conviction scenarios (probability >= 70) rank first, then by return.
    """
    candidates = []
    window = list(enumerate(snapshots[:max_snapshots]))
    for (entry_index, entry), (exit_index, exit_) in combinations(window, 2):
        if entry.put_wall <= 0 and entry.expected_lower <= 0:
            continue
        scenario = _build_scenario(entry_index, entry, exit_index, exit_)
        if scenario.base_return > 0:
            candidates.append(scenario)

    candidates.sort(key=lambda s: (not s.high_conviction, -s.base_return))
    return candidates[:top_n]
