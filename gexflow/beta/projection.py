"""Beta-adjusted levels for an instrument correlated with the analyzed one."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple

from gexflow.aggregation.levels import AggregateLevels
from gexflow.analysis.expiration import ExpirationSnapshot
from gexflow.analysis.sentiment import PriceProbability
from gexflow.beta.estimator import project_price
from gexflow.signals.scenarios import Direction


class Polarity(str, Enum):
    DIRECT = "direct"
    INVERSE = "inverse"

    @classmethod
    def of(cls, beta: float) -> "Polarity":
        return cls.INVERSE if beta < 0 else cls.DIRECT


class LevelRole(str, Enum):
    SUPPORT = "support"
    RESISTANCE = "resistance"

    def under(self, polarity: Polarity) -> "LevelRole":
        """Role this level plays for an instrument of the given polarity."""
        if polarity is Polarity.DIRECT:
            return self
        return LevelRole.RESISTANCE if self is LevelRole.SUPPORT else LevelRole.SUPPORT


@dataclass(frozen=True)
class ProjectedLevel:
    benchmark_level: float
    level: float
    role: LevelRole

    def to_dict(self) -> Dict[str, Any]:
        return {
            "benchmark_level": self.benchmark_level,
            "level": self.level,
            "role": self.role.value,
        }


@dataclass(frozen=True)
class ProjectedSnapshot:
    expiration: date
    label: str
    support: float
    resistance: float
    expected_lower: float
    expected_upper: float
    expected_price: float
    sentiment: float
    price_probability: PriceProbability
    direction: Direction

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expiration": self.expiration.isoformat(),
            "label": self.label,
            "support": self.support,
            "resistance": self.resistance,
            "expected_lower": self.expected_lower,
            "expected_upper": self.expected_upper,
            "expected_price": self.expected_price,
            "sentiment": self.sentiment,
            "price_probability": self.price_probability.to_dict(),
            "direction": self.direction.value,
        }


@dataclass(frozen=True)
class BetaProjection:
    current_price: float
    beta: float
    polarity: Polarity
    support: ProjectedLevel
    resistance: ProjectedLevel
    expected_lower: float
    expected_upper: float
    expected_price: Optional[float]
    direction: Direction
    series: Tuple[ProjectedSnapshot, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_price": self.current_price,
            "beta": self.beta,
            "polarity": self.polarity.value,
            "support": self.support.to_dict(),
            "resistance": self.resistance.to_dict(),
            "expected_lower": self.expected_lower,
            "expected_upper": self.expected_upper,
            "expected_price": self.expected_price,
            "direction": self.direction.value,
            "series": [s.to_dict() for s in self.series],
        }


def _project_pair(
    low: float,
    high: float,
    current_price: float,
    beta: float,
    benchmark_current: float,
) -> Tuple[float, float]:
    a = project_price(current_price, beta, low, benchmark_current)
    b = project_price(current_price, beta, high, benchmark_current)
    return min(a, b), max(a, b)


def project_snapshot(
    snapshot: ExpirationSnapshot,
    current_price: float,
    beta: float,
    benchmark_current: float,
) -> ProjectedSnapshot:
    """
    One benchmark expiration mapped onto the correlated instrument.

    For an inverse instrument the benchmark's call wall becomes support, the
    sentiment sign flips and up/down probabilities swap.
    """
    polarity = Polarity.of(beta)
    support, resistance = _project_pair(
        snapshot.put_wall, snapshot.call_wall, current_price, beta, benchmark_current
    )
    lower, upper = _project_pair(
        snapshot.expected_lower, snapshot.expected_upper, current_price, beta, benchmark_current
    )
    expected_price = project_price(current_price, beta, snapshot.expected_price, benchmark_current)

    probability = snapshot.price_probability
    sentiment = snapshot.sentiment
    if polarity is Polarity.INVERSE:
        probability = probability.swapped()
        sentiment = -sentiment

    return ProjectedSnapshot(
        expiration=snapshot.expiration,
        label=snapshot.label,
        support=support,
        resistance=resistance,
        expected_lower=lower,
        expected_upper=upper,
        expected_price=expected_price,
        sentiment=sentiment,
        price_probability=probability,
        direction=Direction.of(expected_price - current_price),
    )


def project_levels(
    current_price: float,
    beta: float,
    benchmark_current: float,
    levels: AggregateLevels,
    snapshots: Sequence[ExpirationSnapshot] = (),
    benchmark_expected_price: Optional[float] = None,
) -> BetaProjection:
    """
    Beta-adjusted support, resistance and expected band.

    Each benchmark level is pushed through project_price. With a negative
    beta the benchmark's realistic support lands above the current price, so
    its role becomes resistance (and vice versa).
    """
    polarity = Polarity.of(beta)

    levels_by_role = {}
    for benchmark_level, source_role in (
        (levels.realistic_support, LevelRole.SUPPORT),
        (levels.realistic_resistance, LevelRole.RESISTANCE),
    ):
        role = source_role.under(polarity)
        levels_by_role[role] = ProjectedLevel(
            benchmark_level=benchmark_level,
            level=project_price(current_price, beta, benchmark_level, benchmark_current),
            role=role,
        )

    expected_lower, expected_upper = _project_pair(
        levels.expected_lower, levels.expected_upper, current_price, beta, benchmark_current
    )

    expected_price = None
    direction = Direction.FLAT
    if benchmark_expected_price is not None:
        expected_price = project_price(current_price, beta, benchmark_expected_price, benchmark_current)
        direction = Direction.of(expected_price - current_price)

    return BetaProjection(
        current_price=current_price,
        beta=beta,
        polarity=polarity,
        support=levels_by_role[LevelRole.SUPPORT],
        resistance=levels_by_role[LevelRole.RESISTANCE],
        expected_lower=expected_lower,
        expected_upper=expected_upper,
        expected_price=expected_price,
        direction=direction,
        series=tuple(
            project_snapshot(s, current_price, beta, benchmark_current) for s in snapshots
        ),
    )
