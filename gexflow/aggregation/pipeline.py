"""
Request pipeline: option chains in, full market-structure analysis out.

Expirations are processed independently on a thread pool (fan-out) and the
snapshots are folded back together in expiration order (fan-in). Every step
is a pure function of its inputs; the per-expiration outcome log travels
with the result as a Diagnostics value.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
import logging

from gexflow.aggregation.levels import AggregateLevels, aggregate_levels, weighted_level
from gexflow.analysis.contracts import RawContract
from gexflow.analysis.expiration import (
    ExpirationDiagnostic,
    ExpirationSnapshot,
    ExpirationStatus,
    build_expiration_snapshot_safe,
)
from gexflow.analysis.gamma_flip import find_gamma_flip
from gexflow.config import (
    EXPIRATION_WINDOW_DAYS,
    MIN_EXPIRATIONS,
    PIPELINE_MAX_WORKERS,
    STRIKE_WINDOW,
    VOLATILITY_TRIGGER_RATIO,
)
from gexflow.signals.recommendations import (
    RecommendationBand,
    band_for_price,
    generate_recommendation_bands,
)
from gexflow.signals.scenarios import SwingScenario, generate_swing_scenarios

logger = logging.getLogger(__name__)

# (calls, puts) for one expiration
Chain = Tuple[Sequence[RawContract], Sequence[RawContract]]


class GammaRegime(str, Enum):
    POSITIVE = "positive_gamma"
    NEGATIVE = "negative_gamma"

    @classmethod
    def of(cls, total_exposure: float) -> "GammaRegime":
        return cls.POSITIVE if total_exposure >= 0 else cls.NEGATIVE


@dataclass(frozen=True)
class Diagnostics:
    current_price: float
    expirations_requested: int
    expirations_used: int
    details: Tuple[ExpirationDiagnostic, ...] = ()

    def count(self, status: ExpirationStatus) -> int:
        return sum(1 for d in self.details if d.status is status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_price": self.current_price,
            "expirations_requested": self.expirations_requested,
            "expirations_used": self.expirations_used,
            "details": [d.to_dict() for d in self.details],
        }


@dataclass(frozen=True)
class AnalysisResult:
    current_price: float
    snapshots: Tuple[ExpirationSnapshot, ...]
    levels: AggregateLevels
    expected_price: float
    gamma_flip: float
    volatility_trigger: float
    total_exposure: float
    regime: GammaRegime
    bands: Tuple[RecommendationBand, ...]
    current_band: RecommendationBand
    scenarios: Tuple[SwingScenario, ...]
    diagnostics: Diagnostics

    @property
    def nearest(self) -> ExpirationSnapshot:
        return self.snapshots[0]

    def to_dict(self, include_contracts: bool = False) -> Dict[str, Any]:
        return {
            "current_price": self.current_price,
            "time_series": [s.to_dict(include_contracts) for s in self.snapshots],
            "levels": self.levels.to_dict(),
            "expected_price": self.expected_price,
            "gamma_flip": self.gamma_flip,
            "volatility_trigger": self.volatility_trigger,
            "total_exposure": self.total_exposure,
            "regime": self.regime.value,
            "sentiment": self.nearest.sentiment,
            "price_probability": self.nearest.price_probability.to_dict(),
            "recommendations": [b.to_dict() for b in self.bands],
            "current_band": self.current_band.to_dict(),
            "swing_scenarios": [s.to_dict() for s in self.scenarios],
            "diagnostics": self.diagnostics.to_dict(),
        }


def select_expirations(
    expirations: Iterable[date],
    as_of: Union[date, datetime],
    window_days: int = EXPIRATION_WINDOW_DAYS,
    minimum: int = MIN_EXPIRATIONS,
) -> List[date]:
    """
    Expirations in [as_of, as_of + window_days] when at least ``minimum`` of
    them qualify; otherwise the first ``minimum`` expirations on or after
    ``as_of``. Dates already past are never selected.
    """
    start = as_of.date() if isinstance(as_of, datetime) else as_of
    end = start + timedelta(days=window_days)
    upcoming = sorted(e for e in set(expirations) if e >= start)

    in_window = [e for e in upcoming if e <= end]
    if len(in_window) >= minimum:
        return in_window
    return upcoming[:minimum]


def _process_all(
    expirations: Sequence[date],
    chains: Mapping[date, Chain],
    spot: float,
    as_of: Union[date, datetime],
    strike_window: float,
    max_workers: Optional[int],
) -> List[Tuple[Optional[ExpirationSnapshot], ExpirationDiagnostic]]:
    def run(expiration: date):
        calls, puts = chains[expiration]
        return build_expiration_snapshot_safe(expiration, calls, puts, spot, as_of, strike_window)

    workers = max_workers or PIPELINE_MAX_WORKERS
    if workers <= 1 or len(expirations) <= 1:
        return [run(e) for e in expirations]

    # map() yields in submission order
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(run, expirations))


def analyze_chain(
    current_price: float,
    chains: Mapping[date, Chain],
    as_of: Union[date, datetime],
    *,
    max_workers: Optional[int] = None,
    with_scenarios: bool = True,
    select: bool = True,
    strike_window: float = STRIKE_WINDOW,
) -> Optional[AnalysisResult]:
    """
    Analyze every selected expiration and combine the results.

    Returns None when no expiration yields a snapshot; the per-expiration
    diagnostics are logged in that case.
    """
    if current_price <= 0:
        raise ValueError(f"current_price must be positive, got {current_price}")

    expirations = select_expirations(chains.keys(), as_of) if select else sorted(chains.keys())
    outcomes = _process_all(expirations, chains, current_price, as_of, strike_window, max_workers)

    snapshots = tuple(snapshot for snapshot, _ in outcomes if snapshot is not None)
    diagnostics = Diagnostics(
        current_price=current_price,
        expirations_requested=len(expirations),
        expirations_used=len(snapshots),
        details=tuple(diagnostic for _, diagnostic in outcomes),
    )

    if not snapshots:
        logger.warning(
            "No usable expiration out of %d: %s",
            diagnostics.expirations_requested,
            ", ".join(f"{d.expiration}={d.status.value}" for d in diagnostics.details),
        )
        return None

    levels = aggregate_levels(snapshots)
    all_contracts = [c for s in snapshots for c in s.contracts]
    gamma_flip = find_gamma_flip(all_contracts, current_price)
    total_exposure = sum(s.total_exposure for s in snapshots)

    bands = tuple(
        generate_recommendation_bands(levels.realistic_support, levels.realistic_resistance, current_price)
    )
    scenarios = tuple(generate_swing_scenarios(snapshots)) if with_scenarios else ()

    logger.info(
        "Analyzed %d/%d expirations: support=%.2f resistance=%.2f flip=%.2f",
        diagnostics.expirations_used,
        diagnostics.expirations_requested,
        levels.realistic_support,
        levels.realistic_resistance,
        gamma_flip,
    )

    return AnalysisResult(
        current_price=current_price,
        snapshots=snapshots,
        levels=levels,
        expected_price=weighted_level(snapshots, "expected_price"),
        gamma_flip=gamma_flip,
        volatility_trigger=gamma_flip * VOLATILITY_TRIGGER_RATIO,
        total_exposure=total_exposure,
        regime=GammaRegime.of(total_exposure),
        bands=bands,
        current_band=band_for_price(bands, current_price),
        scenarios=scenarios,
        diagnostics=diagnostics,
    )
