"""Per-expiration market-structure snapshot."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple, Union
import logging

import numpy as np
import pandas as pd

from gexflow.analysis.contracts import (
    ProcessedContract,
    RawContract,
    effective_open_interest,
    process_chain,
)
from gexflow.analysis.expected_move import expected_move, gamma_adjusted_expected_price
from gexflow.analysis.gamma_flip import find_gamma_flip
from gexflow.analysis.sentiment import PriceProbability, price_probabilities, sentiment_score
from gexflow.config import (
    CALL_WALL_FALLBACK,
    HIGH_CONFIDENCE_MOVE_FRACTION,
    MARKET_CLOSE_HOUR,
    MARKET_TIMEZONE,
    PUT_WALL_FALLBACK,
    STRIKE_WINDOW,
    VOLATILITY_TRIGGER_RATIO,
)

logger = logging.getLogger(__name__)

SECONDS_PER_YEAR = 365 * 24 * 60 * 60


class ExpirationStatus(str, Enum):
    SUCCESS = "success"
    NO_OPTION_DATA = "no_option_data"
    FILTERED_OUT = "filtered_out"
    EXPIRED = "expired"
    ERROR = "error"


@dataclass(frozen=True)
class ExpirationDiagnostic:
    expiration: date
    status: ExpirationStatus
    contracts_used: int = 0
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expiration": self.expiration.isoformat(),
            "status": self.status.value,
            "contracts_used": self.contracts_used,
            "message": self.message,
        }


@dataclass(frozen=True)
class ExpirationSnapshot:
    """Aggregated state of one expiration, recomputed in full per request."""

    expiration: date
    label: str
    time_to_expiration: float
    call_wall: float
    put_wall: float
    call_wall_oi: int
    put_wall_oi: int
    gamma_flip: float
    volatility_trigger: float
    call_exposure: float
    put_exposure: float
    total_exposure: float
    call_open_interest: int
    put_open_interest: int
    pcr_filtered: float
    pcr_all: float
    sentiment: float
    price_probability: PriceProbability
    expected_lower: float
    expected_upper: float
    expected_price: float
    avg_iv: float
    confident_lower: float = 0.0
    confident_upper: float = 0.0
    contracts: Tuple[ProcessedContract, ...] = ()

    def to_dict(self, include_contracts: bool = False) -> Dict[str, Any]:
        """Serialize to JSON-friendly dict."""
        data = {
            "expiration": self.expiration.isoformat(),
            "label": self.label,
            "time_to_expiration": self.time_to_expiration,
            "call_wall": self.call_wall,
            "put_wall": self.put_wall,
            "call_wall_oi": self.call_wall_oi,
            "put_wall_oi": self.put_wall_oi,
            "gamma_flip": self.gamma_flip,
            "volatility_trigger": self.volatility_trigger,
            "call_exposure": self.call_exposure,
            "put_exposure": self.put_exposure,
            "total_exposure": self.total_exposure,
            "pcr_filtered": self.pcr_filtered,
            "pcr_all": self.pcr_all,
            "sentiment": self.sentiment,
            "price_probability": self.price_probability.to_dict(),
            "expected_lower": self.expected_lower,
            "expected_upper": self.expected_upper,
            "expected_price": self.expected_price,
            "avg_iv": self.avg_iv,
            "confident_lower": self.confident_lower,
            "confident_upper": self.confident_upper,
        }
        if include_contracts:
            data["contracts"] = [c.to_dict() for c in self.contracts]
        return data


def market_close(day: date, tz: str = MARKET_TIMEZONE) -> pd.Timestamp:
    """16:00 exchange time on ``day``."""
    return pd.Timestamp(day.year, day.month, day.day, MARKET_CLOSE_HOUR).tz_localize(tz)


def _as_timestamp(as_of: Union[date, datetime], tz: str = MARKET_TIMEZONE) -> pd.Timestamp:
    if not isinstance(as_of, datetime):
        return market_close(as_of, tz)
    ts = pd.Timestamp(as_of)
    if ts.tzinfo is None:
        ts = ts.tz_localize(tz)
    return ts


def time_to_expiration(expiration: date, as_of: Union[date, datetime]) -> float:
    """
    Years from ``as_of`` to the expiration's 16:00 New York close.

    A bare date ``as_of`` is read as that day's close; naive datetimes are
    taken as exchange-local time.
    """
    delta = market_close(expiration) - _as_timestamp(as_of)
    return delta.total_seconds() / SECONDS_PER_YEAR


def _wall(contracts: Sequence[ProcessedContract]) -> Optional[ProcessedContract]:
    # max() keeps the first of equal open interests
    return max(contracts, key=lambda c: c.open_interest) if contracts else None


def _put_call_ratio(put_oi: float, call_oi: float) -> float:
    return put_oi / call_oi if call_oi > 0 else 0.0


def build_expiration_snapshot(
    expiration: date,
    calls: Sequence[RawContract],
    puts: Sequence[RawContract],
    spot: float,
    as_of: Union[date, datetime],
    strike_window: float = STRIKE_WINDOW,
) -> Optional[ExpirationSnapshot]:
    """
    Process one expiration's chain into an ExpirationSnapshot.

    Returns None when the expiration has already passed or no contract falls
    inside the strike window.
    """
    t = time_to_expiration(expiration, as_of)
    if t <= 0:
        return None

    processed_calls, processed_puts = process_chain(calls, puts, spot, t, strike_window)
    if not processed_calls and not processed_puts:
        return None
    contracts = processed_calls + processed_puts

    call_oi = sum(c.open_interest for c in processed_calls)
    put_oi = sum(p.open_interest for p in processed_puts)

    call_wall_contract = _wall([c for c in processed_calls if c.strike >= spot])
    put_wall_contract = _wall([p for p in processed_puts if p.strike <= spot])
    call_wall = call_wall_contract.strike if call_wall_contract else spot * CALL_WALL_FALLBACK
    put_wall = put_wall_contract.strike if put_wall_contract else spot * PUT_WALL_FALLBACK

    call_exposure = sum(c.exposure for c in processed_calls)
    put_exposure = sum(p.exposure for p in processed_puts)
    total_exposure = call_exposure + put_exposure

    sentiment = sentiment_score(call_exposure, put_exposure)
    gamma_flip = find_gamma_flip(contracts, spot, t)
    probability = price_probabilities(contracts, call_oi, put_oi)
    move = expected_move(contracts, spot, t)
    confident = expected_move(contracts, spot, t, k=HIGH_CONFIDENCE_MOVE_FRACTION)

    realistic_support = max(put_wall, move.lower)
    realistic_resistance = min(call_wall, move.upper)
    expected_price = gamma_adjusted_expected_price(
        range_mid=(realistic_support + realistic_resistance) / 2,
        range_half=(realistic_resistance - realistic_support) / 2,
        sentiment=sentiment,
        gamma_flip=gamma_flip,
        total_exposure=total_exposure,
    )

    pcr_all = _put_call_ratio(
        sum(effective_open_interest(p.open_interest, p.volume) for p in puts),
        sum(effective_open_interest(c.open_interest, c.volume) for c in calls),
    )

    return ExpirationSnapshot(
        expiration=expiration,
        label=expiration.strftime("%m/%d"),
        time_to_expiration=t,
        call_wall=call_wall,
        put_wall=put_wall,
        call_wall_oi=call_wall_contract.open_interest if call_wall_contract else 0,
        put_wall_oi=put_wall_contract.open_interest if put_wall_contract else 0,
        gamma_flip=gamma_flip,
        volatility_trigger=gamma_flip * VOLATILITY_TRIGGER_RATIO,
        call_exposure=call_exposure,
        put_exposure=put_exposure,
        total_exposure=total_exposure,
        call_open_interest=call_oi,
        put_open_interest=put_oi,
        pcr_filtered=_put_call_ratio(put_oi, call_oi),
        pcr_all=pcr_all,
        sentiment=sentiment,
        price_probability=probability,
        expected_lower=move.lower,
        expected_upper=move.upper,
        expected_price=expected_price,
        avg_iv=move.avg_iv,
        confident_lower=confident.lower,
        confident_upper=confident.upper,
        contracts=tuple(contracts),
    )


def build_expiration_snapshot_safe(
    expiration: date,
    calls: Sequence[RawContract],
    puts: Sequence[RawContract],
    spot: float,
    as_of: Union[date, datetime],
    strike_window: float = STRIKE_WINDOW,
) -> Tuple[Optional[ExpirationSnapshot], ExpirationDiagnostic]:
    """build_expiration_snapshot plus a diagnostic explaining the outcome."""
    if not calls and not puts:
        return None, ExpirationDiagnostic(expiration, ExpirationStatus.NO_OPTION_DATA)

    if time_to_expiration(expiration, as_of) <= 0:
        return None, ExpirationDiagnostic(expiration, ExpirationStatus.EXPIRED)

    try:
        snapshot = build_expiration_snapshot(expiration, calls, puts, spot, as_of, strike_window)
    except (ValueError, ArithmeticError) as exc:
        logger.warning("Expiration %s failed: %s", expiration, exc)
        return None, ExpirationDiagnostic(expiration, ExpirationStatus.ERROR, message=str(exc))

    if snapshot is None:
        return None, ExpirationDiagnostic(expiration, ExpirationStatus.FILTERED_OUT)

    return snapshot, ExpirationDiagnostic(
        expiration, ExpirationStatus.SUCCESS, contracts_used=len(snapshot.contracts)
    )


def max_pain(calls: Sequence[RawContract], puts: Sequence[RawContract]) -> Optional[float]:
    """
    Listed strike at which option holders collect the least at expiry.

    Payout at settlement price S is sum(call_oi * max(S - K, 0)) +
    sum(put_oi * max(K - S, 0)) over the chain; the lowest strike wins ties.
    """
    rows = list(calls) + list(puts)
    if not rows:
        return None

    candidates = np.unique([r.strike for r in rows])
    call_k = np.array([c.strike for c in calls], dtype=float)
    call_oi = np.array([c.open_interest or 0 for c in calls], dtype=float)
    put_k = np.array([p.strike for p in puts], dtype=float)
    put_oi = np.array([p.open_interest or 0 for p in puts], dtype=float)

    s = candidates[:, None]
    payout = (np.maximum(s - call_k, 0) * call_oi).sum(axis=1)
    payout += (np.maximum(put_k - s, 0) * put_oi).sum(axis=1)
    return float(candidates[int(np.argmin(payout))])


def chain_summary(
    calls: Sequence[RawContract],
    puts: Sequence[RawContract],
    spot: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Headline numbers for a raw chain: OI / volume totals, PCR, walls, max
    pain, mean IV.

    Walls here are the max-OI strikes on each side without any spot filter;
    volume walls are the busiest strikes by traded volume (first listed wins).
    """
    call_oi = sum(c.open_interest or 0 for c in calls)
    put_oi = sum(p.open_interest or 0 for p in puts)
    ivs = [c.implied_volatility for c in list(calls) + list(puts) if c.implied_volatility > 0]

    def wall(rows: Sequence[RawContract], key) -> Optional[float]:
        return max(rows, key=key).strike if rows else None

    return {
        "call_oi": call_oi,
        "put_oi": put_oi,
        "call_volume": sum(c.volume for c in calls),
        "put_volume": sum(p.volume for p in puts),
        "pcr": _put_call_ratio(put_oi, call_oi),
        "call_wall": wall(calls, lambda r: r.open_interest or 0),
        "put_wall": wall(puts, lambda r: r.open_interest or 0),
        "call_volume_wall": wall(calls, lambda r: r.volume or 0),
        "put_volume_wall": wall(puts, lambda r: r.volume or 0),
        "max_pain": max_pain(calls, puts),
        "avg_iv": sum(ivs) / len(ivs) if ivs else None,
        "spot_price": spot,
    }

