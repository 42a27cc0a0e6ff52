"""Option contract normalization and per-contract gamma exposure."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
import logging
import math

import pandas as pd

from gexflow.analysis.pricing import (
    black_scholes_gamma,
    clamp,
    implied_volatility,
    safe_float,
)
from gexflow.config import (
    CONTRACT_MULTIPLIER,
    DIVIDEND_YIELD,
    GREEK_SIGMA_FLOOR,
    IV_CLAMP_MAX,
    IV_CLAMP_MIN,
    IV_REPORTED_MIN,
    RISK_FREE_RATE,
    STRIKE_WINDOW,
    TIME_EPSILON,
    VOLUME_OI_PROXY,
)

logger = logging.getLogger(__name__)


class OptionSide(str, Enum):
    CALL = "call"
    PUT = "put"

    @property
    def sign(self) -> int:
        """Dealer exposure sign: calls add, puts subtract."""
        return 1 if self is OptionSide.CALL else -1


def _first(mapping: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = mapping.get(key)
        if value is not None:
            return value
    return None


def _parse_expiration(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return pd.to_datetime(value, unit="s", utc=True).date()
    try:
        parsed = pd.to_datetime(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"unparseable expiration: {value!r}") from exc
    if pd.isna(parsed):
        raise ValueError(f"unparseable expiration: {value!r}")
    return parsed.date()


def _optional_int(value: Any) -> Optional[int]:
    number = safe_float(value, fallback=math.nan)
    if math.isnan(number):
        return None
    return int(round(number))


@dataclass(frozen=True)
class RawContract:
    """One listed option as delivered by the market-data provider."""

    strike: float
    implied_volatility: float
    open_interest: Optional[int]
    volume: int
    last_price: float
    expiration: date

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RawContract":
        """
        Normalize a loosely-typed upstream record.

        Accepts camelCase (``impliedVolatility``, ``openInterest``,
        ``lastPrice``) or snake_case keys. Missing optional numbers become
        NaN IV / None OI / zero volume / NaN last price; a bad strike or
        expiration raises ValueError.
        """
        strike = safe_float(data.get("strike"), fallback=math.nan)
        if not math.isfinite(strike) or strike <= 0:
            raise ValueError(f"strike must be a positive number, got {data.get('strike')!r}")

        expiration_raw = _first(data, "expiration", "expirationDate", "expiration_date")
        if expiration_raw is None:
            raise ValueError("contract is missing its expiration")

        volume = _optional_int(data.get("volume"))
        return cls(
            strike=strike,
            implied_volatility=safe_float(
                _first(data, "impliedVolatility", "implied_volatility"), fallback=math.nan
            ),
            open_interest=_optional_int(_first(data, "openInterest", "open_interest")),
            volume=max(volume or 0, 0),
            last_price=safe_float(_first(data, "lastPrice", "last_price"), fallback=math.nan),
            expiration=_parse_expiration(expiration_raw),
        )


@dataclass(frozen=True)
class ProcessedContract:
    """Priced contract with effective open interest and signed exposure."""

    strike: float
    side: OptionSide
    implied_volatility: float
    open_interest: int
    volume: int
    last_price: float
    expiration: date
    time_to_expiration: float
    gamma: float
    exposure: float
    iv_repaired: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strike": self.strike,
            "type": self.side.value,
            "implied_volatility": self.implied_volatility,
            "open_interest": self.open_interest,
            "volume": self.volume,
            "last_price": safe_float(self.last_price),
            "expiration": self.expiration.isoformat(),
            "gamma": self.gamma,
            "exposure": self.exposure,
        }


def effective_open_interest(open_interest: Optional[int], volume: int) -> int:
    """Reported OI, else 10% of volume, else 1."""
    if open_interest is not None and open_interest > 0:
        return int(open_interest)
    proxy = int(round(max(volume, 0) * VOLUME_OI_PROXY))
    return proxy if proxy > 0 else 1


def dividend_adjusted_spot(spot: float, t: float, dividend_yield: float = DIVIDEND_YIELD) -> float:
    return spot * math.exp(-dividend_yield * t)


def contract_exposure(side: OptionSide, gamma: float, open_interest: int, spot: float) -> float:
    """Dollar gamma exposure per 1% move: sign * gamma * OI * 100 * S^2 * 0.01."""
    exposure = side.sign * gamma * open_interest * CONTRACT_MULTIPLIER * spot * spot * 0.01
    return safe_float(exposure)


def process_contract(
    raw: RawContract,
    side: OptionSide,
    spot: float,
    time_to_expiration: float,
    *,
    rate: float = RISK_FREE_RATE,
    dividend_yield: float = DIVIDEND_YIELD,
    iv_min: float = IV_CLAMP_MIN,
    iv_max: float = IV_CLAMP_MAX,
    greek_sigma_floor: float = GREEK_SIGMA_FLOOR,
) -> ProcessedContract:
    """
    Turn one RawContract into a ProcessedContract.

    Steps: OI fallback, IV repair (Newton inversion from last price when the
    reported IV is unusable), IV clamp, gamma at the dividend-adjusted spot,
    signed exposure. Pricing failures leave gamma (and exposure) at 0.
    """
    t = max(safe_float(time_to_expiration, fallback=TIME_EPSILON), TIME_EPSILON)
    open_interest = effective_open_interest(raw.open_interest, raw.volume)
    adjusted_spot = dividend_adjusted_spot(spot, t, dividend_yield)

    iv = raw.implied_volatility
    repaired = False
    if not math.isfinite(iv) or iv < IV_REPORTED_MIN:
        iv = implied_volatility(
            raw.last_price, adjusted_spot, raw.strike, t, rate, side is OptionSide.CALL
        )
        repaired = True
        logger.debug("Inverted IV %.4f for %s %s from last price %s", iv, side.value, raw.strike, raw.last_price)

    iv = clamp(safe_float(iv, fallback=iv_min), iv_min, iv_max)

    try:
        gamma = abs(safe_float(
            black_scholes_gamma(adjusted_spot, raw.strike, t, rate, max(iv, greek_sigma_floor))
        ))
    except (ValueError, ZeroDivisionError, OverflowError, FloatingPointError) as exc:
        logger.debug("Gamma failed for %s %s: %s", side.value, raw.strike, exc)
        gamma = 0.0

    return ProcessedContract(
        strike=raw.strike,
        side=side,
        implied_volatility=iv,
        open_interest=open_interest,
        volume=raw.volume,
        last_price=raw.last_price,
        expiration=raw.expiration,
        time_to_expiration=t,
        gamma=gamma,
        exposure=contract_exposure(side, gamma, open_interest, spot),
        iv_repaired=repaired,
    )


def in_strike_window(strike: float, spot: float, window: float = STRIKE_WINDOW) -> bool:
    """Open interval (spot*(1-w), spot*(1+w))."""
    return spot * (1 - window) < strike < spot * (1 + window)


def process_chain(
    calls: Iterable[RawContract],
    puts: Iterable[RawContract],
    spot: float,
    time_to_expiration: float,
    strike_window: float = STRIKE_WINDOW,
) -> Tuple[List[ProcessedContract], List[ProcessedContract]]:
    """Filter both sides to the strike window and process what remains."""
    processed_calls = [
        process_contract(raw, OptionSide.CALL, spot, time_to_expiration)
        for raw in calls
        if in_strike_window(raw.strike, spot, strike_window)
    ]
    processed_puts = [
        process_contract(raw, OptionSide.PUT, spot, time_to_expiration)
        for raw in puts
        if in_strike_window(raw.strike, spot, strike_window)
    ]
    return processed_calls, processed_puts


def parse_contracts(records: Iterable[Mapping[str, Any]], expiration: Optional[Any] = None) -> List[RawContract]:
    """
    Build RawContracts from upstream dicts, skipping invalid rows.

    ``expiration`` fills in records that do not carry their own (chains are
    usually delivered per expiration).
    """
    contracts: List[RawContract] = []
    for record in records:
        if expiration is not None and _first(record, "expiration", "expirationDate", "expiration_date") is None:
            record = {**record, "expiration": expiration}
        try:
            contracts.append(RawContract.from_mapping(record))
        except ValueError as exc:
            logger.warning("Skipping invalid contract %s: %s", record, exc)
    return contracts
