"""Per-contract pricing and per-expiration market structure."""

from .contracts import OptionSide, ProcessedContract, RawContract, parse_contracts, process_chain, process_contract
from .expected_move import ExpectedMove, expected_move, gamma_adjusted_expected_price
from .expiration import (
    ExpirationDiagnostic,
    ExpirationSnapshot,
    ExpirationStatus,
    build_expiration_snapshot,
    build_expiration_snapshot_safe,
    chain_summary,
    max_pain,
    time_to_expiration,
)
from .gamma_flip import find_gamma_flip, net_exposure_at_spot
from .pricing import black_scholes_gamma, black_scholes_price, implied_volatility
from .sentiment import PriceProbability, price_probabilities, sentiment_score

__all__ = [
    "OptionSide",
    "RawContract",
    "ProcessedContract",
    "parse_contracts",
    "process_contract",
    "process_chain",
    "ExpectedMove",
    "expected_move",
    "gamma_adjusted_expected_price",
    "ExpirationDiagnostic",
    "ExpirationSnapshot",
    "ExpirationStatus",
    "build_expiration_snapshot",
    "build_expiration_snapshot_safe",
    "chain_summary",
    "max_pain",
    "time_to_expiration",
    "find_gamma_flip",
    "net_exposure_at_spot",
    "black_scholes_gamma",
    "black_scholes_price",
    "implied_volatility",
    "PriceProbability",
    "price_probabilities",
    "sentiment_score",
]
