"""FastAPI endpoints exposing the analytics core to a host application."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional
import logging

import pandas as pd
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from gexflow.aggregation.pipeline import analyze_chain
from gexflow.analysis.contracts import parse_contracts
from gexflow.beta.estimator import beta_from_closes
from gexflow.beta.projection import project_levels
from gexflow.config import BETA_LOOKBACK_MAX_MONTHS, BETA_LOOKBACK_MIN_MONTHS, BETA_LOOKBACK_MONTHS, MARKET_TIMEZONE
from gexflow.signals.recommendations import band_for_price, generate_recommendation_bands

logger = logging.getLogger(__name__)

router = APIRouter()


# -------------------------
# Request models
# -------------------------
class ExpirationChainIn(BaseModel):
    expiration: date
    calls: List[Dict[str, Any]] = Field(default_factory=list)
    puts: List[Dict[str, Any]] = Field(default_factory=list)


class ProjectionIn(BaseModel):
    current_price: float = Field(..., gt=0, description="Price of the correlated instrument")
    beta: float


class AnalysisRequest(BaseModel):
    current_price: float = Field(..., gt=0)
    as_of: Optional[datetime] = None
    expirations: List[ExpirationChainIn] = Field(..., min_length=1)
    select_expirations: bool = True
    include_scenarios: bool = True
    include_contracts: bool = False
    projection: Optional[ProjectionIn] = None


class BetaRequest(BaseModel):
    ticker_closes: Dict[date, float]
    benchmark_closes: Dict[date, float]
    lookback_months: int = Field(
        BETA_LOOKBACK_MONTHS, ge=BETA_LOOKBACK_MIN_MONTHS, le=BETA_LOOKBACK_MAX_MONTHS
    )
    as_of: Optional[date] = None


class RecommendationRequest(BaseModel):
    support: float = Field(..., gt=0)
    resistance: float = Field(..., gt=0)
    current_price: float = Field(..., gt=0)


# -------------------------
# Endpoints
# -------------------------
@router.post("/analysis")
def post_analysis(request: AnalysisRequest):
    as_of = request.as_of or pd.Timestamp.now(tz=MARKET_TIMEZONE).to_pydatetime()

    chains = {}
    for item in request.expirations:
        calls = parse_contracts(item.calls, expiration=item.expiration)
        puts = parse_contracts(item.puts, expiration=item.expiration)
        chains[item.expiration] = (calls, puts)

    result = analyze_chain(
        request.current_price,
        chains,
        as_of,
        with_scenarios=request.include_scenarios,
        select=request.select_expirations,
    )
    if result is None:
        raise HTTPException(status_code=404, detail="No expiration with usable option data")

    payload = result.to_dict(include_contracts=request.include_contracts)
    if request.projection is not None:
        projection = project_levels(
            current_price=request.projection.current_price,
            beta=request.projection.beta,
            benchmark_current=request.current_price,
            levels=result.levels,
            snapshots=result.snapshots,
            benchmark_expected_price=result.expected_price,
        )
        payload["projection"] = projection.to_dict()
    return payload


@router.post("/beta")
def post_beta(request: BetaRequest):
    estimate = beta_from_closes(
        request.ticker_closes,
        request.benchmark_closes,
        lookback_months=request.lookback_months,
        as_of=request.as_of,
    )
    logger.info("Beta %.3f from %d observations", estimate.beta, estimate.sample_size)
    return estimate.to_dict()


@router.post("/recommendations")
def post_recommendations(request: RecommendationRequest):
    bands = generate_recommendation_bands(request.support, request.resistance, request.current_price)
    return {
        "bands": [band.to_dict() for band in bands],
        "current_band": band_for_price(bands, request.current_price).to_dict(),
    }


def attach_routes(app) -> None:
    app.include_router(router)
