"""Tests for per-expiration snapshots."""
from datetime import date, datetime

import pandas as pd
import pytest

from gexflow.analysis.contracts import RawContract
from gexflow.analysis.expiration import (
    ExpirationStatus,
    build_expiration_snapshot,
    build_expiration_snapshot_safe,
    chain_summary,
    max_pain,
    market_close,
    time_to_expiration,
)
from gexflow.analysis.sentiment import sentiment_score
from gexflow.signals.recommendations import generate_recommendation_bands

EXPIRY = date(2024, 1, 19)
SPOT = 405.0


def _raw(strike, oi, iv, volume=0):
    return RawContract(
        strike=strike,
        implied_volatility=iv,
        open_interest=oi,
        volume=volume,
        last_price=1.0,
        expiration=EXPIRY,
    )


def _as_of_for(t_years):
    return market_close(EXPIRY) - pd.Timedelta(days=t_years * 365)


def _example_snapshot():
    calls = [_raw(400.0, 1000, 0.20), _raw(410.0, 500, 0.22)]
    puts = [_raw(390.0, 1200, 0.25)]
    return build_expiration_snapshot(EXPIRY, calls, puts, SPOT, _as_of_for(0.02))


def test_time_to_expiration_measures_to_market_close():
    assert time_to_expiration(EXPIRY, EXPIRY) == 0.0
    assert time_to_expiration(EXPIRY, date(2024, 1, 18)) == pytest.approx(1 / 365)
    # Naive datetimes are exchange-local: 09:30 -> 6.5 hours to the close
    assert time_to_expiration(EXPIRY, datetime(2024, 1, 19, 9, 30)) == pytest.approx(6.5 / (365 * 24))


def test_end_to_end_example_walls_and_sentiment():
    snapshot = _example_snapshot()

    assert snapshot.time_to_expiration == pytest.approx(0.02)
    # The 400 call sits below spot, so the 410 call is the wall
    assert snapshot.call_wall == 410.0
    assert snapshot.call_wall_oi == 500
    assert snapshot.put_wall == 390.0
    assert snapshot.put_wall_oi == 1200
    assert snapshot.sentiment == pytest.approx(
        sentiment_score(snapshot.call_exposure, snapshot.put_exposure)
    )
    assert snapshot.call_exposure > 0 > snapshot.put_exposure
    assert snapshot.total_exposure == pytest.approx(snapshot.call_exposure + snapshot.put_exposure)
    assert snapshot.call_open_interest == 1500
    assert snapshot.put_open_interest == 1200
    assert snapshot.pcr_filtered == pytest.approx(0.8)
    assert snapshot.volatility_trigger == pytest.approx(snapshot.gamma_flip * 0.985)


def test_end_to_end_example_spot_in_exactly_one_band():
    snapshot = _example_snapshot()
    bands = generate_recommendation_bands(snapshot.put_wall, snapshot.call_wall, SPOT)

    assert sum(1 for band in bands if band.lower <= SPOT < band.upper) == 1


def test_snapshot_probabilities_and_expected_range():
    snapshot = _example_snapshot()
    prob = snapshot.price_probability

    assert prob.up + prob.down + prob.neutral == 100
    assert snapshot.expected_lower < SPOT < snapshot.expected_upper
    assert snapshot.expected_lower < snapshot.confident_lower < SPOT < snapshot.confident_upper < snapshot.expected_upper
    low = max(snapshot.put_wall, snapshot.expected_lower)
    high = min(snapshot.call_wall, snapshot.expected_upper)
    assert low <= snapshot.expected_price <= high


def test_wall_fallbacks_when_no_side_qualifies():
    # Only a call below spot and a put above spot
    calls = [_raw(400.0, 1000, 0.2)]
    puts = [_raw(410.0, 1000, 0.2)]

    snapshot = build_expiration_snapshot(EXPIRY, calls, puts, SPOT, _as_of_for(0.02))

    assert snapshot.call_wall == pytest.approx(SPOT * 1.02)
    assert snapshot.put_wall == pytest.approx(SPOT * 0.98)
    assert snapshot.call_wall_oi == 0


def test_expired_and_filtered_chains_return_none():
    calls = [_raw(410.0, 500, 0.22)]
    assert build_expiration_snapshot(EXPIRY, calls, [], SPOT, date(2024, 1, 20)) is None

    far = [_raw(600.0, 500, 0.22)]
    assert build_expiration_snapshot(EXPIRY, far, [], SPOT, _as_of_for(0.02)) is None


@pytest.mark.parametrize(
    "calls,puts,as_of,status",
    [
        ([], [], date(2024, 1, 10), ExpirationStatus.NO_OPTION_DATA),
        ([_raw(410.0, 500, 0.22)], [], date(2024, 1, 20), ExpirationStatus.EXPIRED),
        ([_raw(600.0, 500, 0.22)], [], date(2024, 1, 10), ExpirationStatus.FILTERED_OUT),
        ([_raw(410.0, 500, 0.22)], [], date(2024, 1, 10), ExpirationStatus.SUCCESS),
    ],
)
def test_safe_builder_reports_status(calls, puts, as_of, status):
    snapshot, diagnostic = build_expiration_snapshot_safe(EXPIRY, calls, puts, SPOT, as_of)

    assert diagnostic.status is status
    assert (snapshot is not None) == (status is ExpirationStatus.SUCCESS)
    if snapshot is not None:
        assert diagnostic.contracts_used == 1


def test_to_dict_is_json_friendly():
    data = _example_snapshot().to_dict()

    assert data["expiration"] == "2024-01-19"
    assert data["label"] == "01/19"
    assert "contracts" not in data
    assert set(data["price_probability"]) == {"up", "down", "neutral"}
    assert len(_example_snapshot().to_dict(include_contracts=True)["contracts"]) == 3


def test_chain_summary():
    calls = [_raw(400.0, 1000, 0.20, volume=50), _raw(410.0, 500, 0.22, volume=30)]
    puts = [_raw(390.0, 1200, 0.25, volume=20), _raw(380.0, None, 0.0, volume=5)]

    summary = chain_summary(calls, puts, spot=SPOT)

    assert summary["call_oi"] == 1500
    assert summary["put_oi"] == 1200
    assert summary["call_volume"] == 80
    assert summary["put_volume"] == 25
    assert summary["pcr"] == pytest.approx(0.8)
    assert summary["call_wall"] == 400.0
    assert summary["put_wall"] == 390.0
    assert summary["call_volume_wall"] == 400.0
    assert summary["put_volume_wall"] == 390.0
    # 390 and 400 both pay holders nothing; the lower strike is kept
    assert summary["max_pain"] == 390.0
    assert summary["avg_iv"] == pytest.approx((0.20 + 0.22 + 0.25) / 3)
    assert summary["spot_price"] == SPOT


def test_max_pain_minimizes_holder_payout():
    calls = [_raw(100.0, 100, 0.2), _raw(105.0, 500, 0.2)]
    puts = [_raw(95.0, 300, 0.2), _raw(100.0, 200, 0.2)]

    # payouts: 95 -> 1000, 100 -> 0, 105 -> 500
    assert max_pain(calls, puts) == 100.0


def test_max_pain_one_sided_and_empty_chains():
    calls = [_raw(100.0, 100, 0.2), _raw(110.0, 100, 0.2)]

    assert max_pain(calls, []) == 100.0
    assert max_pain([], []) is None


def test_volume_walls_differ_from_open_interest_walls():
    calls = [_raw(400.0, 5000, 0.2, volume=10), _raw(420.0, 100, 0.2, volume=900)]
    puts = [_raw(390.0, 4000, 0.2, volume=700), _raw(370.0, 50, 0.2, volume=700)]

    summary = chain_summary(calls, puts)

    assert summary["call_wall"] == 400.0
    assert summary["call_volume_wall"] == 420.0
    assert summary["put_volume_wall"] == 390.0


def test_chain_summary_of_empty_chain():
    summary = chain_summary([], [])

    assert summary["call_volume_wall"] is None
    assert summary["put_volume_wall"] is None
    assert summary["max_pain"] is None
