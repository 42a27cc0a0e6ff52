from datetime import date, timedelta

import pytest

from gexflow.analysis.expiration import ExpirationSnapshot
from gexflow.analysis.sentiment import PriceProbability


def _snapshot(index=0, **overrides):
    expiration = date(2024, 1, 8) + timedelta(days=index)
    fields = dict(
        expiration=expiration,
        label=expiration.strftime("%m/%d"),
        time_to_expiration=(index + 1) / 365,
        call_wall=105.0,
        put_wall=95.0,
        call_wall_oi=1000,
        put_wall_oi=1000,
        gamma_flip=100.0,
        volatility_trigger=98.5,
        call_exposure=1_000_000.0,
        put_exposure=-500_000.0,
        total_exposure=500_000.0,
        call_open_interest=5000,
        put_open_interest=4000,
        pcr_filtered=0.8,
        pcr_all=0.8,
        sentiment=33.3,
        price_probability=PriceProbability(up=40, down=30, neutral=30),
        expected_lower=96.0,
        expected_upper=104.0,
        expected_price=100.5,
        avg_iv=0.2,
    )
    fields.update(overrides)
    return ExpirationSnapshot(**fields)


@pytest.fixture
def make_snapshot():
    """Factory for ExpirationSnapshot values with sensible defaults."""
    return _snapshot
