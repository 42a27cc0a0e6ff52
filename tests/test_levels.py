import pytest

from gexflow.aggregation.levels import (
    aggregate_levels,
    expiration_weight,
    weighted_level,
)


def test_weight_decreases_with_time():
    times = [1 / 365, 2 / 365, 7 / 365, 30 / 365, 1.0]
    weights = [expiration_weight(t) for t in times]
    assert weights == sorted(weights, reverse=True)
    assert len(set(weights)) == len(weights)


def test_weight_floors_time_at_one_day():
    assert expiration_weight(0.0) == expiration_weight(1 / 365)
    assert expiration_weight(-1.0) == expiration_weight(1 / 365)


def test_weighted_level_favors_near_expiration(make_snapshot):
    near = make_snapshot(0, time_to_expiration=1 / 365, put_wall=100.0)
    far = make_snapshot(3, time_to_expiration=4 / 365, put_wall=110.0)

    # weights sqrt(365) and sqrt(365) / 2
    assert weighted_level([near, far], "put_wall") == pytest.approx((100.0 + 110.0 * 0.5) / 1.5)


def test_weighted_level_edge_cases(make_snapshot):
    assert weighted_level([], "call_wall") is None
    assert weighted_level([make_snapshot(0, call_wall=123.0)], "call_wall") == pytest.approx(123.0)
    with pytest.raises(ValueError):
        weighted_level([make_snapshot(0)], "sentiment")


def test_aggregate_levels_realistic_range(make_snapshot):
    snapshots = [
        make_snapshot(0, put_wall=95.0, expected_lower=97.0, call_wall=105.0, expected_upper=103.0),
        make_snapshot(1, put_wall=95.0, expected_lower=97.0, call_wall=105.0, expected_upper=103.0),
    ]

    levels = aggregate_levels(snapshots)

    assert levels.support == pytest.approx(95.0)
    assert levels.resistance == pytest.approx(105.0)
    assert levels.realistic_support == pytest.approx(97.0)
    assert levels.realistic_resistance == pytest.approx(103.0)
    assert levels.expirations == 2
    assert levels.to_dict()["realistic_support"] == pytest.approx(97.0)


def test_aggregate_levels_empty():
    assert aggregate_levels([]) is None
