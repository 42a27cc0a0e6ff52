"""Tests for swing scenario generation."""
import pytest

from gexflow.analysis.sentiment import PriceProbability
from gexflow.signals.scenarios import (
    Direction,
    generate_swing_scenarios,
    scenario_probability,
)


def test_probability_formula(make_snapshot):
    entry = make_snapshot(0, sentiment=0.0, total_exposure=100.0)
    exit_ = make_snapshot(
        1,
        sentiment=50.0,
        total_exposure=200.0,
        price_probability=PriceProbability(up=60, down=20, neutral=20),
    )
    # 55 + 0.4*50 + 5 + 0.2*40 - 2*1
    assert scenario_probability(entry, exit_, duration=1) == 86


def test_probability_penalizes_falling_exposure_and_duration(make_snapshot):
    entry = make_snapshot(0, sentiment=10.0, total_exposure=200.0)
    exit_ = make_snapshot(
        3,
        sentiment=10.0,
        total_exposure=100.0,
        price_probability=PriceProbability(up=30, down=30, neutral=40),
    )
    # 55 + 0 - 5 + 0 - 2*3
    assert scenario_probability(entry, exit_, duration=3) == 44


def test_probability_is_clamped(make_snapshot):
    bullish = make_snapshot(1, sentiment=100.0, total_exposure=1e9,
                            price_probability=PriceProbability(up=80, down=0, neutral=20))
    bearish = make_snapshot(1, sentiment=-100.0, total_exposure=-1e9,
                            price_probability=PriceProbability(up=0, down=80, neutral=20))
    start = make_snapshot(0, sentiment=0.0, total_exposure=0.0)

    assert scenario_probability(start, bullish, duration=1) == 92
    assert scenario_probability(start, bearish, duration=1) == 35
    assert scenario_probability(start, bullish, duration=1, cap=80) == 80


def test_scenario_levels(make_snapshot):
    entry = make_snapshot(0, put_wall=95.0, expected_lower=96.0)
    exit_ = make_snapshot(1, call_wall=105.0, expected_upper=104.0)

    (scenario,) = generate_swing_scenarios([entry, exit_])

    assert scenario.entry_level == 96.0
    assert scenario.extension_level == 104.0
    assert scenario.exit_level == pytest.approx(104.0 * 0.995)
    assert scenario.base_return == pytest.approx((104.0 * 0.995 - 96.0) / 96.0 * 100)
    assert scenario.extension_return == pytest.approx((104.0 - 96.0) / 96.0 * 100)
    assert scenario.duration == 1
    assert scenario.direction is Direction.UP
    assert (scenario.entry_label, scenario.exit_label) == (entry.label, exit_.label)


def test_non_positive_returns_are_discarded(make_snapshot):
    entry = make_snapshot(0, put_wall=104.0, expected_lower=103.0)
    exit_ = make_snapshot(1, call_wall=105.0, expected_upper=104.0)
    # 104 * 0.995 < 104 entry
    assert generate_swing_scenarios([entry, exit_]) == []


def test_at_most_three_positive_scenarios(make_snapshot):
    snapshots = [make_snapshot(i, expected_upper=104.0 + i) for i in range(7)]

    scenarios = generate_swing_scenarios(snapshots)

    assert len(scenarios) == 3
    assert all(s.base_return > 0 for s in scenarios)
    assert all(35 <= s.success_probability <= 92 for s in scenarios)
    # only the first five snapshots are paired
    labels = {s.exit_label for s in scenarios} | {s.entry_label for s in scenarios}
    assert labels <= {s.label for s in snapshots[:5]}


def test_high_conviction_scenarios_rank_first(make_snapshot):
    snapshots = [
        make_snapshot(0, sentiment=0.0, total_exposure=0.0),
        # modest return, strong improvement in sentiment
        make_snapshot(1, sentiment=60.0, total_exposure=10.0, expected_upper=101.0,
                      price_probability=PriceProbability(up=60, down=10, neutral=30)),
        # large return, deteriorating sentiment
        make_snapshot(2, sentiment=-60.0, total_exposure=-10.0, expected_upper=104.0,
                      price_probability=PriceProbability(up=10, down=60, neutral=30)),
    ]

    scenarios = generate_swing_scenarios(snapshots)
    tiers = [s.success_probability >= 70 for s in scenarios]

    assert tiers == sorted(tiers, reverse=True)
    assert tiers[0] is True
    assert scenarios[0].exit_label == snapshots[1].label
    high = [s for s in scenarios if s.success_probability >= 70]
    low = [s for s in scenarios if s.success_probability < 70]
    assert [s.base_return for s in low] == sorted((s.base_return for s in low), reverse=True)
    assert len(high) >= 1


def test_fewer_than_two_snapshots_yield_nothing(make_snapshot):
    assert generate_swing_scenarios([]) == []
    assert generate_swing_scenarios([make_snapshot(0)]) == []
