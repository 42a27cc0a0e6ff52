import pytest

from gexflow.aggregation.levels import AggregateLevels
from gexflow.analysis.sentiment import PriceProbability
from gexflow.beta.projection import LevelRole, Polarity, project_levels, project_snapshot
from gexflow.signals.scenarios import Direction


def _levels():
    return AggregateLevels(
        support=95.0,
        resistance=105.0,
        expected_lower=96.0,
        expected_upper=104.0,
        realistic_support=96.0,
        realistic_resistance=104.0,
        expirations=2,
    )


def test_direct_projection_keeps_roles():
    projection = project_levels(50.0, 1.5, 100.0, _levels(), benchmark_expected_price=102.0)

    assert projection.polarity is Polarity.DIRECT
    assert projection.support.role is LevelRole.SUPPORT
    assert projection.support.benchmark_level == 96.0
    assert projection.support.level == pytest.approx(47.0)
    assert projection.resistance.level == pytest.approx(53.0)
    assert projection.expected_price == pytest.approx(51.5)
    assert projection.direction is Direction.UP


def test_inverse_projection_swaps_roles():
    projection = project_levels(50.0, -1.0, 100.0, _levels(), benchmark_expected_price=102.0)

    assert projection.polarity is Polarity.INVERSE
    # Benchmark resistance becomes the inverse instrument's support
    assert projection.support.benchmark_level == 104.0
    assert projection.support.level == pytest.approx(48.0)
    assert projection.resistance.benchmark_level == 96.0
    assert projection.resistance.level == pytest.approx(52.0)
    assert projection.support.level < projection.resistance.level
    assert projection.expected_lower < projection.expected_upper
    assert projection.expected_price <= 50.0
    assert projection.direction is Direction.DOWN


def test_role_under_polarity():
    assert LevelRole.SUPPORT.under(Polarity.DIRECT) is LevelRole.SUPPORT
    assert LevelRole.SUPPORT.under(Polarity.INVERSE) is LevelRole.RESISTANCE
    assert LevelRole.RESISTANCE.under(Polarity.INVERSE) is LevelRole.SUPPORT
    assert Direction.UP.inverted() is Direction.DOWN
    assert Direction.FLAT.inverted() is Direction.FLAT


def test_inverse_snapshot_swaps_probabilities(make_snapshot):
    snapshot = make_snapshot(0, sentiment=40.0, price_probability=PriceProbability(up=60, down=25, neutral=15))

    direct = project_snapshot(snapshot, 50.0, 1.0, 100.0)
    inverse = project_snapshot(snapshot, 50.0, -1.0, 100.0)

    assert direct.price_probability == snapshot.price_probability
    assert inverse.price_probability == PriceProbability(up=25, down=60, neutral=15)
    assert inverse.sentiment == -40.0
    assert inverse.support < inverse.resistance
    assert inverse.support == pytest.approx(50.0 * (1 - (105.0 / 100.0 - 1)))


def test_projection_series_and_serialization(make_snapshot):
    snapshots = [make_snapshot(0), make_snapshot(1)]
    projection = project_levels(50.0, 1.2, 100.0, _levels(), snapshots=snapshots)

    assert len(projection.series) == 2
    assert projection.expected_price is None
    assert projection.direction is Direction.FLAT
    data = projection.to_dict()
    assert data["polarity"] == "direct"
    assert data["support"]["role"] == "support"
    assert data["series"][0]["label"] == snapshots[0].label
