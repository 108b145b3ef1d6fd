import pytest

from conftest import field_with_depths
from env import config
from env.field import NodeField
from env.topology import compute_neighbors
from routing.mpr import select_mprs
from routing.strategies import (
    DBRStrategy,
    EEDBRStrategy,
    HHVBFStrategy,
    OLSRStrategy,
    RoutingStrategy,
    VBFStrategy,
    eedbr_score,
    make_strategy,
    select_forwarders,
)

ALL_PROTOCOLS = list(config.PROTOCOLS) + ["BASIC"]


@pytest.mark.parametrize("protocol", ALL_PROTOCOLS)
def test_never_returns_source_or_drained_nodes(protocol):
    field = NodeField.initialize(80, seed=11)
    for i, n in enumerate(field):
        if i % 4 == 0:
            n.energy = 5.0
    if protocol == "OLSR":
        compute_neighbors(field)
        select_mprs(field)

    for source in field:
        forwarders = select_forwarders(source, field, protocol)
        assert source not in forwarders
        assert all(n.energy >= config.RELAY_MIN_ENERGY for n in forwarders)


def test_dbr_scenario_only_shallower_node():
    field = field_with_depths([10.0, 50.0, 90.0])
    source = field.get(1)
    assert [n.id for n in DBRStrategy().select_forwarders(source, field)] == [0]


def test_dbr_drained_node_can_still_originate():
    field = field_with_depths([10.0, 50.0], energies=[100.0, 2.0])
    assert [n.id for n in select_forwarders(field.get(1), field, "DBR")] == [0]
    assert select_forwarders(field.get(0), field, "DBR") == []


def test_eedbr_ordering_non_increasing():
    field = field_with_depths(
        [80.0, 10.0, 30.0, 20.0, 60.0, 5.0],
        energies=[100.0, 15.0, 90.0, 60.0, 40.0, 12.0],
    )
    ranked = EEDBRStrategy().select_forwarders(field.get(0), field)
    assert {n.id for n in ranked} == {1, 2, 3, 4, 5}
    scores = [eedbr_score(n) for n in ranked]
    assert scores == sorted(scores, reverse=True)


def test_vbf_pipe():
    field = NodeField.from_positions([
        (0, -200, 0),     # 0 source
        (0, -100, 30),    # 1 inside pipe
        (0, -100, 80),    # 2 outside pipe (perpendicular 80)
        (0, -250, 0),     # 3 behind source
        (10, -10, 10),    # 4 near sink, inside
    ])
    ids = {n.id for n in VBFStrategy().select_forwarders(field.get(0), field)}
    assert ids == {1, 4}


def test_vbf_source_at_sink_has_no_direction():
    field = NodeField.from_positions([(0, 0, 0), (0, -10, 0)])
    assert VBFStrategy().select_forwarders(field.get(0), field) == []


def test_hhvbf_range_and_progress():
    field = NodeField.from_positions([
        (0, -200, 0),     # 0 source
        (0, -190, 0),     # 1 too close (10)
        (0, -100, 0),     # 2 in range, closer to sink
        (0, -200, 100),   # 3 in range, farther from sink
        (0, -20, 0),      # 4 closer but 180 away
    ])
    ids = [n.id for n in HHVBFStrategy().select_forwarders(field.get(0), field)]
    assert ids == [2]


def test_hhvbf_range_bounds_are_inclusive():
    field = NodeField.from_positions([
        (0, -200, 0),     # 0 source
        (0, -180, 0),     # 1 exactly 20
        (0, -50, 0),      # 2 exactly 150
        (0, -181, 0),     # 3 19 away
        (0, -49, 0),      # 4 151 away
    ])
    ids = [n.id for n in HHVBFStrategy().select_forwarders(field.get(0), field)]
    assert ids == [1, 2]


def test_olsr_direct_to_sink_regardless_of_neighbors():
    field = NodeField.from_positions([(0, -50, 0), (0, -60, 10), (0, -120, 0)])
    compute_neighbors(field)
    select_mprs(field)
    field.get(0).mprs = [1, 2]
    assert OLSRStrategy().select_forwarders(field.get(0), field) == []


def test_olsr_prefers_mprs_sorted_by_score():
    field = NodeField.from_positions(
        [(0, -300, 0), (0, -220, 0), (0, -230, 10), (0, -250, 40)],
        energies=[100.0, 30.0, 100.0, 90.0],
    )
    source = field.get(0)
    source.neighbors = [1, 2, 3]
    source.mprs = [1, 2]
    ranked = [n.id for n in OLSRStrategy().select_forwarders(source, field)]
    # score = 0.7 * d_sink - 0.3 * energy
    # node1: 154 - 9 = 145, node2: ~161 - 30 = ~131
    assert ranked == [2, 1]


def test_olsr_falls_back_to_neighbors_when_mprs_weak():
    field = NodeField.from_positions(
        [(0, -300, 0), (0, -220, 0), (0, -250, 0), (0, -210, 0)],
        energies=[100.0, 15.0, 50.0, 5.0],
    )
    source = field.get(0)
    source.neighbors = [1, 2, 3]
    source.mprs = [1]
    ranked = [n.id for n in OLSRStrategy().select_forwarders(source, field)]
    assert ranked == [1, 2]


def test_basic_strategy_and_factory():
    field = NodeField.from_positions([(0, -10, 0), (0, -20, 0), (0, -30, 0)], energies=[50, 10, 11])
    assert [n.id for n in make_strategy(None).select_forwarders(field.get(0), field)] == [2]
    assert type(make_strategy("none")) is RoutingStrategy
    assert isinstance(make_strategy("eedbr"), EEDBRStrategy)
    with pytest.raises(ValueError):
        make_strategy("AODV")


def test_strategy_metadata():
    assert make_strategy("EEDBR").ranked
    assert make_strategy("OLSR").uses_topology
    assert not make_strategy("VBF").uses_topology
    assert make_strategy("OLSR").efficiency == pytest.approx(0.72)
    assert make_strategy("BASIC").efficiency == pytest.approx(config.DEFAULT_EFFICIENCY)
    assert make_strategy("HHVBF").energy_factor == pytest.approx(0.85)
