import csv
import os

import pytest

from env import config
from env.config import SimulationConfig
from env.current import water_current_at
from routing.mpr import mpr_ids
from simulations.engine import SimulationEngine


def make_engine(**kwargs):
    params = {"node_count": 20, "protocol": "HHVBF", "seed": 5}
    params.update(kwargs)
    return SimulationEngine(SimulationConfig(**params))


def test_run_until_progress_complete():
    engine = make_engine()
    snap = engine.run()
    assert not snap.running
    assert snap.stats.progress == 100
    assert len(engine.stats.readings) == 100
    assert snap.stats.network_lifetime == pytest.approx(10.0)
    assert snap.time == pytest.approx(100 * config.STATS_INTERVAL)
    assert 100 <= snap.stats.packets_sent <= 300
    assert snap.stats.packets_received <= snap.stats.packets_sent


def test_stopped_engine_is_frozen():
    engine = make_engine()
    engine.start()
    for _ in range(30):
        engine.advance(1 / 60)
    engine.stop()
    before = engine.snapshot()
    after = engine.advance(1.0)
    assert after == before
    assert engine.now == before.time


def test_not_started_engine_does_nothing():
    engine = make_engine()
    snap = engine.advance(5.0)
    assert snap.time == 0.0
    assert snap.stats.packets_sent == 0


def test_current_driver_updates_vector():
    engine = make_engine()
    engine.start()
    while engine.now < 1.05:
        engine.advance(1 / 60)
    assert engine.snapshot().stats.current == water_current_at(1.0)


def test_nodes_move_and_depth_stays_consistent():
    engine = make_engine(simulation_speed=100, view_mode="3D")
    start = {n.id: n.position for n in engine.field}
    engine.start()
    for _ in range(120):
        engine.advance(1 / 60)
    moved = [n for n in engine.field if n.position != start[n.id]]
    assert moved
    for n in engine.snapshot().nodes:
        assert n.depth == abs(n.position.y)


def test_olsr_refresh_marks_mprs():
    engine = make_engine(node_count=60, protocol="OLSR")
    engine.start()
    snap = engine.snapshot()
    assert any(n.neighbors for n in engine.field)
    flagged = {n.id for n in snap.nodes if n.is_mpr}
    assert flagged == mpr_ids(engine.field)


def test_non_olsr_never_populates_neighbors():
    engine = make_engine(protocol="DBR")
    engine.run()
    assert all(n.neighbors == [] and n.mprs == [] for n in engine.field)
    assert not any(n.is_mpr for n in engine.snapshot().nodes)


def test_2d_view_projects_snapshot_only():
    engine = make_engine(view_mode="2D")
    snap = engine.snapshot()
    assert all(n.position.z == config.VIEW_2D_Z for n in snap.nodes)
    assert all(n.depth == abs(config.VIEW_2D_Z) for n in snap.nodes)
    # y 不投影，所以 2D snapshot 的 depth 不等於 |y|
    real_y = {n.id: n.position.y for n in engine.field}
    assert all(n.position.y == real_y[n.id] for n in snap.nodes)
    assert any(n.position.z != config.VIEW_2D_Z for n in engine.field)


def test_snapshot_is_immutable():
    snap = make_engine().snapshot()
    with pytest.raises(AttributeError):
        snap.nodes[0].energy = 0.0
    assert isinstance(snap.nodes, tuple)


def test_reset_clears_run():
    engine = make_engine()
    engine.run()
    engine.reset()
    snap = engine.snapshot()
    assert snap.time == 0.0
    assert snap.stats.packets_sent == 0
    assert snap.packets == ()
    assert all(n.energy == config.INITIAL_ENERGY for n in snap.nodes)


def test_export_before_any_tick_is_noop(tmp_path):
    engine = make_engine()
    assert engine.export_readings(str(tmp_path)) is None
    assert os.listdir(tmp_path) == []


def test_export_after_run(tmp_path):
    engine = make_engine(protocol="VBF")
    engine.run()
    path = engine.export_readings(str(tmp_path))
    assert os.path.basename(path).startswith("uwsn_energy_VBF_")

    with open(path, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == config.CSV_HEADER
    assert len(rows) == 101
    assert rows[1][0] == "0.2"
    assert rows[-1][0] == "20.0"
    assert all(r[3] == "20" and r[4] == "VBF" for r in rows[1:])


def test_speed_change_rescales_kinematics_interval():
    engine = make_engine()
    engine.start()
    engine.advance(0.5)
    assert engine.kinematics_interval == pytest.approx(config.KINEMATICS_BASE_INTERVAL)

    engine.set_simulation_speed(100)
    assert engine.config.simulation_speed == 100
    assert engine.config.speed_factor == pytest.approx(2.0)
    assert engine.kinematics_interval == pytest.approx(config.KINEMATICS_BASE_INTERVAL / 2.0)
    assert engine._next_kinematics == pytest.approx(engine.now + engine.kinematics_interval)
    assert engine.config.protocol == "HHVBF"


@pytest.mark.parametrize("speed", [0, 101])
def test_speed_change_out_of_range_rejected(speed):
    engine = make_engine()
    with pytest.raises(ValueError):
        engine.set_simulation_speed(speed)
    assert engine.config.simulation_speed == config.DEFAULT_SIMULATION_SPEED
