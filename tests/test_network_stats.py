import csv
import os

import numpy as np
import pytest

from env import config
from routing.strategies import make_strategy
from simulations.network_stats import EnergyReading, NetworkStatistics, csv_filename, export_csv


def test_empty_statistics():
    stats = NetworkStatistics()
    assert stats.delivery_ratio == 0.0
    assert stats.readings == []
    assert not stats.finished


def test_record_tick_updates_everything():
    rng = np.random.default_rng(0)
    stats = NetworkStatistics()
    prev_sent = prev_recv = 0
    for i in range(50):
        reading = stats.record_tick(make_strategy("EEDBR"), 25, rng)
        sent_inc = stats.packets_sent - prev_sent
        recv_inc = stats.packets_received - prev_recv
        assert 1 <= sent_inc <= 3
        assert 0 <= recv_inc <= sent_inc * 0.80 * 1.1
        prev_sent, prev_recv = stats.packets_sent, stats.packets_received

        assert reading.timestamp == pytest.approx(0.2 * (i + 1))
        assert reading.node_count == 25
        assert reading.protocol == "EEDBR"
        assert reading.avg_energy == stats.avg_energy

    assert len(stats.readings) == 50
    assert stats.network_lifetime == pytest.approx(5.0)
    assert stats.progress == 50
    assert 0.0 < stats.delivery_ratio < 1.0


def test_energy_increments_scale_with_protocol_factor():
    stats = NetworkStatistics()
    rng = np.random.default_rng(1)
    for _ in range(100):
        stats.record_tick(make_strategy("OLSR"), 10, rng)
    assert stats.avg_energy <= 100 * 0.1 * 1.1
    assert stats.max_energy <= 100 * 0.15 * 1.1
    assert stats.avg_energy > 0


def test_progress_caps_at_100():
    stats = NetworkStatistics()
    rng = np.random.default_rng(2)
    for _ in range(120):
        stats.record_tick(make_strategy("VBF"), 5, rng)
    assert stats.progress == 100
    assert stats.finished


def test_reset_clears_readings():
    stats = NetworkStatistics()
    stats.record_tick(make_strategy("DBR"), 5, np.random.default_rng(3))
    stats.reset()
    assert stats.packets_sent == 0
    assert stats.readings == []
    assert stats.elapsed == 0.0


def test_export_with_no_readings_is_noop(tmp_path):
    assert export_csv([], "VBF", str(tmp_path)) is None
    assert os.listdir(tmp_path) == []


def test_export_csv_format(tmp_path):
    readings = [
        EnergyReading(0.2, 0.05123, 0.0712, 10, "DBR"),
        EnergyReading(0.4, 0.1, 0.2, 10, "DBR"),
    ]
    path = export_csv(readings, "DBR", str(tmp_path), now=1700000000.0)
    assert os.path.basename(path) == "uwsn_energy_DBR_1700000000000.csv"

    with open(path, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == config.CSV_HEADER
    assert rows[1] == ["0.2", "0.05", "0.07", "10", "DBR"]
    assert rows[2] == ["0.4", "0.10", "0.20", "10", "DBR"]


def test_csv_filename_embeds_protocol():
    assert csv_filename("OLSR", now=1.5) == "uwsn_energy_OLSR_1500.csv"


def test_basic_strategy_uses_default_constants():
    strategy = make_strategy(None)
    stats = NetworkStatistics()
    reading = stats.record_tick(strategy, 8, np.random.default_rng(4))
    assert reading.protocol == "BASIC"
    assert stats.avg_energy <= 0.1 * config.DEFAULT_ENERGY_FACTOR
    assert stats.packets_received <= stats.packets_sent * config.DEFAULT_EFFICIENCY * 1.1
