# simulations/engine.py
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from env import config
from env.config import SimulationConfig
from env.current import water_current_at
from env.field import NodeField
from env.geometry import Point3, ORIGIN
from env.topology import compute_neighbors
from routing.mpr import mpr_ids, select_mprs
from routing.strategies import make_strategy
from simulations.network_stats import NetworkStatistics, export_csv
from simulations.transmission import TransmissionSimulator

logger = logging.getLogger(__name__)


# -------------------------
# 給 presentation 的不可變 snapshot
# -------------------------

@dataclass(frozen=True)
class NodeSnapshot:
    id: int
    position: Point3
    energy: float
    depth: float
    is_active: bool
    is_mpr: bool


@dataclass(frozen=True)
class PacketSnapshot:
    id: int
    kind: str
    source_id: int
    target_id: Optional[int]
    position: Point3
    progress: float
    color: str


@dataclass(frozen=True)
class StatisticsSnapshot:
    packets_sent: int
    packets_received: int
    delivery_ratio: float
    avg_energy: float
    max_energy: float
    network_lifetime: float
    progress: int
    current: Point3


@dataclass(frozen=True)
class SimulationSnapshot:
    time: float
    running: bool
    protocol: str
    nodes: Tuple[NodeSnapshot, ...]
    packets: Tuple[PacketSnapshot, ...]
    stats: StatisticsSnapshot


class SimulationEngine:
    """
    單執行緒、合作式排程（模擬時鐘，單位：秒）：
      - current driver     ：每 CURRENT_UPDATE_INTERVAL 換一次海流向量
      - kinematics driver  ：每 KINEMATICS_BASE_INTERVAL / speed_factor 推進節點
                             （OLSR 另外每 TOPOLOGY_REFRESH_INTERVAL 重算 neighbors + MPR）
      - statistics driver  ：每 STATS_INTERVAL 更新統計，progress 到 100 自動停止
      - frame sampler      ：每次 advance() 發送 / 推進封包
    presentation 只讀 snapshot()，不會寫回 engine 狀態。
    """

    def __init__(self, sim_config: SimulationConfig, field: Optional[NodeField] = None):
        self.config = sim_config
        self.field = field if field is not None else NodeField.initialize(
            sim_config.node_count, seed=sim_config.seed
        )
        self.strategy = make_strategy(sim_config.protocol)
        self.transmission = TransmissionSimulator(self.field, self.strategy)
        self.stats = NetworkStatistics()

        self.now = 0.0
        self.running = False
        self.current: Point3 = ORIGIN

        self.kinematics_interval = config.KINEMATICS_BASE_INTERVAL / sim_config.speed_factor
        self._next_current = 0.0
        self._next_kinematics = 0.0
        self._next_stats = 0.0
        self._next_topology = 0.0

    @property
    def protocol(self) -> str:
        return self.strategy.name

    # ---------- 控制 ----------
    def start(self) -> None:
        if self.running:
            return
        self.stats.reset()
        self.running = True
        self.current = water_current_at(self.now)
        self._next_current = self.now + config.CURRENT_UPDATE_INTERVAL
        self._next_kinematics = self.now + self.kinematics_interval
        self._next_stats = self.now + config.STATS_INTERVAL
        if self.strategy.uses_topology:
            self.refresh_topology()
        logger.info(
            "Simulation started: protocol=%s, nodes=%d, speed=%.0f",
            self.protocol, len(self.field), self.config.simulation_speed,
        )

    def stop(self) -> None:
        if self.running:
            logger.info("Simulation stopped at t=%.2fs (progress %d%%)", self.now, self.stats.progress)
        self.running = False

    def set_simulation_speed(self, speed: float) -> None:
        """
        執行中調整 simulation_speed（1 ~ 100）。只影響 kinematics 週期，
        已發出的封包仍以 3 秒固定時間抵達。
        """
        self.config = replace(self.config, simulation_speed=speed)
        self.kinematics_interval = config.KINEMATICS_BASE_INTERVAL / self.config.speed_factor
        if self.running:
            self._next_kinematics = self.now + self.kinematics_interval
        logger.info("Simulation speed set to %.0f (kinematics every %.3fs)", speed, self.kinematics_interval)

    def reset(self) -> None:
        self.running = False
        self.now = 0.0
        self.current = ORIGIN
        self.stats.reset()
        self.field.reset()
        self.transmission.clear()

    # ---------- drivers ----------
    def refresh_topology(self) -> None:
        compute_neighbors(self.field, self.config.comm_range)
        select_mprs(self.field)
        self._next_topology = self.now + config.TOPOLOGY_REFRESH_INTERVAL

    def _update_current(self, t: float) -> None:
        self.current = water_current_at(t)
        self._next_current = t + config.CURRENT_UPDATE_INTERVAL

    def _kinematics_tick(self, t: float) -> None:
        self.field.tick(
            self.kinematics_interval,
            current=self.current,
            speed_factor=self.config.speed_factor,
            now=t,
            mobility=self.config.movement_speed,
        )
        if self.strategy.uses_topology and t >= self._next_topology:
            self.refresh_topology()
        self._next_kinematics = t + self.kinematics_interval

    def _statistics_tick(self, t: float) -> None:
        self.stats.record_tick(self.strategy, len(self.field), self.field.rng)
        self._next_stats = t + config.STATS_INTERVAL
        if self.stats.finished:
            self.stop()

    def advance(self, frame_dt: float) -> SimulationSnapshot:
        """
        推進一個 render frame。到期的 driver 依時間先後觸發，
        最後由 frame sampler 發送 / 推進封包。停止後呼叫不會改變任何狀態。
        """
        if not self.running:
            return self.snapshot()

        target = self.now + frame_dt
        while self.running:
            due = min(self._next_current, self._next_kinematics, self._next_stats)
            if due > target:
                break
            self.now = due
            if due == self._next_current:
                self._update_current(due)
            elif due == self._next_kinematics:
                self._kinematics_tick(due)
            else:
                self._statistics_tick(due)

        if self.running:
            self.now = target
            self.transmission.step(self.now)
        return self.snapshot()

    def run(self, duration: Optional[float] = None, frame_dt: float = 1 / 60) -> SimulationSnapshot:
        """headless 執行：直到 progress 100 或 duration（預設 simulation_time）用完"""
        if duration is None:
            duration = self.config.simulation_time
        self.start()
        end = self.now + duration
        while self.running and self.now < end:
            self.advance(min(frame_dt, end - self.now))
        self.stop()
        return self.snapshot()

    # ---------- 輸出 ----------
    def snapshot(self) -> SimulationSnapshot:
        selected = mpr_ids(self.field) if self.strategy.uses_topology else set()
        flat = self.config.view_mode == "2D"

        nodes = []
        for n in self.field:
            pos = n.position
            depth = n.depth
            if flat:
                # 只投影顯示用的 z 與 depth，position.y 保持真實值
                pos = Point3(pos.x, pos.y, config.VIEW_2D_Z)
                depth = abs(config.VIEW_2D_Z)
            nodes.append(NodeSnapshot(
                id=n.id,
                position=pos,
                energy=n.energy,
                depth=depth,
                is_active=n.is_active,
                is_mpr=n.id in selected,
            ))

        packets = tuple(
            PacketSnapshot(
                id=p.id,
                kind=p.kind,
                source_id=p.source_id,
                target_id=p.target_id,
                position=p.position,
                progress=p.progress,
                color=self.strategy.path_color,
            )
            for p in self.transmission.packets
        )

        s = self.stats
        stats = StatisticsSnapshot(
            packets_sent=s.packets_sent,
            packets_received=s.packets_received,
            delivery_ratio=s.delivery_ratio,
            avg_energy=s.avg_energy,
            max_energy=s.max_energy,
            network_lifetime=s.network_lifetime,
            progress=s.progress,
            current=self.current,
        )
        return SimulationSnapshot(
            time=self.now,
            running=self.running,
            protocol=self.protocol,
            nodes=tuple(nodes),
            packets=packets,
            stats=stats,
        )

    def export_readings(self, directory: str = ".") -> Optional[str]:
        return export_csv(self.stats.readings, self.protocol, directory)
