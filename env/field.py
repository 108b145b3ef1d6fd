# env/field.py
from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from . import config
from .geometry import Point3, ORIGIN, distance
from .nodes import SensorNode, Sink

logger = logging.getLogger(__name__)


class NodeField:
    """
    一次模擬中所有感測節點 + sink 的擁有者。

    - nodes: id -> SensorNode（插入順序 = 建立順序，id 為 0..count-1）
    - sink:  固定在原點
    - rng:   本次模擬的亂數產生器（placement / kinematics / 封包抽樣共用）
    """

    def __init__(
        self,
        nodes: Iterable[SensorNode],
        sink: Optional[Sink] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.nodes: Dict[int, SensorNode] = {}
        for node in nodes:
            if node.id in self.nodes:
                raise ValueError(f"Duplicate node id: {node.id}")
            self.nodes[node.id] = node
        self.sink = sink if sink is not None else Sink()
        self.rng = rng if rng is not None else np.random.default_rng()

    # ---------- 建立 ----------
    @classmethod
    def initialize(cls, count: int, seed: int | None = None) -> "NodeField":
        """
        分層隨機部署 count 個節點：
          x, y ~ U(-spread/2, spread/2)
          z    = Z_MIN + U(0.3, 1.0) * (Z_MAX - Z_MIN)
        所有節點 energy = 100、inactive。
        """
        if int(count) != count:
            raise ValueError(f"Node count must be an integer, got {count}")
        if count < 1:
            raise ValueError(f"Node count must be >= 1, got {count}")

        rng = np.random.default_rng(seed)
        nodes: List[SensorNode] = []
        for i in range(int(count)):
            z = config.Z_MIN + rng.uniform(config.DEPTH_BIAS_LOW, 1.0) * (config.Z_MAX - config.Z_MIN)
            position = Point3(
                float(rng.uniform(-config.X_SPREAD / 2, config.X_SPREAD / 2)),
                float(rng.uniform(-config.Y_SPREAD / 2, config.Y_SPREAD / 2)),
                float(z),
            )
            velocity = Point3(
                float((rng.random() - 0.5) * 0.1),
                float((rng.random() - 0.5) * 0.1),
                float((rng.random() - 0.5) * 0.05),
            )
            nodes.append(SensorNode(id=i, position=position, velocity=velocity))

        logger.debug("Initialized field with %d nodes (seed=%s)", count, seed)
        return cls(nodes, rng=rng)

    @classmethod
    def from_positions(
        cls,
        positions: Sequence[Sequence[float]],
        energies: Optional[Sequence[float]] = None,
        seed: int | None = None,
    ) -> "NodeField":
        """用指定座標建立 field（腳本化情境 / 測試用），id 依序為 0..n-1"""
        if len(positions) < 1:
            raise ValueError("Node count must be >= 1, got 0")
        if energies is not None and len(energies) != len(positions):
            raise ValueError("energies must have the same length as positions")

        nodes = []
        for i, p in enumerate(positions):
            energy = config.INITIAL_ENERGY if energies is None else float(energies[i])
            nodes.append(SensorNode(id=i, position=Point3.of(p), energy=energy))
        return cls(nodes, rng=np.random.default_rng(seed))

    # ---------- 查詢 ----------
    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[SensorNode]:
        return iter(self.nodes.values())

    def get(self, node_id: int) -> Optional[SensorNode]:
        return self.nodes.get(node_id)

    def active_nodes(self) -> List[SensorNode]:
        """目前 active 的節點（由 node table 過濾得到，不另外存一份）"""
        return [n for n in self.nodes.values() if n.is_active]

    def distance_to_sink(self, node: SensorNode) -> float:
        return distance(node.position, self.sink.position)

    def energy_summary(self) -> Tuple[float, float]:
        """回傳 (平均剩餘能量, 最大剩餘能量)"""
        energies = np.array([n.energy for n in self.nodes.values()], dtype=float)
        return float(energies.mean()), float(energies.max())

    # ---------- 每個 tick 的運動 / 能量 ----------
    def tick(
        self,
        dt: float,
        current: Point3 = ORIGIN,
        speed_factor: float = 1.0,
        now: float = 0.0,
        mobility: float = 1.0,
    ) -> None:
        """
        推進一個 kinematics/energy tick：
          (a) energy 每 tick 減少 0.01 * speed_factor（下限 0）
          (b) inactive 且 energy > 20 的節點以機率 0.3 * speed_factor 變成 active
          (c) velocity = (v + random walk) * 0.95 + 0.05 * current，position += v * dt * 10
          (d) 超出水平邊界 / 太淺 / 太深時修正 velocity
        depth 由 position 推得，所以永遠與 position 一致。
        """
        p_activate = min(1.0, config.ACTIVATION_PROBABILITY * speed_factor)
        decay = config.ENERGY_DECAY_PER_TICK * speed_factor
        walk = config.RANDOM_WALK_FACTOR * mobility

        for node in self.nodes.values():
            # (a) energy
            node.energy = max(0.0, node.energy - decay)

            # (b) activation
            if (
                not node.is_active
                and node.energy > config.ACTIVATION_MIN_ENERGY
                and self.rng.random() < p_activate
            ):
                node.is_active = True
                node.last_active = now

            # (c) damped random walk + current drift
            jitter = self.rng.random(3) - 0.5
            v = node.velocity
            vx = (v.x + jitter[0] * walk) * config.VELOCITY_DAMPING + current.x * config.CURRENT_BLEND
            vy = (v.y + jitter[1] * walk) * config.VELOCITY_DAMPING + current.y * config.CURRENT_BLEND
            vz = (v.z + jitter[2] * walk) * config.VELOCITY_DAMPING + current.z * config.CURRENT_BLEND

            p = node.position
            step = dt * config.POSITION_SCALE
            new_pos = Point3(p.x + vx * step, p.y + vy * step, p.z + vz * step)

            # (d) boundary containment
            if math.hypot(new_pos.x, new_pos.z) > config.BOUNDARY_RADIUS:
                angle = math.atan2(new_pos.z, new_pos.x)
                vx -= math.cos(angle) * config.BOUNDARY_CORRECTION
                vz -= math.sin(angle) * config.BOUNDARY_CORRECTION

            if new_pos.y > config.SURFACE_LIMIT_Y:
                vy = -config.VERTICAL_CORRECTION
            elif new_pos.y < config.FLOOR_LIMIT_Y:
                vy = config.VERTICAL_CORRECTION

            node.velocity = Point3(float(vx), float(vy), float(vz))
            node.position = new_pos

    def reset(self) -> None:
        """
        回到初始狀態：energy = 100、清除 active / neighbor / MPR，
        位置與速度回到初始部署。不會重新亂數部署（那要呼叫 initialize）。
        """
        for node in self.nodes.values():
            node.energy = config.INITIAL_ENERGY
            node.is_active = False
            node.last_active = 0.0
            node.clear_routing_state()
            node.position = node.initial_position
            node.velocity = node.initial_velocity
        logger.debug("Field reset (%d nodes)", len(self.nodes))
