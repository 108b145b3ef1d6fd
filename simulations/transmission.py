# simulations/transmission.py
from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import List, Literal, Optional, Tuple

import numpy as np

from env import config
from env.field import NodeField
from env.geometry import Point3, lerp
from routing.strategies import RoutingStrategy

logger = logging.getLogger(__name__)

PacketKind = Literal["node", "sink"]


@dataclass
class Packet:
    """
    封包事件：Emitted -> InFlight -> Delivered（從 live set 移除）
    start_pos / end_pos 在發送時就固定，不會跟著節點移動。
    """
    id: int
    kind: PacketKind
    source_id: int
    target_id: Optional[int]     # None 表示送往 sink
    start_pos: Point3
    end_pos: Point3
    created_at: float
    progress: float = 0.0
    forwarders: Tuple[int, ...] = ()

    @property
    def position(self) -> Point3:
        return lerp(self.start_pos, self.end_pos, self.progress)

    @property
    def delivered(self) -> bool:
        return self.progress >= 1.0


def packet_progress(created_at: float, now: float,
                    duration: float = config.PACKET_TRAVEL_DURATION) -> float:
    """progress = min(1, (now - created_at) / duration)，與模擬速度無關"""
    elapsed = max(0.0, now - created_at)
    return min(1.0, elapsed / duration)


class TransmissionSimulator:
    """
    每個 frame：
      - 兩個獨立的發送 channel（node->node, node->sink），各有 in-flight 上限
      - 呼叫 routing strategy 選 forwarder
      - 依時間推進封包，抵達後移除
    """

    def __init__(
        self,
        field: NodeField,
        strategy: RoutingStrategy,
        rng: np.random.Generator | None = None,
        travel_duration: float = config.PACKET_TRAVEL_DURATION,
    ):
        self.field = field
        self.strategy = strategy
        self.rng = rng if rng is not None else field.rng
        self.travel_duration = travel_duration
        self.packets: List[Packet] = []
        self._ids = itertools.count()

        # 累計事件數
        self.emitted = 0
        self.delivered = 0
        self.route_failures = 0

    def live_count(self, kind: PacketKind) -> int:
        return sum(1 for p in self.packets if p.kind == kind)

    # ---------- 發送 ----------
    def _pick(self, candidates):
        return candidates[int(self.rng.integers(len(candidates)))]

    def emit_node_packet(self, now: float) -> Optional[Packet]:
        """node -> node：source 從 active nodes 抽，target 由 strategy 決定"""
        sources = self.field.active_nodes()
        if len(self.field) < 2 or not sources:
            return None

        source = self._pick(sources)
        forwarders = self.strategy.select_forwarders(source, self.field)
        if not forwarders:
            # 沒有可用的 forwarder：這個 tick 不轉送
            self.route_failures += 1
            logger.debug("%s: no forwarder for node %d", self.strategy.name, source.id)
            return None

        target = forwarders[0] if self.strategy.ranked else self._pick(forwarders)
        packet = Packet(
            id=next(self._ids),
            kind="node",
            source_id=source.id,
            target_id=target.id,
            start_pos=source.position,
            end_pos=target.position,
            created_at=now,
            forwarders=tuple(n.id for n in forwarders),
        )
        self.packets.append(packet)
        self.emitted += 1
        return packet

    def emit_sink_packet(self, now: float) -> Optional[Packet]:
        """node -> sink：forwarders 只作紀錄（空 = 直接送 sink）"""
        sources = self.field.active_nodes()
        if not sources:
            return None

        source = self._pick(sources)
        forwarders = self.strategy.select_forwarders(source, self.field)
        packet = Packet(
            id=next(self._ids),
            kind="sink",
            source_id=source.id,
            target_id=None,
            start_pos=source.position,
            end_pos=self.field.sink.position,
            created_at=now,
            forwarders=tuple(n.id for n in forwarders),
        )
        self.packets.append(packet)
        self.emitted += 1
        return packet

    def sample(self, now: float) -> List[Packet]:
        """依機率嘗試兩個 channel 的發送，回傳新產生的封包"""
        new_packets = []
        if (
            self.live_count("node") < config.MAX_NODE_PACKETS
            and self.rng.random() < config.NODE_PACKET_PROBABILITY
        ):
            p = self.emit_node_packet(now)
            if p is not None:
                new_packets.append(p)

        if (
            self.live_count("sink") < config.MAX_SINK_PACKETS
            and self.rng.random() < config.SINK_PACKET_PROBABILITY
        ):
            p = self.emit_sink_packet(now)
            if p is not None:
                new_packets.append(p)

        return new_packets

    # ---------- 推進 ----------
    def advance(self, now: float) -> List[Packet]:
        """更新所有封包的 progress，移除已抵達的封包並回傳它們"""
        finished = []
        remaining = []
        for p in self.packets:
            p.progress = max(p.progress, packet_progress(p.created_at, now, self.travel_duration))
            if p.delivered:
                finished.append(p)
            else:
                remaining.append(p)
        self.packets = remaining
        self.delivered += len(finished)
        return finished

    def step(self, now: float) -> None:
        self.sample(now)
        self.advance(now)

    def clear(self) -> None:
        self.packets = []
