# routing/strategies.py
from __future__ import annotations

from typing import Dict, List, Optional, Type

from env import config
from env.field import NodeField
from env.geometry import add, distance, dot, normalize, scale, vector
from env.nodes import SensorNode


class RoutingStrategy:
    """
    Next-hop forwarder 選擇的共同介面：
        select_forwarders(source, field) -> 候選節點（best first）
    空 list 是合法結果，代表「這個 tick 不轉送 / 直接送 sink」。
    所有 variant 都排除 source 本身與 energy < RELAY_MIN_ENERGY 的節點。
    """

    name: str = "BASIC"
    ranked: bool = False
    uses_topology: bool = False
    path_color: str = "#bbbbbb"

    @property
    def efficiency(self) -> float:
        return config.PROTOCOL_EFFICIENCY.get(self.name, config.DEFAULT_EFFICIENCY)

    @property
    def energy_factor(self) -> float:
        return config.PROTOCOL_ENERGY_FACTOR.get(self.name, config.DEFAULT_ENERGY_FACTOR)

    def _relays(self, source: SensorNode, field: NodeField) -> List[SensorNode]:
        return [
            n for n in field
            if n.id != source.id and n.energy >= config.RELAY_MIN_ENERGY
        ]

    def select_forwarders(self, source: SensorNode, field: NodeField) -> List[SensorNode]:
        return [n for n in self._relays(source, field) if n.energy > config.RELAY_MIN_ENERGY]

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class VBFStrategy(RoutingStrategy):
    """Vector-Based Forwarding：source -> sink 直線周圍半徑 50 的 virtual pipe"""

    name = "VBF"
    path_color = "#f44336"

    def __init__(self, pipe_radius: float = config.VBF_PIPE_RADIUS):
        self.pipe_radius = pipe_radius

    def select_forwarders(self, source, field):
        to_sink = vector(source.position, field.sink.position)
        try:
            axis = normalize(to_sink)
        except ValueError:
            # source 正好在 sink 上，沒有方向可言
            return []

        chosen = []
        for n in self._relays(source, field):
            proj = dot(vector(source.position, n.position), axis)
            if proj <= 0:
                continue
            foot = add(source.position, scale(axis, proj))
            if distance(n.position, foot) <= self.pipe_radius:
                chosen.append(n)
        return chosen


class HHVBFStrategy(RoutingStrategy):
    """
    Hop-by-Hop VBF：距離 source 在 [20, 150] 之內，且比 source 更接近 sink。
    pipe_radius 只保留為參數，實際判斷只用 range + progress。
    """

    name = "HHVBF"
    path_color = "#9c27b0"

    def __init__(
        self,
        min_hop: float = config.HHVBF_MIN_HOP,
        max_hop: float = config.HHVBF_MAX_HOP,
        pipe_radius: float = config.HHVBF_PIPE_RADIUS,
    ):
        self.min_hop = min_hop
        self.max_hop = max_hop
        self.pipe_radius = pipe_radius

    def select_forwarders(self, source, field):
        source_to_sink = field.distance_to_sink(source)
        chosen = []
        for n in self._relays(source, field):
            d = distance(source.position, n.position)
            if d < self.min_hop or d > self.max_hop:
                continue
            if field.distance_to_sink(n) < source_to_sink:
                chosen.append(n)
        return chosen


class DBRStrategy(RoutingStrategy):
    """Depth-Based Routing：只轉給比 source 淺的節點"""

    name = "DBR"
    path_color = "#4caf50"

    def select_forwarders(self, source, field):
        return [n for n in self._relays(source, field) if n.depth < source.depth]


def eedbr_score(node: SensorNode) -> float:
    """0.7 * (100 - depth) + 0.3 * energy，越大越好"""
    return config.DEPTH_WEIGHT * (100 - node.depth) + config.ENERGY_WEIGHT * node.energy


class EEDBRStrategy(DBRStrategy):
    """Energy-Efficient DBR：DBR 的候選，再依深度 + 剩餘能量排序"""

    name = "EEDBR"
    ranked = True
    path_color = "#ff9800"

    def select_forwarders(self, source, field):
        candidates = super().select_forwarders(source, field)
        return sorted(candidates, key=eedbr_score, reverse=True)


class OLSRStrategy(RoutingStrategy):
    """
    OLSR：
      1) 距離 sink < 100 → 直接送 sink（回傳空 list）
      2) 有 energy > 20 的 MPR → 依 0.7 * dist_to_sink - 0.3 * energy 由小到大
      3) 否則 fallback 到 energy > 10 的 1-hop neighbors，依 dist_to_sink 由小到大
    neighbors / mprs 需先由 topology + mpr refresh 填好。
    """

    name = "OLSR"
    ranked = True
    uses_topology = True
    path_color = "#00bcd4"

    def __init__(self, direct_range: float = config.OLSR_DIRECT_SINK_RANGE):
        self.direct_range = direct_range

    def _lookup(self, ids: List[int], source: SensorNode, field: NodeField) -> List[SensorNode]:
        found = []
        for node_id in ids:
            n = field.get(node_id)
            if n is None or n.id == source.id or n.energy < config.RELAY_MIN_ENERGY:
                continue
            found.append(n)
        return found

    def select_forwarders(self, source, field):
        if field.distance_to_sink(source) < self.direct_range:
            return []

        mpr_nodes = [
            n for n in self._lookup(source.mprs, source, field)
            if n.energy > config.MPR_MIN_ENERGY
        ]
        if mpr_nodes:
            return sorted(
                mpr_nodes,
                key=lambda n: config.DEPTH_WEIGHT * field.distance_to_sink(n)
                - config.ENERGY_WEIGHT * n.energy,
            )

        neighbors = [
            n for n in self._lookup(source.neighbors, source, field)
            if n.energy > config.RELAY_MIN_ENERGY
        ]
        return sorted(neighbors, key=field.distance_to_sink)


STRATEGIES: Dict[str, Type[RoutingStrategy]] = {
    "VBF": VBFStrategy,
    "HHVBF": HHVBFStrategy,
    "DBR": DBRStrategy,
    "EEDBR": EEDBRStrategy,
    "OLSR": OLSRStrategy,
    "BASIC": RoutingStrategy,
}


def make_strategy(protocol: Optional[str]) -> RoutingStrategy:
    """依 protocol 名稱建立 strategy（一次模擬只選一次）"""
    return STRATEGIES[config.normalize_protocol(protocol)]()


def select_forwarders(
    source: SensorNode,
    field: NodeField,
    protocol: Optional[str],
) -> List[SensorNode]:
    return make_strategy(protocol).select_forwarders(source, field)
