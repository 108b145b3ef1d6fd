# env/nodes.py
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from . import config
from .geometry import Point3, ORIGIN


@dataclass
class SensorNode:
    """水下感測節點"""
    id: int
    position: Point3
    velocity: Point3 = ORIGIN
    energy: float = config.INITIAL_ENERGY
    is_active: bool = False
    last_active: float = 0.0

    # OLSR only
    neighbors: List[int] = field(default_factory=list)
    two_hop_neighbors: List[int] = field(default_factory=list)
    mprs: List[int] = field(default_factory=list)

    # reset() 時回到初始部署
    initial_position: Optional[Point3] = None
    initial_velocity: Optional[Point3] = None

    def __post_init__(self):
        if self.initial_position is None:
            self.initial_position = self.position
        if self.initial_velocity is None:
            self.initial_velocity = self.velocity

    @property
    def depth(self) -> float:
        # y 軸為垂直方向，深度 = |y|
        return abs(self.position.y)

    @property
    def pos(self) -> Tuple[float, float, float]:
        return self.position.as_tuple()

    def clear_routing_state(self) -> None:
        self.neighbors = []
        self.two_hop_neighbors = []
        self.mprs = []


@dataclass(frozen=True)
class Sink:
    """固定的 sink（水面基地台）"""
    position: Point3 = Point3(*config.SINK_POSITION)

    @property
    def pos(self) -> Tuple[float, float, float]:
        return self.position.as_tuple()
