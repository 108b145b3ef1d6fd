# env/config.py
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Literal, Mapping, Optional

# -------------------------
# 部署區域（單位：公尺）
# -------------------------
X_SPREAD = 300.0
Y_SPREAD = 300.0
Z_MIN = -250.0
Z_MAX = -30.0
# z = Z_MIN + U(DEPTH_BIAS_LOW, 1.0) * (Z_MAX - Z_MIN)
DEPTH_BIAS_LOW = 0.3

SINK_POSITION = (0.0, 0.0, 0.0)

# -------------------------
# 節點運動 / 能量
# -------------------------
INITIAL_ENERGY = 100.0
ENERGY_DECAY_PER_TICK = 0.01
ACTIVATION_PROBABILITY = 0.3
ACTIVATION_MIN_ENERGY = 20.0

RANDOM_WALK_FACTOR = 0.02
VELOCITY_DAMPING = 0.95
CURRENT_BLEND = 0.05
POSITION_SCALE = 10.0

BOUNDARY_RADIUS = 200.0
BOUNDARY_CORRECTION = 0.1
SURFACE_LIMIT_Y = -5.0
FLOOR_LIMIT_Y = -100.0
VERTICAL_CORRECTION = 0.1

# 2D 檢視：所有節點投影到固定深度
VIEW_2D_Z = -20.0

# -------------------------
# 路由參數
# -------------------------
COMM_RANGE = 100.0
RELAY_MIN_ENERGY = 10.0      # 低於此值不可當 relay（但仍可產生資料）
MPR_MIN_ENERGY = 20.0
VBF_PIPE_RADIUS = 50.0
HHVBF_PIPE_RADIUS = 70.0     # 只作紀錄，HHVBF 實際用 range + progress 判斷
HHVBF_MIN_HOP = 20.0
HHVBF_MAX_HOP = 150.0
OLSR_DIRECT_SINK_RANGE = 100.0
DEPTH_WEIGHT = 0.7
ENERGY_WEIGHT = 0.3

# -------------------------
# 封包 / 驅動器週期（模擬秒）
# -------------------------
PACKET_TRAVEL_DURATION = 3.0
NODE_PACKET_PROBABILITY = 0.05
SINK_PACKET_PROBABILITY = 0.03
MAX_NODE_PACKETS = 10
MAX_SINK_PACKETS = 15

KINEMATICS_BASE_INTERVAL = 0.3   # 實際週期 = base / speed_factor
STATS_INTERVAL = 0.2
CURRENT_UPDATE_INTERVAL = 1.0
TOPOLOGY_REFRESH_INTERVAL = 2.0
LIFETIME_PER_TICK = 0.1
DEFAULT_SIMULATION_SPEED = 50.0  # speed_factor = simulation_speed / 50

# -------------------------
# Protocol 常數
# -------------------------
ProtocolName = Literal["VBF", "HHVBF", "DBR", "EEDBR", "OLSR", "BASIC"]
PROTOCOLS = ("VBF", "HHVBF", "DBR", "EEDBR", "OLSR")

PROTOCOL_EFFICIENCY = {
    "VBF": 0.65,
    "HHVBF": 0.75,
    "DBR": 0.70,
    "EEDBR": 0.80,
    "OLSR": 0.72,
}
DEFAULT_EFFICIENCY = 0.65

PROTOCOL_ENERGY_FACTOR = {
    "VBF": 1.0,
    "HHVBF": 0.85,
    "DBR": 0.90,
    "EEDBR": 0.75,
    "OLSR": 1.1,
}
DEFAULT_ENERGY_FACTOR = 1.0

CSV_HEADER = ["Timestamp(s)", "AvgEnergy(J)", "MaxEnergy(J)", "NodeCount", "Protocol"]

ViewMode = Literal["3D", "2D"]


def normalize_protocol(name: Optional[str]) -> str:
    """
    把使用者輸入的 protocol 名稱轉成標準名稱：
      - None / "" / "none" / "basic" → "BASIC"
      - 其他大小寫不拘，必須是 PROTOCOLS 之一
    """
    if name is None:
        return "BASIC"
    key = str(name).strip().upper()
    if key in ("", "NONE", "BASIC"):
        return "BASIC"
    if key not in PROTOCOLS:
        raise ValueError(f"Unknown routing protocol: {name}")
    return key


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if not (low <= value <= high):
        raise ValueError(f"{name} must be in [{low}, {high}], got {value}")


@dataclass(frozen=True)
class SimulationConfig:
    """一次模擬的設定（對應 Settings 表單的欄位與範圍）"""
    node_count: int = 150
    sink_count: int = 1
    simulation_time: float = 100.0
    data_rate: float = 100.0
    packet_size: int = 64
    protocol: str = "HHVBF"
    num_packets: int = 100
    packet_interval: float = 1.0
    movement_speed: float = 1.0
    simulation_speed: float = DEFAULT_SIMULATION_SPEED
    view_mode: str = "3D"
    comm_range: float = COMM_RANGE
    seed: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "protocol", normalize_protocol(self.protocol))
        self.validate()

    def validate(self) -> None:
        if int(self.node_count) != self.node_count:
            raise ValueError(f"node_count must be an integer, got {self.node_count}")
        _check_range("node_count", self.node_count, 1, 500)
        if self.sink_count != 1:
            raise ValueError(f"sink_count is fixed at 1, got {self.sink_count}")
        _check_range("simulation_time", self.simulation_time, 10, 1000)
        _check_range("data_rate", self.data_rate, 10, 1000)
        _check_range("packet_size", self.packet_size, 16, 1024)
        _check_range("num_packets", self.num_packets, 10, 1000)
        _check_range("packet_interval", self.packet_interval, 0.1, 10)
        _check_range("movement_speed", self.movement_speed, 0, 10)
        _check_range("simulation_speed", self.simulation_speed, 1, 100)
        if self.view_mode not in ("3D", "2D"):
            raise ValueError(f"Unknown view mode: {self.view_mode}")
        if self.comm_range <= 0:
            raise ValueError(f"comm_range must be positive, got {self.comm_range}")

    @property
    def speed_factor(self) -> float:
        return self.simulation_speed / DEFAULT_SIMULATION_SPEED

    @classmethod
    def from_dict(cls, data: Mapping) -> "SimulationConfig":
        """從 dict（例如 JSON 設定檔）建立，忽略不認得的 key"""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})
