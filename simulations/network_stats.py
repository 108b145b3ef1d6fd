# simulations/network_stats.py
from __future__ import annotations

import csv
import logging
import math
import os
import time
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from env import config
from routing.strategies import RoutingStrategy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnergyReading:
    timestamp: float
    avg_energy: float
    max_energy: float
    node_count: int
    protocol: str


@dataclass
class NetworkStatistics:
    """
    累計的網路統計，每個 statistics tick 更新一次：
      - packets_sent     += U{1, 2, 3}
      - packets_received += floor(sent_inc * efficiency * U(0.9, 1.1))
      - avg / max energy 依 strategy 的 energy factor 累加
      - network_lifetime += 0.1 s
    """
    packets_sent: int = 0
    packets_received: int = 0
    avg_energy: float = 0.0
    max_energy: float = 0.0
    network_lifetime: float = 0.0
    elapsed: float = 0.0
    progress: int = 0
    readings: List[EnergyReading] = field(default_factory=list)

    @property
    def delivery_ratio(self) -> float:
        if self.packets_sent == 0:
            return 0.0
        return self.packets_received / self.packets_sent

    @property
    def finished(self) -> bool:
        return self.progress >= 100

    def record_tick(
        self,
        strategy: RoutingStrategy,
        node_count: int,
        rng: np.random.Generator,
        interval: float = config.STATS_INTERVAL,
    ) -> EnergyReading:
        protocol = strategy.name
        efficiency = strategy.efficiency
        energy_factor = strategy.energy_factor

        # 先算出所有新值，再一次寫回
        sent_inc = int(rng.integers(1, 4))
        received_inc = math.floor(sent_inc * efficiency * rng.uniform(0.9, 1.1))
        avg_energy = self.avg_energy + rng.random() * 0.1 * energy_factor
        max_energy = self.max_energy + rng.random() * 0.15 * energy_factor
        elapsed = self.elapsed + interval
        reading = EnergyReading(
            timestamp=elapsed,
            avg_energy=avg_energy,
            max_energy=max_energy,
            node_count=node_count,
            protocol=protocol,
        )

        self.packets_sent += sent_inc
        self.packets_received += received_inc
        self.avg_energy = avg_energy
        self.max_energy = max_energy
        self.network_lifetime += config.LIFETIME_PER_TICK
        self.elapsed = elapsed
        self.progress = min(100, self.progress + 1)
        self.readings.append(reading)
        return reading

    def reset(self) -> None:
        self.packets_sent = 0
        self.packets_received = 0
        self.avg_energy = 0.0
        self.max_energy = 0.0
        self.network_lifetime = 0.0
        self.elapsed = 0.0
        self.progress = 0
        self.readings = []


def csv_filename(protocol: str, now: Optional[float] = None) -> str:
    if now is None:
        now = time.time()
    return f"uwsn_energy_{protocol}_{int(now * 1000)}.csv"


def export_csv(
    readings: List[EnergyReading],
    protocol: str,
    directory: str = ".",
    now: Optional[float] = None,
) -> Optional[str]:
    """
    把 readings 寫成 CSV：
        Timestamp(s),AvgEnergy(J),MaxEnergy(J),NodeCount,Protocol
    沒有任何 reading 時不寫檔，回傳 None。
    """
    if not readings:
        logger.info("No energy readings recorded, nothing to export")
        return None

    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, csv_filename(protocol, now))
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(config.CSV_HEADER)
        for r in readings:
            writer.writerow([
                f"{r.timestamp:.1f}",
                f"{r.avg_energy:.2f}",
                f"{r.max_energy:.2f}",
                r.node_count,
                r.protocol,
            ])

    logger.info("Exported %d readings to %s", len(readings), path)
    return path
