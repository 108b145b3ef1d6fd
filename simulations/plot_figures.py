# simulations/plot_figures.py
from __future__ import annotations

"""
繪製實驗圖表：
  圖1：各 protocol 的平均 / 最大能量消耗隨時間變化（來自 energy readings）
  圖2：各 protocol 的 packet delivery ratio 柱狀圖（多 seed 平均）
  圖3：OLSR field 的 3D 節點分布，標示 MPR 與 sink

執行方式：
  python -m simulations.plot_figures

會在 ./figures/ 底下輸出 PNG 檔。
"""

import logging
import os
from typing import Dict, List

import numpy as np
import matplotlib.pyplot as plt

from env import config
from env.config import SimulationConfig
from simulations.engine import SimulationEngine
from simulations.network_stats import EnergyReading


def collect_readings(node_count: int = 50, seed: int = 0) -> Dict[str, List[EnergyReading]]:
    readings: Dict[str, List[EnergyReading]] = {}
    for p in config.PROTOCOLS:
        engine = SimulationEngine(SimulationConfig(node_count=node_count, protocol=p, seed=seed))
        engine.run()
        readings[p] = list(engine.stats.readings)
    return readings


def collect_delivery_ratios(
    num_scenarios: int = 10,
    node_count: int = 50,
    base_seed: int = 0,
) -> Dict[str, np.ndarray]:
    ratios: Dict[str, np.ndarray] = {}
    for p in config.PROTOCOLS:
        vals = []
        for i in range(num_scenarios):
            cfg = SimulationConfig(node_count=node_count, protocol=p, seed=base_seed + i)
            vals.append(SimulationEngine(cfg).run().stats.delivery_ratio)
        ratios[p] = np.array(vals, dtype=float)
    return ratios


# ---------- 繪圖函式們 ----------

def plot_fig1_energy(readings: Dict[str, List[EnergyReading]], outdir: str):
    fig, (ax_avg, ax_max) = plt.subplots(1, 2, figsize=(10, 4))
    for p, rs in readings.items():
        t = [r.timestamp for r in rs]
        ax_avg.plot(t, [r.avg_energy for r in rs], label=p)
        ax_max.plot(t, [r.max_energy for r in rs], label=p)

    ax_avg.set_xlabel("Time (s)")
    ax_avg.set_ylabel("Average energy (J)")
    ax_max.set_xlabel("Time (s)")
    ax_max.set_ylabel("Max energy (J)")
    ax_avg.legend()
    fig.suptitle("Figure 1: Energy consumption over time")
    fig.tight_layout()

    os.makedirs(outdir, exist_ok=True)
    fig.savefig(os.path.join(outdir, "fig1_energy_over_time.png"), dpi=300)
    plt.close(fig)


def plot_fig2_delivery(ratios: Dict[str, np.ndarray], outdir: str):
    protocols = list(ratios.keys())
    means = [float(np.nanmean(ratios[p])) for p in protocols]
    x = np.arange(len(protocols))

    plt.figure()
    plt.bar(x, means)
    plt.xticks(x, protocols)
    plt.ylabel("Packet delivery ratio")
    plt.ylim(0, 1)
    plt.title("Figure 2: Delivery ratio across protocols")
    plt.tight_layout()

    os.makedirs(outdir, exist_ok=True)
    plt.savefig(os.path.join(outdir, "fig2_delivery_ratio.png"), dpi=300)
    plt.close()


def plot_fig3_olsr_field(node_count: int, seed: int, outdir: str):
    engine = SimulationEngine(SimulationConfig(node_count=node_count, protocol="OLSR", seed=seed))
    engine.start()
    snap = engine.snapshot()
    engine.stop()

    pos = np.array([n.position.as_tuple() for n in snap.nodes])
    is_mpr = np.array([n.is_mpr for n in snap.nodes], dtype=bool)

    fig = plt.figure()
    ax = fig.add_subplot(projection="3d")
    ax.scatter(pos[~is_mpr, 0], pos[~is_mpr, 1], pos[~is_mpr, 2], c="#e74c3c", label="Sensor")
    ax.scatter(pos[is_mpr, 0], pos[is_mpr, 1], pos[is_mpr, 2], c="#E91E63", marker="s", label="MPR")
    sx, sy, sz = config.SINK_POSITION
    ax.scatter([sx], [sy], [sz], c="#2196f3", marker="^", s=80, label="Sink")
    ax.set_title("Figure 3: OLSR field and MPRs")
    ax.legend()
    fig.tight_layout()

    os.makedirs(outdir, exist_ok=True)
    fig.savefig(os.path.join(outdir, "fig3_olsr_field.png"), dpi=300)
    plt.close(fig)


def main():
    outdir = "figures"

    print("Running one simulation per protocol...")
    readings = collect_readings(node_count=50, seed=0)
    print("Plotting Figure 1 (energy over time)...")
    plot_fig1_energy(readings, outdir)

    print("Running multi-seed evaluation...")
    ratios = collect_delivery_ratios(num_scenarios=10, node_count=50, base_seed=0)
    print("Plotting Figure 2 (delivery ratio)...")
    plot_fig2_delivery(ratios, outdir)

    print("Plotting Figure 3 (OLSR field)...")
    plot_fig3_olsr_field(node_count=50, seed=0, outdir=outdir)

    print(f"All figures saved under ./{outdir}/")


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    main()
