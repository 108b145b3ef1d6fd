# simulations/compare_protocols.py
from __future__ import annotations

import logging
from typing import Dict, List

import numpy as np

from env import config
from env.config import SimulationConfig
from env.field import NodeField
from env.topology import compute_neighbors
from routing.mpr import select_mprs
from routing.strategies import make_strategy
from simulations.engine import SimulationEngine


def forwarder_metrics(field: NodeField, protocol: str) -> dict:
    """
    在同一個 field 上，對每個節點當 source 算一次 forwarders：
      - no_forwarder_ratio：沒有任何候選的 source 比例
      - avg_candidates    ：平均候選數
      - avg_progress      ：最佳候選比 source 更接近 sink 的距離（公尺）
    """
    strategy = make_strategy(protocol)
    if strategy.uses_topology:
        compute_neighbors(field)
        select_mprs(field)

    counts = []
    progress = []
    for source in field:
        forwarders = strategy.select_forwarders(source, field)
        counts.append(len(forwarders))
        if forwarders:
            progress.append(field.distance_to_sink(source) - field.distance_to_sink(forwarders[0]))

    counts_arr = np.array(counts, dtype=float)
    return {
        "no_forwarder_ratio": float((counts_arr == 0).mean()),
        "avg_candidates": float(counts_arr.mean()),
        "avg_progress": float(np.mean(progress)) if progress else float("nan"),
    }


def evaluate_protocol(protocol: str, node_count: int, seed: int) -> dict:
    """一個 seed 下跑完整模擬，回傳統計 + forwarder metrics"""
    engine = SimulationEngine(SimulationConfig(node_count=node_count, protocol=protocol, seed=seed))
    metrics = forwarder_metrics(NodeField.initialize(node_count, seed=seed), protocol)

    snap = engine.run()
    metrics.update({
        "delivery_ratio": snap.stats.delivery_ratio,
        "avg_energy": snap.stats.avg_energy,
        "max_energy": snap.stats.max_energy,
        "network_lifetime": snap.stats.network_lifetime,
    })
    return metrics


def run_protocol_comparison(
    num_scenarios: int = 10,
    node_count: int = 50,
    base_seed: int = 0,
) -> Dict[str, Dict[str, np.ndarray]]:
    protocols: List[str] = list(config.PROTOCOLS)
    all_metrics: Dict[str, List[dict]] = {p: [] for p in protocols}

    for i in range(num_scenarios):
        seed = base_seed + i
        for p in protocols:
            all_metrics[p].append(evaluate_protocol(p, node_count, seed))

    keys = list(all_metrics[protocols[0]][0].keys())
    arr = {
        p: {k: np.array([m[k] for m in all_metrics[p]], dtype=float) for k in keys}
        for p in protocols
    }

    print(f"=== Comparison over {num_scenarios} scenarios ({node_count} nodes) ===\n")
    for p in protocols:
        print(f">> {p}:")
        for k in keys:
            vals = arr[p][k]
            print(f"  {k:20s}: mean = {float(np.nanmean(vals)):.4f}, "
                  f"std = {float(np.nanstd(vals)):.4f}")
        print()

    base = "VBF"
    for p in protocols:
        if p == base:
            continue
        print(f">> Difference ({p} - {base}):")
        for k in keys:
            diff_mean = float(np.nanmean(arr[p][k] - arr[base][k]))
            print(f"  {k:20s}: Δmean = {diff_mean:+.4f}")
        print()

    return arr


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    run_protocol_comparison(num_scenarios=10, node_count=50, base_seed=0)
