# simulations/run_simulation.py
from __future__ import annotations

import logging

from env.config import SimulationConfig
from simulations.engine import SimulationEngine


def run_single_simulation(
    protocol: str = "HHVBF",
    node_count: int = 50,
    seed: int | None = 0,
    export_dir: str | None = "results",
) -> SimulationEngine:
    """單次模擬：跑到 progress 100，印出統計並匯出 energy readings CSV"""
    sim_config = SimulationConfig(node_count=node_count, protocol=protocol, seed=seed)
    engine = SimulationEngine(sim_config)

    print(f"#Nodes = {len(engine.field)}, protocol = {engine.protocol}, "
          f"speed factor = {sim_config.speed_factor:.2f}")

    snap = engine.run()
    s = snap.stats
    tx = engine.transmission

    print("\n=== Simulation Result ===")
    print(f"Simulated time          : {snap.time:.1f} s")
    print(f"Packets sent            : {s.packets_sent}")
    print(f"Packets received        : {s.packets_received}")
    print(f"Packet delivery ratio   : {s.delivery_ratio * 100:.0f}%")
    print(f"Avg energy consumption  : {s.avg_energy:.2f} J")
    print(f"Max energy consumption  : {s.max_energy:.2f} J")
    print(f"Network lifetime        : {s.network_lifetime:.1f} s")
    print(f"Water current           : ({s.current.x:.2f}, {s.current.y:.2f}, {s.current.z:.2f})")

    print("\n  Packet events:")
    print(f"    Emitted        : {tx.emitted}")
    print(f"    Delivered      : {tx.delivered}")
    print(f"    No forwarder   : {tx.route_failures}")
    print(f"    In flight      : {len(snap.packets)}")

    active = [n for n in snap.nodes if n.is_active]
    print(f"\nActive nodes: {len(active)}/{len(snap.nodes)}")
    if engine.strategy.uses_topology:
        mprs = [n.id for n in snap.nodes if n.is_mpr]
        print(f"MPR nodes   : {mprs}")

    print("\nSample nodes:")
    for n in snap.nodes[:5]:
        print(
            f"  Node {n.id} depth={n.depth:.1f} energy={n.energy:.2f} "
            f"active={n.is_active}"
        )

    if export_dir is not None:
        path = engine.export_readings(export_dir)
        if path is None:
            print("\nNo readings to export.")
        else:
            print(f"\nReadings exported to {path}")

    return engine


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_single_simulation(protocol="HHVBF", seed=0)
