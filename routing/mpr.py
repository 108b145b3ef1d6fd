# routing/mpr.py
from __future__ import annotations

import logging
from typing import Dict, List, Set

from env.field import NodeField
from env.nodes import SensorNode

logger = logging.getLogger(__name__)


def _reach_map(node: SensorNode, field: NodeField) -> Dict[int, List[int]]:
    """2-hop target -> 可以到達它的 1-hop neighbors（依 neighbor 順序）"""
    one_hop = set(node.neighbors)
    reach: Dict[int, List[int]] = {}
    for n_id in node.neighbors:
        for t in field.nodes[n_id].neighbors:
            if t == node.id or t in one_hop:
                continue
            reach.setdefault(t, []).append(n_id)
    return reach


def select_mprs_for_node(node: SensorNode, field: NodeField) -> List[int]:
    """
    OLSR MPR 選擇（greedy set cover）：
      1) 對每個 2-hop neighbor t，找出能到 t 的 1-hop neighbors
      2) 若某 t 只有唯一一個 neighbor 能到，該 neighbor 必選，並移除它覆蓋的所有 t
      3) 還有未覆蓋的 t 時，選「覆蓋最多未覆蓋 t」的 neighbor（同分取先出現者）；
         若沒有任何 neighbor 能再覆蓋，提早結束（合法結果，不是錯誤）
    回傳選中的 neighbor id（依選擇順序）。
    """
    if not node.two_hop_neighbors:
        return []

    uncovered: Set[int] = set(node.two_hop_neighbors)
    reach = _reach_map(node, field)
    mprs: List[int] = []

    def coverage_of(n_id: int) -> Set[int]:
        return set(field.nodes[n_id].neighbors) & uncovered

    # ---------- forced MPRs ----------
    for t, reachers in reach.items():
        if len(reachers) == 1:
            only = reachers[0]
            if only not in mprs:
                mprs.append(only)
            uncovered -= coverage_of(only)

    # ---------- greedy ----------
    while uncovered:
        best = None
        best_cov = 0
        for n_id in node.neighbors:
            if n_id in mprs:
                continue
            cov = len(coverage_of(n_id))
            if cov > best_cov:
                best_cov = cov
                best = n_id

        if best is None:
            logger.debug("Node %d: %d two-hop neighbors left uncovered", node.id, len(uncovered))
            break

        mprs.append(best)
        uncovered -= coverage_of(best)

    return mprs


def select_mprs(field: NodeField) -> NodeField:
    """對 field 中每個節點做 MPR 選擇（需先 compute_neighbors）"""
    for node in field:
        node.mprs = select_mprs_for_node(node, field)
    return field


def mpr_ids(field: NodeField) -> Set[int]:
    """被至少一個節點選為 MPR 的節點 id"""
    selected: Set[int] = set()
    for node in field:
        selected.update(node.mprs)
    return selected
