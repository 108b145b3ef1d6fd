# env/topology.py
from __future__ import annotations

import logging
from typing import List

import networkx as nx

from . import config
from .field import NodeField
from .geometry import distance

logger = logging.getLogger(__name__)


def build_link_graph(field: NodeField, comm_range: float = config.COMM_RANGE) -> nx.Graph:
    """
    用目前位置建無向連線圖：
      node: node id
      edge: (i, j) 若 distance(i, j) <= comm_range，weight = distance
    O(N^2)，只在 OLSR 週期性 refresh 時呼叫。
    """
    G = nx.Graph()
    nodes = list(field)
    for node in nodes:
        G.add_node(node.id)

    for a_idx, a in enumerate(nodes):
        for b in nodes[a_idx + 1:]:
            d = distance(a.position, b.position)
            if d <= comm_range:
                G.add_edge(a.id, b.id, weight=d)

    return G


def compute_neighbors(field: NodeField, comm_range: float = config.COMM_RANGE) -> NodeField:
    """
    計算每個節點的 1-hop / 2-hop neighbors（in place，回傳同一個 field）：
      neighbors(i)         = { j != i | d(i, j) <= range }
      two_hop_neighbors(i) = U_{j in neighbors(i)} neighbors(j) - {i} - neighbors(i)
    """
    G = build_link_graph(field, comm_range)

    for node in field:
        node.neighbors = sorted(G.neighbors(node.id))

    for node in field:
        one_hop = set(node.neighbors)
        two_hop: List[int] = []
        seen = set()
        for j in node.neighbors:
            for k in field.nodes[j].neighbors:
                if k == node.id or k in one_hop or k in seen:
                    continue
                seen.add(k)
                two_hop.append(k)
        node.two_hop_neighbors = two_hop

    logger.debug(
        "Topology refresh: %d links, %d components",
        G.number_of_edges(),
        nx.number_connected_components(G),
    )
    return field


def clear_neighbors(field: NodeField) -> None:
    for node in field:
        node.clear_routing_state()
