from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Deque, Dict, Iterable, Union

from forensics.core.models import GraphEdge, GraphModel


@dataclass
class ClusterResult:
    assignment: Dict[str, int] = field(default_factory=dict)
    count: int = 0


def find_clusters(
    node_ids: Iterable[str],
    edges: Iterable[GraphEdge],
    min_edge_value: Union[Decimal, int, float] = 0,
) -> ClusterResult:
    """
    Connected components over the undirected view of the graph.

    Cluster ids are handed out from 0 in node iteration order and neighbours
    are visited in the order their edges first appear, so the same graph
    always yields the same assignment. Edges worth less than `min_edge_value`
    do not join their endpoints.
    """
    threshold = Decimal(str(min_edge_value))

    # dict used as an ordered set
    adj: Dict[str, Dict[str, None]] = {n: {} for n in node_ids}
    for e in edges:
        if e.source not in adj or e.target not in adj:
            continue
        if threshold > 0 and e.value < threshold:
            continue
        adj[e.source][e.target] = None
        adj[e.target][e.source] = None

    result = ClusterResult()
    for start in adj:
        if start in result.assignment:
            continue

        cid = result.count
        q: Deque[str] = deque([start])
        result.assignment[start] = cid
        while q:
            cur = q.popleft()
            for nb in adj[cur]:
                if nb not in result.assignment:
                    result.assignment[nb] = cid
                    q.append(nb)
        result.count += 1

    return result


def assign_clusters(
    graph: GraphModel,
    min_edge_value: Union[Decimal, int, float] = 0,
) -> ClusterResult:
    """Compute clusters and write them back onto the graph and its nodes."""
    result = find_clusters(graph.nodes.keys(), graph.edges, min_edge_value)
    for node_id, node in graph.nodes.items():
        node.cluster_id = result.assignment.get(node_id)
    graph.cluster_assignment = dict(result.assignment)
    graph.cluster_count = result.count
    return result
