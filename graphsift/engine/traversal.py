"""Breadth-first traversal over a snapshot's edge list.

No index is involved: adjacency is derived from the edge list passed in,
once per call, so a traversal never observes later changes to the graph.

Direction values:
    - "out": neighbors are targets of edges where the node is the source
    - "in": neighbors are sources of edges where the node is the target
    - "both": either of the above
"""

import math
from collections import defaultdict, deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from graphsift.models import Edge, Node, NodeId

DIRECTIONS = ("out", "in", "both")


def _check_direction(direction: str) -> None:
    if direction not in DIRECTIONS:
        raise ValueError(f"direction must be 'out', 'in', or 'both', got: {direction!r}")


def build_adjacency(edges: Iterable[Edge], direction: str = "both") -> dict[NodeId, list[NodeId]]:
    """Map each node id to its neighbor ids, in edge-list order."""
    _check_direction(direction)
    adjacency: dict[NodeId, list[NodeId]] = defaultdict(list)
    for edge in edges:
        if direction in ("out", "both"):
            adjacency[edge.source].append(edge.target)
        if direction in ("in", "both"):
            adjacency[edge.target].append(edge.source)
    return adjacency


def get_node_connections(
    node_id: NodeId, edges: Iterable[Edge], direction: str = "both"
) -> list[NodeId]:
    """Neighbor ids of a single node (may contain repeats for parallel edges)."""
    _check_direction(direction)
    connections: list[NodeId] = []
    for edge in edges:
        if direction in ("out", "both") and edge.source == node_id:
            connections.append(edge.target)
        if direction in ("in", "both") and edge.target == node_id:
            connections.append(edge.source)
    return connections


def find_connected_nodes(
    node_id: NodeId,
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    max_depth: float = 1,
    direction: str = "both",
) -> list[Node]:
    """Nodes reachable from node_id within max_depth hops, in BFS order.

    The start node itself is never returned. ``max_depth`` may be
    ``math.inf`` (or None) for the whole reachable component. Ids that do
    not resolve to a node are traversed but not returned.
    """
    if max_depth is None:
        max_depth = math.inf
    adjacency = build_adjacency(edges, direction)
    lookup: dict[NodeId, Node] = {}
    for node in nodes:
        lookup.setdefault(node.id, node)

    visited: set[NodeId] = set()
    result: list[Node] = []
    queue: deque[tuple[NodeId, int]] = deque([(node_id, 0)])

    while queue:
        current, depth = queue.popleft()
        if current in visited or depth > max_depth:
            continue
        visited.add(current)

        if depth > 0:
            node = lookup.get(current)
            if node is not None:
                result.append(node)

        if depth < max_depth:
            for neighbor in adjacency.get(current, ()):
                if neighbor not in visited:
                    queue.append((neighbor, depth + 1))

    return result


def find_path(
    source_id: NodeId,
    target_id: NodeId,
    edges: Sequence[Edge],
    max_depth: float = 10,
) -> list[NodeId] | None:
    """Shortest path by edge count, ignoring edge direction.

    Returns the list of node ids from source to target inclusive, ``[source_id]``
    when both ends are the same, or None when the target is not reachable
    within max_depth edges.
    """
    if source_id == target_id:
        return [source_id]
    if max_depth is None:
        max_depth = math.inf

    adjacency = build_adjacency(edges, "both")
    visited: set[NodeId] = {source_id}
    queue: deque[tuple[NodeId, list[NodeId], int]] = deque([(source_id, [source_id], 0)])

    while queue:
        current, path, depth = queue.popleft()
        if depth >= max_depth:
            continue
        for neighbor in adjacency.get(current, ()):
            if neighbor == target_id:
                return path + [neighbor]
            if neighbor not in visited:
                visited.add(neighbor)
                queue.append((neighbor, path + [neighbor], depth + 1))

    return None


@dataclass
class Degree:
    """Edge counts for one node.

    ``connections`` counts edges touching the node once each, so a self-loop
    adds 1 there but 2 to ``total``.
    """

    in_degree: int = 0
    out_degree: int = 0
    connections: int = 0

    @property
    def total(self) -> int:
        return self.in_degree + self.out_degree

    def of_kind(self, kind: str) -> int:
        if kind == "in":
            return self.in_degree
        if kind == "out":
            return self.out_degree
        return self.total


def degree_table(edges: Iterable[Edge]) -> dict[NodeId, Degree]:
    """Degree of every node id referenced by the edges."""
    table: dict[NodeId, Degree] = defaultdict(Degree)
    for edge in edges:
        table[edge.source].out_degree += 1
        table[edge.target].in_degree += 1
        table[edge.source].connections += 1
        if edge.target != edge.source:
            table[edge.target].connections += 1
    return table
