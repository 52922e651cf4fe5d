"""Benchmark fixtures for graph query performance tests."""

import random

import pytest

from graphsift import GraphQueryEngine

WORDS = [
    "storage", "raid", "backup", "network", "switch", "volume", "snapshot",
    "replica", "cluster", "archive", "disk", "controller", "cache", "tier",
]


def generate_random_graph(num_nodes: int, num_edges: int, seed: int = 42) -> GraphQueryEngine:
    """Generate a random property graph for benchmarking.

    Args:
        num_nodes: Number of nodes to create
        num_edges: Number of directed edges to create
        seed: Random seed for reproducibility

    Returns:
        GraphQueryEngine over the generated nodes and edges
    """
    rng = random.Random(seed)

    node_types = ["hardware", "software", "concept", "process"]
    nodes = [
        {
            "id": f"node_{i}",
            "label": f"{rng.choice(WORDS)} {rng.choice(WORDS)} {i}",
            "type": rng.choice(node_types),
            "properties": {"index": i, "weight": rng.randint(1, 100)},
        }
        for i in range(num_nodes)
    ]

    edge_types = ["uses", "contains", "depends_on", "replicates"]
    edges = [
        {
            "id": f"edge_{i}",
            "source": f"node_{rng.randrange(num_nodes)}",
            "target": f"node_{rng.randrange(num_nodes)}",
            "type": rng.choice(edge_types),
        }
        for i in range(num_edges)
    ]

    return GraphQueryEngine(nodes, edges)


@pytest.fixture
def graph_1k() -> GraphQueryEngine:
    """1K nodes, 5K edges - small benchmark graph."""
    return generate_random_graph(num_nodes=1000, num_edges=5000, seed=42)


@pytest.fixture
def graph_10k() -> GraphQueryEngine:
    """10K nodes, 30K edges - medium benchmark graph."""
    return generate_random_graph(num_nodes=10000, num_edges=30000, seed=42)
