"""Shared fixtures for graphsift tests."""

import json

import pytest

from graphsift import GraphQueryEngine
from graphsift.models import Edge, Node


@pytest.fixture()
def small_nodes():
    """Three nodes: one hardware device and two concepts."""
    return [
        Node(id=1, label="NAS Device", type="hardware", properties={}),
        Node(id=2, label="RAID", type="concept", properties={}),
        Node(id=3, label="Storage", type="concept", properties={}),
    ]


@pytest.fixture()
def small_edges():
    """The NAS device points at both concepts."""
    return [
        Edge(id="e1", source=1, target=2, type="uses"),
        Edge(id="e2", source=1, target=3, type="provides"),
    ]


@pytest.fixture()
def engine(small_nodes, small_edges):
    """Engine over the three-node graph, no store."""
    return GraphQueryEngine(small_nodes, small_edges)


@pytest.fixture()
def lab_graph():
    """A storage-lab graph with properties, a cycle and an isolated node.

    Nodes (7):
        nas1 (hardware, capacity 8), nas2 (hardware, capacity 16),
        raid (concept), backup (process), snapshot (process),
        zfs (software), orphan (concept, no edges)

    Edges (7):
        l1 nas1 -> raid (uses), l2 nas2 -> raid (uses),
        l3 raid -> backup (enables), l4 backup -> snapshot (includes),
        l5 snapshot -> raid (depends_on), l6 nas1 -> zfs (runs),
        l7 nas2 -> zfs (runs)
    """
    nodes = [
        {"id": "nas1", "label": "Synology NAS", "type": "hardware",
         "properties": {"capacity": 8, "vendor": "Synology"}},
        {"id": "nas2", "label": "QNAP NAS", "type": "hardware",
         "properties": {"capacity": 16, "vendor": "QNAP"}},
        {"id": "raid", "label": "RAID Array", "type": "concept", "properties": {"level": 5}},
        {"id": "backup", "label": "Nightly Backup", "type": "process",
         "properties": {"schedule": "daily"}},
        {"id": "snapshot", "label": "Snapshot", "type": "process", "properties": {}},
        {"id": "zfs", "label": "ZFS", "type": "software", "properties": {"license": "CDDL"}},
        {"id": "orphan", "label": "Unused Idea", "type": "concept", "properties": {}},
    ]
    edges = [
        {"id": "l1", "source": "nas1", "target": "raid", "type": "uses", "label": "uses"},
        {"id": "l2", "source": "nas2", "target": "raid", "type": "uses", "label": "uses"},
        {"id": "l3", "source": "raid", "target": "backup", "type": "enables"},
        {"id": "l4", "source": "backup", "target": "snapshot", "type": "includes"},
        {"id": "l5", "source": "snapshot", "target": "raid", "type": "depends_on"},
        {"id": "l6", "source": "nas1", "target": "zfs", "type": "runs",
         "properties": {"since": 2019}},
        {"id": "l7", "source": "nas2", "target": "zfs", "type": "runs",
         "properties": {"since": 2021}},
    ]
    return {"nodes": nodes, "edges": edges}


@pytest.fixture()
def lab_engine(lab_graph):
    """Engine over the storage-lab graph."""
    return GraphQueryEngine(lab_graph["nodes"], lab_graph["edges"])


@pytest.fixture()
def graph_file(tmp_path, lab_graph):
    """The storage-lab graph written to a JSON file."""
    path = tmp_path / "graph.json"
    path.write_text(json.dumps(lab_graph))
    return str(path)
