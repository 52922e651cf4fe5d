"""Tests for the graphsift MCP server tools and resources."""

from __future__ import annotations

import asyncio

import pytest

from graphsift import GraphQueryEngine
from graphsift.mcp import server as mcp_server
from graphsift.mcp.server import (
    active_view,
    app_lifespan,
    apply_filters,
    create_filter_set,
    find_path,
    get_neighbors,
    get_stats,
    list_filter_sets,
    mcp,
    schema_resource,
    search_nodes,
    stats_resource,
    suggest,
    text_search,
    toggle_filter_set,
)


@pytest.fixture(autouse=True)
def _patch_engine(monkeypatch, lab_graph):
    """Patch the module-level _ENGINE with a fresh engine over the lab graph."""
    engine = GraphQueryEngine(lab_graph["nodes"], lab_graph["edges"])
    monkeypatch.setattr(mcp_server, "_ENGINE", engine)
    yield engine


class TestSearchTools:
    def test_text_search(self):
        result = text_search(query="raid", exact_match=True)
        assert result["count"] == 1
        assert result["results"][0]["kind"] == "node"
        assert result["results"][0]["item"]["label"] == "RAID Array"

    def test_text_search_edges_only(self):
        result = text_search(query="runs", scope="edges", exact_match=True)
        assert {r["item"]["id"] for r in result["results"]} == {"l6", "l7"}
        assert result["results"][0]["item"]["source"] in ("nas1", "nas2")

    def test_text_search_limit(self):
        assert text_search(query="a", limit=3)["count"] == 3

    def test_suggest(self):
        assert suggest(prefix="sch") == {"suggestions": ["schedule"]}

    def test_search_nodes(self):
        result = search_nodes(criteria={"type": "hardware", "properties": {"vendor": "QNAP"}})
        assert result["count"] == 1
        assert result["nodes"][0]["id"] == "nas2"


class TestTraversalTools:
    def test_neighbors(self):
        result = get_neighbors(node_id="nas1")
        assert [n["id"] for n in result["nodes"]] == ["raid", "zfs"]

    def test_neighbors_unbounded(self):
        result = get_neighbors(node_id="nas1", max_depth=None, direction="out")
        assert result["count"] == 4

    def test_neighbors_bad_direction(self):
        result = get_neighbors(node_id="nas1", direction="up")
        assert result["error"] is True
        assert "ValueError" in result["message"]

    def test_find_path(self):
        result = find_path(source="nas1", target="snapshot")
        assert result == {"found": True, "path": ["nas1", "raid", "snapshot"], "hops": 2}

    def test_find_path_missing(self):
        assert find_path(source="nas1", target="orphan") == {"found": False, "path": None}


class TestFilterTools:
    def test_apply_filters(self):
        result = apply_filters(config={"nodes": {"type": "process"}})
        assert result == {"node_ids": ["backup", "snapshot"], "edge_ids": ["l4"]}

    def test_create_and_view(self):
        create_filter_set(name="hw", config={"nodes": {"type": ["hardware", "concept"]}})
        create_filter_set(name="big", config={"nodes": {"properties": {"capacity": {"operator": "gt", "value": 10}}}})
        view = active_view()
        assert view["active_filters"] == ["big", "hw"]
        assert view["node_ids"] == ["nas2"]

    def test_toggle(self):
        create_filter_set(name="proc", config={"nodes": {"type": "process"}})
        result = toggle_filter_set(name="proc")
        assert result["active"] is False
        assert len(result["node_ids"]) == 7
        assert toggle_filter_set(name="proc", active=True)["active"] is True

    def test_toggle_unknown(self):
        assert toggle_filter_set(name="missing") == {"found": False, "name": "missing"}

    def test_list(self):
        create_filter_set(name="proc", config={"nodes": {"type": "process"}})
        listed = list_filter_sets()["filter_sets"]
        assert listed["proc"]["config"] == {"nodes": {"type": "process"}}
        assert listed["proc"]["active"] is True


class TestStats:
    def test_get_stats(self):
        create_filter_set(name="proc", config={"nodes": {"type": "process"}})
        stats = get_stats()
        assert stats["num_nodes"] == 7
        assert stats["filter_sets"] == 1
        assert stats["filters"]["filtered_nodes"] == 2
        assert "hit_rate" in stats["cache"]

    def test_uninitialized(self, monkeypatch):
        monkeypatch.setattr(mcp_server, "_ENGINE", None)
        result = get_stats()
        assert result["error"] is True
        assert "not initialized" in result["message"]


class TestResources:
    def test_schema_resource(self):
        text = schema_resource()
        assert "graphsift Data Model" in text
        assert "Filter configs" in text
        assert "startsWith" in text

    def test_stats_resource(self):
        text_search(query="raid")
        text = stats_resource()
        assert "Nodes: 7" in text
        assert "Edges: 7" in text
        assert "- raid" in text


class TestLifespan:
    def test_loads_graph_from_environment(self, monkeypatch, graph_file, tmp_path):
        monkeypatch.setenv("GRAPHSIFT_GRAPH_PATH", graph_file)
        monkeypatch.setenv("GRAPHSIFT_STORE_PATH", str(tmp_path / "kv.db"))
        monkeypatch.setenv("GRAPHSIFT_DEFAULT_SEARCH_LIMIT", "2")
        seen = {}

        async def run():
            async with app_lifespan(mcp):
                engine = mcp_server._get_engine()
                seen["nodes"] = engine.stats()["num_nodes"]
                seen["limit"] = engine.config.default_search_limit

        asyncio.run(run())
        assert seen == {"nodes": 7, "limit": 2}
        assert mcp_server._ENGINE is None


class TestServerRegistration:
    def test_all_tools_registered(self):
        tool_names = {tool.name for tool in mcp._tool_manager.list_tools()}
        expected = {
            "text_search",
            "suggest",
            "search_nodes",
            "get_neighbors",
            "find_path",
            "apply_filters",
            "create_filter_set",
            "toggle_filter_set",
            "list_filter_sets",
            "active_view",
            "get_stats",
        }
        assert expected == tool_names

    def test_all_resources_registered(self):
        resource_uris = set()
        for template in mcp._resource_manager.list_templates():
            resource_uris.add(str(template.uri_template))
        for resource in mcp._resource_manager.list_resources():
            resource_uris.add(str(resource.uri))
        assert "graphsift://schema" in resource_uris
        assert "graphsift://stats" in resource_uris
