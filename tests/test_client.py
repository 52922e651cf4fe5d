"""Tests for the GraphQueryEngine facade."""

import dataclasses
import json

import pytest

from graphsift import ConfigurationError, EngineConfig, GraphQueryEngine, NotFoundError
from graphsift.engine.filters import QuickFilters
from graphsift.engine.storage import MemoryStore


class FakeContainer:
    """Minimal observable state container."""

    def __init__(self, nodes, edges):
        self.state = {"nodes": nodes, "edges": edges}
        self.listeners = {}

    def get_state(self):
        return self.state

    def subscribe(self, key, callback):
        self.listeners.setdefault(key, []).append(callback)
        return lambda: self.listeners[key].remove(callback)

    def set(self, key, value):
        self.state[key] = value
        for callback in list(self.listeners.get(key, [])):
            callback(value)


class TestConstruction:
    def test_from_dicts(self, lab_graph):
        engine = GraphQueryEngine(lab_graph["nodes"], lab_graph["edges"])
        assert engine.stats()["num_nodes"] == 7
        assert engine.stats()["indexed_entries"] == 14

    def test_empty(self):
        engine = GraphQueryEngine()
        assert engine.text_search("anything") == []
        assert engine.apply_filters({}).nodes == []

    def test_get_node(self, engine):
        assert engine.get_node(2).label == "RAID"
        assert engine.get_node("2") is None

    def test_find_nodes_by_type(self, engine):
        assert [n.id for n in engine.find_nodes_by_type("concept")] == [2, 3]

    def test_load_replaces_snapshot(self, engine):
        engine.load([{"id": "x", "label": "Tape Library"}], [])
        assert [r.id for r in engine.text_search("tape")] == ["x"]
        assert engine.get_node(1) is None

    def test_load_without_rebuild_keeps_index(self, engine):
        engine.load([{"id": "x", "label": "Tape"}], [], rebuild=False)
        assert [r.id for r in engine.text_search("nas")] == [1]
        engine.update_index()
        assert engine.text_search("nas") == []

    def test_state_accessor(self, lab_graph):
        state = {"nodes": list(lab_graph["nodes"]), "edges": list(lab_graph["edges"])}
        engine = GraphQueryEngine(state=lambda: state)
        state["nodes"].append({"id": "new", "type": "concept"})
        assert len(engine.find_nodes_by_type("concept")) == 3
        with pytest.raises(RuntimeError):
            engine.load([], [])

    def test_default_limit_from_config(self, lab_graph):
        engine = GraphQueryEngine(
            lab_graph["nodes"], lab_graph["edges"], config=EngineConfig(default_search_limit=2)
        )
        assert len(engine.text_search("a")) == 2


class TestBinding:
    def test_bind_indexes_container_state(self, small_nodes, small_edges):
        container = FakeContainer(small_nodes, small_edges)
        engine = GraphQueryEngine()
        engine.bind(container)
        assert [r.id for r in engine.text_search("nas")] == [1]

    def test_change_notification_rebuilds(self, small_nodes, small_edges):
        container = FakeContainer(small_nodes, small_edges)
        engine = GraphQueryEngine()
        engine.bind(container)
        container.set("nodes", small_nodes + [{"id": 4, "label": "Tape Drive", "type": "hardware"}])
        assert [r.id for r in engine.text_search("tape")] == [4]

    def test_filter_sets_see_live_state(self, small_nodes, small_edges):
        container = FakeContainer(small_nodes, small_edges)
        engine = GraphQueryEngine()
        engine.bind(container)
        engine.filters.create_filter_set("concepts", QuickFilters.by_node_type("concept"))
        container.set("nodes", small_nodes + [{"id": 4, "type": "concept"}])
        assert engine.apply_all_active_filters().node_ids == [2, 3, 4]

    def test_unbind(self, small_nodes, small_edges):
        container = FakeContainer(small_nodes, small_edges)
        engine = GraphQueryEngine()
        engine.bind(container)
        engine.unbind()
        assert container.listeners == {"nodes": [], "edges": []}

    def test_rebind_releases_previous(self, small_nodes, small_edges):
        first = FakeContainer(small_nodes, small_edges)
        second = FakeContainer([], [])
        engine = GraphQueryEngine()
        engine.bind(first)
        engine.bind(second)
        assert first.listeners == {"nodes": [], "edges": []}
        assert engine.text_search("nas") == []


class TestQuickSearch:
    def test_results_and_suggestions(self, engine):
        response = engine.quick_search("sto")
        assert [r.id for r in response["results"]] == [3]
        assert response["suggestions"] == ["storage"]

    def test_cached(self, engine):
        first = engine.quick_search("nas")
        second = engine.quick_search("nas")
        assert [r.id for r in second["results"]] == [r.id for r in first["results"]]
        assert second["suggestions"] == first["suggestions"]
        assert engine.cache_stats()["hits"] == 1

    def test_caller_mutation_does_not_leak_into_cache(self, engine):
        first = engine.quick_search("nas")
        expected = [r.id for r in first["results"]]
        first["results"].clear()
        first["suggestions"].append("bogus")
        second = engine.quick_search("nas")
        assert [r.id for r in second["results"]] == expected
        assert "bogus" not in second["suggestions"]
        second["results"].clear()
        third = engine.quick_search("nas")
        assert [r.id for r in third["results"]] == expected

    def test_results_are_immutable(self, engine):
        result = engine.quick_search("nas")["results"][0]
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.score = 0.0

    def test_cache_key_includes_scope(self, engine):
        engine.quick_search("uses", scope="edges")
        nodes_only = engine.quick_search("uses", scope="nodes")
        assert nodes_only["results"] == []

    def test_rebuild_clears_cache(self, engine):
        engine.quick_search("nas")
        engine.update_index()
        assert engine.cache_stats()["size"] == 0

    def test_cache_hit_records_history(self, engine):
        engine.quick_search("nas")
        engine.text_search("raid")
        engine.quick_search("nas")
        assert engine.search_history() == ["nas", "raid"]

    def test_empty_query(self, engine):
        assert engine.quick_search("") == {"results": [], "suggestions": []}

    def test_bad_scope(self, engine):
        with pytest.raises(ValueError, match="scope"):
            engine.quick_search("nas", scope="everything")


class TestHistory:
    def test_most_recent_first(self, engine):
        for q in ["nas", "raid", "storage"]:
            engine.text_search(q)
        assert engine.search_history() == ["storage", "raid", "nas"]

    def test_clear(self, engine):
        engine.text_search("nas")
        engine.clear_search_history()
        assert engine.search_history() == []
        engine.text_search("nas")
        assert engine.search_history() == ["nas"]

    def test_capped_by_config(self, small_nodes):
        engine = GraphQueryEngine(small_nodes, [], config=EngineConfig(search_history_size=2))
        for q in ["a", "b", "c"]:
            engine.text_search(q)
        assert engine.search_history() == ["c", "b"]


class TestAdvancedSearch:
    def test_text_and_node_type(self, lab_engine):
        result = lab_engine.advanced_search(text="nas", node_types=["hardware"])
        assert sorted(result.node_ids) == ["nas1", "nas2"]

    def test_properties_without_text(self, lab_engine):
        result = lab_engine.advanced_search(properties={"vendor": "QNAP"})
        assert result.node_ids == ["nas2"]
        assert result.edges == []

    def test_edge_types(self, lab_engine):
        result = lab_engine.advanced_search(edge_types=["runs"])
        assert result.edge_ids == ["l6", "l7"]
        assert len(result.nodes) == 7

    def test_connection_range(self, lab_engine):
        assert lab_engine.advanced_search(min_connections=3).node_ids == ["raid"]
        assert lab_engine.advanced_search(max_connections=0).node_ids == ["orphan"]

    def test_unknown_keys_ignored(self, lab_engine):
        result = lab_engine.advanced_search(node_types=["software"], sort="name")
        assert result.node_ids == ["zfs"]


class TestSearchNeighborhood:
    def test_filters_neighbors_by_text(self, lab_engine):
        assert [n.id for n in lab_engine.search_neighborhood("nas1", "raid")] == ["raid"]

    def test_without_query(self, lab_engine):
        assert [n.id for n in lab_engine.search_neighborhood("nas1")] == ["raid", "zfs"]

    def test_depth(self, lab_engine):
        found = lab_engine.search_neighborhood("nas1", "snapshot", depth=3)
        assert [n.id for n in found] == ["snapshot"]


class TestSavedSearches:
    def test_save_and_execute_in_memory(self, lab_engine):
        lab_engine.save_search("hubs", {"min_connections": 3})
        assert lab_engine.execute_saved_search("hubs").node_ids == ["raid"]

    def test_execute_updates_last_used(self, lab_engine):
        saved = lab_engine.save_search("hw", {"node_types": ["hardware"]})
        lab_engine.execute_saved_search("hw")
        assert lab_engine.get_saved_searches()["hw"].last_used >= saved.last_used

    def test_execute_unknown(self, lab_engine):
        with pytest.raises(NotFoundError):
            lab_engine.execute_saved_search("missing")

    def test_delete(self, lab_engine):
        lab_engine.save_search("x", {})
        assert lab_engine.delete_saved_search("x") is True
        assert lab_engine.delete_saved_search("x") is False

    def test_persisted_in_store(self, lab_graph):
        store = MemoryStore()
        first = GraphQueryEngine(lab_graph["nodes"], lab_graph["edges"], store=store)
        first.save_search("sw", {"node_types": ["software"]})
        second = GraphQueryEngine(lab_graph["nodes"], lab_graph["edges"], store=store)
        assert second.execute_saved_search("sw").node_ids == ["zfs"]
        assert "sw" in json.loads(store.get("graphsift:saved_searches"))

    def test_malformed_payload(self, lab_graph):
        store = MemoryStore({"graphsift:saved_searches": "[1, 2]"})
        engine = GraphQueryEngine(lab_graph["nodes"], lab_graph["edges"], store=store)
        with pytest.raises(ConfigurationError):
            engine.get_saved_searches()


class TestStats:
    def test_counts(self, engine):
        engine.text_search("nas")
        engine.filters.create_filter_set("x", {})
        assert engine.stats() == {
            "num_nodes": 3,
            "num_edges": 2,
            "indexed_entries": 5,
            "filter_sets": 1,
            "search_history": 1,
        }
