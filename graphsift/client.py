"""GraphQueryEngine: the primary interface to search, traverse and filter a graph."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any, Protocol

from pydantic import ValidationError

from graphsift.engine.cache import ResultCache
from graphsift.engine.filter_sets import FilterSetManager
from graphsift.engine.filters import FilterEngine
from graphsift.engine.history import SearchHistory
from graphsift.engine.indexer import SearchIndex, extract_searchable_text
from graphsift.engine.operators import match_properties
from graphsift.engine.search import SearchResult, TextSearchEngine, fuzzy_match
from graphsift.engine.storage import KeyValueStore
from graphsift.engine.traversal import degree_table, find_connected_nodes, find_path
from graphsift.errors import ConfigurationError, NotFoundError
from graphsift.models import (
    Edge,
    EngineConfig,
    FilterResult,
    GraphSnapshot,
    Node,
    NodeId,
    SavedSearch,
)

SEARCH_SCOPES = ("all", "nodes", "edges")


class StateContainer(Protocol):
    """Observable store that owns the canonical node and edge collections."""

    def get_state(self) -> Any: ...

    def subscribe(self, key: str, callback: Callable[..., Any]) -> Callable[[], Any]: ...


class GraphQueryEngine:
    """Search, traversal and filtering over a property-graph snapshot.

    The engine reads the graph through a state accessor and never mutates
    it. The text index reflects the snapshot at the last ``update_index``
    (or ``build_index``) call; rebuilding after graph changes is the
    caller's job, or use ``bind`` to rebuild on container notifications.

    Constructor patterns:
        - ``GraphQueryEngine(nodes, edges)``: engine owns a static snapshot
        - ``GraphQueryEngine(state=container.get_state)``: reads live state
        - ``GraphQueryEngine(..., store=SQLiteStore("kg.db"))``: persist
          filter sets and saved searches

    Example:
        ```python
        engine = GraphQueryEngine(nodes, edges)
        engine.text_search("nas")
        engine.find_connected_nodes(1, max_depth=2, direction="out")
        engine.apply_filters({"nodes": {"type": "concept"}})
        ```
    """

    def __init__(
        self,
        nodes: Iterable[Any] | None = None,
        edges: Iterable[Any] | None = None,
        *,
        state: Callable[[], Any] | None = None,
        store: KeyValueStore | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self._state_fn = state
        self._snapshot = GraphSnapshot.coerce({"nodes": nodes or [], "edges": edges or []})
        self._store = store
        self._saved_searches_key = f"{self.config.store_namespace}:saved_searches"
        self._subscriptions: list[Callable[[], Any]] = []
        self._saved_searches: dict[str, SavedSearch] = {}

        self.index = SearchIndex()
        self.history = SearchHistory(self.config.search_history_size)
        self.searcher = TextSearchEngine(self.index, self.history)
        self.filter_engine = FilterEngine(self.snapshot)
        self.filters = FilterSetManager(
            self.filter_engine,
            store=store,
            namespace=self.config.store_namespace,
            history_size=self.config.filter_history_size,
        )
        self._cache: ResultCache[tuple[tuple[SearchResult, ...], tuple[str, ...]]] = ResultCache(
            self.config.cache_capacity, self.config.cache_evict_fraction
        )

        self.filters.load()
        self.update_index()

    # --- Snapshot & index ---

    def snapshot(self) -> GraphSnapshot:
        """The current graph, read through the state accessor if one was given."""
        if self._state_fn is not None:
            return GraphSnapshot.coerce(self._state_fn())
        return self._snapshot

    def load(self, nodes: Iterable[Any], edges: Iterable[Any], rebuild: bool = True) -> None:
        """Replace the engine-owned snapshot.

        Raises:
            RuntimeError: If the engine reads from an external state accessor
        """
        if self._state_fn is not None:
            raise RuntimeError("Engine is bound to an external state accessor")
        self._snapshot = GraphSnapshot.coerce({"nodes": list(nodes), "edges": list(edges)})
        if rebuild:
            self.update_index()

    def build_index(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
        """Rebuild the text index from the given entities."""
        self.index.build(nodes, edges)
        self._cache.clear()

    def update_index(self) -> None:
        """Rebuild the text index from the current snapshot."""
        snapshot = self.snapshot()
        self.build_index(snapshot.nodes, snapshot.edges)

    def bind(self, container: StateContainer) -> None:
        """Read state from container and rebuild the index on node/edge changes."""
        self.unbind()
        self._state_fn = container.get_state
        for key in ("nodes", "edges"):
            unsubscribe = container.subscribe(key, lambda *_: self.update_index())
            if callable(unsubscribe):
                self._subscriptions.append(unsubscribe)
        self.update_index()

    def unbind(self) -> None:
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions.clear()

    def get_node(self, node_id: NodeId) -> Node | None:
        for node in self.snapshot().nodes:
            if node.id == node_id:
                return node
        return None

    # --- Text search ---

    def text_search(
        self,
        query: str,
        *,
        case_sensitive: bool = False,
        exact_match: bool = False,
        search_nodes: bool = True,
        search_edges: bool = True,
        limit: int | None = None,
    ) -> list[SearchResult]:
        """Fuzzy or exact search of the index, best matches first."""
        return self.searcher.text_search(
            query,
            case_sensitive=case_sensitive,
            exact_match=exact_match,
            search_nodes=search_nodes,
            search_edges=search_edges,
            limit=self.config.default_search_limit if limit is None else limit,
        )

    def quick_search(
        self, query: str, scope: str = "all", max_suggestions: int = 10
    ) -> dict[str, Any]:
        """Top matches plus word suggestions, as a search box would show them.

        Results are cached per query and scope until the index is rebuilt.

        Returns:
            Dict with ``results`` (list of SearchResult) and ``suggestions``
            (list of words filling the remaining slots)
        """
        if scope not in SEARCH_SCOPES:
            raise ValueError(f"scope must be 'all', 'nodes', or 'edges', got: {scope!r}")
        if not query:
            return {"results": [], "suggestions": []}

        cache_key = f"{query}-{scope}-{max_suggestions}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            self.history.add(query)
            results, suggestions = cached
            return {"results": list(results), "suggestions": list(suggestions)}

        results = self.text_search(
            query,
            search_nodes=scope in ("all", "nodes"),
            search_edges=scope in ("all", "edges"),
            limit=max_suggestions,
        )
        suggestions = self.searcher.get_suggestions(query, max_suggestions - len(results))
        self._cache.put(cache_key, (tuple(results), tuple(suggestions)))
        return {"results": results, "suggestions": suggestions}

    def get_suggestions(self, partial_query: str, limit: int = 10) -> list[str]:
        return self.searcher.get_suggestions(partial_query, limit)

    def search_history(self) -> list[str]:
        """Recent queries, most recent first."""
        return self.history.entries()

    def clear_search_history(self) -> None:
        self.history.clear()

    def cache_stats(self) -> dict[str, Any]:
        return self._cache.stats()

    # --- Criteria search ---

    def search_nodes(self, criteria: Mapping[str, Any] | None = None) -> list[Node]:
        return self.searcher.filter_items(self.snapshot().nodes, criteria or {})

    def search_edges(self, criteria: Mapping[str, Any] | None = None) -> list[Edge]:
        return self.searcher.filter_items(self.snapshot().edges, criteria or {})

    def find_nodes_by_type(self, node_type: str) -> list[Node]:
        return [n for n in self.snapshot().nodes if n.type == node_type]

    def advanced_search(
        self,
        text: str = "",
        node_types: Sequence[str] = (),
        edge_types: Sequence[str] = (),
        properties: Mapping[str, Any] | None = None,
        min_connections: int | None = None,
        max_connections: int | None = None,
        **_ignored: Any,
    ) -> FilterResult:
        """Text search narrowed by types, properties and connection counts.

        Without text the whole snapshot is the starting point.
        """
        snapshot = self.snapshot()
        if text:
            hits = self.text_search(text)
            nodes = [r.ref for r in hits if r.kind == "node"]
            edges = [r.ref for r in hits if r.kind == "edge"]
        else:
            nodes = list(snapshot.nodes)
            edges = list(snapshot.edges)

        if node_types:
            nodes = [n for n in nodes if n.type in node_types]
        if edge_types:
            edges = [e for e in edges if e.type in edge_types]
        if properties:
            nodes = [n for n in nodes if match_properties(n.properties, properties)]
            edges = [e for e in edges if match_properties(e.properties, properties)]
        if min_connections is not None or max_connections is not None:
            degrees = degree_table(snapshot.edges)

            def in_range(node: Node) -> bool:
                degree = degrees.get(node.id)
                count = degree.connections if degree is not None else 0
                if min_connections is not None and count < min_connections:
                    return False
                return max_connections is None or count <= max_connections

            nodes = [n for n in nodes if in_range(n)]

        return FilterResult(nodes=nodes, edges=edges)

    # --- Traversal ---

    def find_connected_nodes(
        self, node_id: NodeId, max_depth: float = 1, direction: str = "both"
    ) -> list[Node]:
        """Breadth-first neighborhood of a node, excluding the node itself."""
        snapshot = self.snapshot()
        return find_connected_nodes(
            node_id, snapshot.nodes, snapshot.edges, max_depth=max_depth, direction=direction
        )

    def find_path(
        self, source_id: NodeId, target_id: NodeId, max_depth: float | None = None
    ) -> list[NodeId] | None:
        """Shortest undirected path as a list of node ids, or None."""
        if max_depth is None:
            max_depth = self.config.default_path_depth
        return find_path(source_id, target_id, self.snapshot().edges, max_depth=max_depth)

    def search_neighborhood(self, node_id: NodeId, query: str = "", depth: int = 1) -> list[Node]:
        """Neighbors of a node whose searchable text fuzzy-matches query."""
        neighbors = self.find_connected_nodes(node_id, max_depth=depth)
        if not query:
            return neighbors
        needle = query.lower()
        return [n for n in neighbors if fuzzy_match(extract_searchable_text(n), needle)]

    # --- Filtering ---

    def apply_filters(self, config: Mapping[str, Any] | None = None) -> FilterResult:
        """Filter the current snapshot with a single config."""
        return self.filter_engine.apply_filters(config)

    def apply_all_active_filters(self) -> FilterResult:
        return self.filters.apply_all_active_filters()

    # --- Saved searches ---

    def get_saved_searches(self) -> dict[str, SavedSearch]:
        """Saved searches from the store (empty without a store).

        Raises:
            ConfigurationError: If the stored payload is malformed
        """
        if self._store is None:
            return dict(self._saved_searches)
        payload = self._store.get(self._saved_searches_key)
        if not payload:
            return {}
        try:
            raw = json.loads(payload)
            if not isinstance(raw, dict):
                raise ValueError("expected an object")
            return {name: SavedSearch.model_validate(entry) for name, entry in raw.items()}
        except (ValueError, ValidationError) as exc:
            raise ConfigurationError("Invalid saved searches payload") from exc

    def _write_saved_searches(self, searches: dict[str, SavedSearch]) -> None:
        if self._store is None:
            self._saved_searches = dict(searches)
            return
        payload = {name: s.model_dump(mode="json") for name, s in searches.items()}
        self._store.set(self._saved_searches_key, json.dumps(payload, indent=2))

    def save_search(self, name: str, filters: Mapping[str, Any]) -> SavedSearch:
        """Store advanced-search filters under a name."""
        searches = self.get_saved_searches()
        saved = SavedSearch(filters=dict(filters))
        searches[name] = saved
        self._write_saved_searches(searches)
        return saved

    def execute_saved_search(self, name: str) -> FilterResult:
        """Run a saved search and stamp its last use.

        Raises:
            NotFoundError: If no saved search has this name
        """
        searches = self.get_saved_searches()
        saved = searches.get(name)
        if saved is None:
            raise NotFoundError(f"Saved search '{name}' not found")
        searches[name] = saved.model_copy(update={"last_used": datetime.now(timezone.utc)})
        self._write_saved_searches(searches)
        return self.advanced_search(**saved.filters)

    def delete_saved_search(self, name: str) -> bool:
        searches = self.get_saved_searches()
        if searches.pop(name, None) is None:
            return False
        self._write_saved_searches(searches)
        return True

    # --- Statistics ---

    def stats(self) -> dict[str, Any]:
        snapshot = self.snapshot()
        return {
            "num_nodes": len(snapshot.nodes),
            "num_edges": len(snapshot.edges),
            "indexed_entries": len(self.index),
            "filter_sets": len(self.filters),
            "search_history": len(self.history),
        }
