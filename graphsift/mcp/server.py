"""graphsift MCP server: exposes graph search, traversal and filtering as tools."""

from __future__ import annotations

import functools
import logging
import math
import os
import sys
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from mcp.server.fastmcp import FastMCP

from graphsift.client import GraphQueryEngine
from graphsift.engine.persistence import load_snapshot
from graphsift.engine.storage import SQLiteStore
from graphsift.models import EngineConfig

# All logging goes to stderr; stdout is reserved for JSON-RPC
logging.basicConfig(stream=sys.stderr, level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger("graphsift.mcp")

# ---------------------------------------------------------------------------
# Engine singleton, safe for single-process stdio MCP
# ---------------------------------------------------------------------------

_ENGINE: GraphQueryEngine | None = None


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[dict]:
    global _ENGINE
    graph_path = os.environ.get("GRAPHSIFT_GRAPH_PATH", "graph.json")
    store_path = os.environ.get("GRAPHSIFT_STORE_PATH")
    logger.info("Loading graph: %s", graph_path)
    snapshot = load_snapshot(graph_path)
    store = SQLiteStore(store_path) if store_path else None
    _ENGINE = GraphQueryEngine(
        snapshot.nodes, snapshot.edges, store=store, config=EngineConfig.from_env()
    )
    try:
        yield {}
    finally:
        _ENGINE = None
        if store is not None:
            store.close()


mcp = FastMCP(
    "graphsift",
    instructions=(
        "graphsift answers questions about a property graph of typed nodes and edges. "
        "text_search does fuzzy matching (query characters in order) unless exact_match is set. "
        "Traversal tools use breadth-first search; find_path ignores edge direction. "
        "Filter configs look like {'nodes': {...criteria}, 'edges': {...criteria}}; "
        "criteria values are literals, lists (membership) or {'operator': ..., 'value': ...}."
    ),
    lifespan=app_lifespan,
)


def _get_engine() -> GraphQueryEngine:
    if _ENGINE is None:
        raise RuntimeError("graphsift engine is not initialized")
    return _ENGINE


def _safe_tool(fn: Callable[..., dict]) -> Callable[..., dict]:
    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> dict:
        try:
            return fn(*args, **kwargs)
        except Exception as exc:
            logger.exception("Tool %s failed", fn.__name__)
            return {"error": True, "message": f"{type(exc).__name__}: {exc}"}
    return wrapper


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------


def _node_dict(node: Any) -> dict:
    return node.model_dump(mode="json", exclude_none=True)


def _edge_dict(edge: Any) -> dict:
    return edge.model_dump(mode="json", exclude_none=True)


def _entity_dict(kind: str, entity: Any) -> dict:
    return _node_dict(entity) if kind == "node" else _edge_dict(entity)


# ===================================================================
# Search tools (3)
# ===================================================================


@mcp.tool()
@_safe_tool
def text_search(
    query: str,
    exact_match: bool = False,
    case_sensitive: bool = False,
    scope: str = "all",
    limit: int = 20,
) -> dict:
    """Search node and edge text, best matches first.

    Args:
        query: Text to look for.
        exact_match: Require a substring match instead of fuzzy subsequence matching.
        case_sensitive: Match letter case.
        scope: "all", "nodes" or "edges".
        limit: Maximum number of results.
    """
    engine = _get_engine()
    results = engine.text_search(
        query,
        exact_match=exact_match,
        case_sensitive=case_sensitive,
        search_nodes=scope in ("all", "nodes"),
        search_edges=scope in ("all", "edges"),
        limit=limit,
    )
    return {
        "count": len(results),
        "results": [
            {"kind": r.kind, "score": r.score, "item": _entity_dict(r.kind, r.ref)}
            for r in results
        ],
    }


@mcp.tool()
@_safe_tool
def suggest(prefix: str, limit: int = 10) -> dict:
    """Indexed words that complete a prefix.

    Args:
        prefix: Beginning of a word.
        limit: Maximum number of suggestions.
    """
    engine = _get_engine()
    return {"suggestions": engine.get_suggestions(prefix, limit)}


@mcp.tool()
@_safe_tool
def search_nodes(criteria: dict[str, Any]) -> dict:
    """Find nodes matching every criterion.

    Args:
        criteria: Keys "text" (fuzzy), "type"/"id" (value or list), "properties"
            (key -> value or {operator, value}), or any other node attribute.
    """
    engine = _get_engine()
    results = engine.search_nodes(criteria)
    return {"count": len(results), "nodes": [_node_dict(n) for n in results]}


# ===================================================================
# Traversal tools (2)
# ===================================================================


@mcp.tool()
@_safe_tool
def get_neighbors(
    node_id: str | int,
    max_depth: int | None = 1,
    direction: str = "both",
) -> dict:
    """Nodes reachable from a node, in breadth-first order.

    Args:
        node_id: Starting node id (not included in the result).
        max_depth: Maximum hops; null for the whole connected component.
        direction: "out", "in" or "both".
    """
    engine = _get_engine()
    depth = math.inf if max_depth is None else max_depth
    results = engine.find_connected_nodes(node_id, max_depth=depth, direction=direction)
    return {"count": len(results), "nodes": [_node_dict(n) for n in results]}


@mcp.tool()
@_safe_tool
def find_path(source: str | int, target: str | int, max_depth: int = 10) -> dict:
    """Shortest path between two nodes by edge count, ignoring direction.

    Args:
        source: Starting node id.
        target: Target node id.
        max_depth: Maximum number of edges in the path.
    """
    engine = _get_engine()
    result = engine.find_path(source, target, max_depth=max_depth)
    if result is None:
        return {"found": False, "path": None}
    return {"found": True, "path": result, "hops": len(result) - 1}


# ===================================================================
# Filter tools (5)
# ===================================================================


@mcp.tool()
@_safe_tool
def apply_filters(config: dict[str, Any]) -> dict:
    """Filter nodes and edges with a single filter config.

    Args:
        config: {"nodes": criteria, "edges": criteria, "cascade_edges": bool}.
    """
    engine = _get_engine()
    result = engine.apply_filters(config)
    return {"node_ids": result.node_ids, "edge_ids": result.edge_ids}


@mcp.tool()
@_safe_tool
def create_filter_set(name: str, config: dict[str, Any]) -> dict:
    """Save and activate a named filter set.

    Args:
        name: Name of the filter set.
        config: Filter config, as for apply_filters.
    """
    engine = _get_engine()
    result = engine.filters.create_filter_set(name, config)
    return {"name": name, "node_ids": result.node_ids, "edge_ids": result.edge_ids}


@mcp.tool()
@_safe_tool
def active_view() -> dict:
    """Nodes and edges left after applying every active filter set in turn."""
    engine = _get_engine()
    result = engine.apply_all_active_filters()
    return {
        "active_filters": sorted(engine.filters.get_active_filters()),
        "node_ids": result.node_ids,
        "edge_ids": result.edge_ids,
    }


@mcp.tool()
@_safe_tool
def toggle_filter_set(name: str, active: bool | None = None) -> dict:
    """Flip a filter set on or off, or set it explicitly.

    Args:
        name: Name of the filter set.
        active: true or false to set the state; omit to flip it.
    """
    engine = _get_engine()
    result = engine.filters.toggle_filter_set(name, active)
    if result is None:
        return {"found": False, "name": name}
    return {
        "found": True,
        "name": name,
        "active": engine.filters.get_filter_set(name).active,
        "node_ids": result.node_ids,
        "edge_ids": result.edge_ids,
    }


@mcp.tool()
@_safe_tool
def list_filter_sets() -> dict:
    """All named filter sets with their configs and active flags."""
    engine = _get_engine()
    return {
        "filter_sets": {
            name: record.model_dump(mode="json")
            for name, record in engine.filters.get_all_filters().items()
        }
    }

# ===================================================================
# Stats tool and resources (1 + 2)
# ===================================================================


@mcp.tool()
@_safe_tool
def get_stats() -> dict:
    """Graph size, index size, filter-set effect and cache usage."""
    engine = _get_engine()
    return {
        **engine.stats(),
        "filters": engine.filters.get_filter_stats().model_dump(),
        "cache": engine.cache_stats(),
    }


@mcp.resource("graphsift://schema")
def schema_resource() -> str:
    """Graph model and filter config reference."""
    return """\
# graphsift Data Model

## Nodes
- **id**: string or integer, unique
- **label**, **type**: optional strings
- **properties**: key-value attributes

## Edges
- **id**, **source**, **target**: source and target are node ids
- **label**, **type**, **properties**: as for nodes

## Search
Every node and edge is indexed as one text: label, type, id, then each
property key and value. Fuzzy search matches when the query characters
appear in that text in order.

## Filter configs
```
{"nodes": {...}, "edges": {...}, "cascade_edges": true}
```
Node fields: type, label, text, id, properties, connections, degree.
Edge fields: type, label, text, id, properties, source, target.
A criterion is a literal, a list (membership), or
{"operator": ..., "value": ...}. Operators: eq, ne, gt, gte, lt, lte,
in, nin, between, contains, startsWith, endsWith, regex.
Degree criteria: {"type": "in" | "out" | "total", "operator": ..., "value": ...}.
With cascade_edges, edges are kept only if both endpoints survive.

## Filter sets
Named configs that can be toggled. Active sets compose in creation
order, each filtering the output of the previous one.
"""


@mcp.resource("graphsift://stats")
def stats_resource() -> str:
    """Live graph, index and filter statistics."""
    engine = _get_engine()
    stats = engine.stats()
    fs = engine.filters.get_filter_stats()
    lines = [
        "# graphsift Statistics\n",
        f"Nodes: {stats['num_nodes']}",
        f"Edges: {stats['num_edges']}",
        f"Indexed entries: {stats['indexed_entries']}",
        f"Filter sets: {stats['filter_sets']} ({fs.active_filters} active)",
        f"Visible after filters: {fs.filtered_nodes} nodes, {fs.filtered_edges} edges",
    ]
    history = engine.search_history()
    if history:
        lines.append("\n## Recent searches")
        lines.extend(f"- {q}" for q in history[:10])
    return "\n".join(lines)


# ===================================================================
# Entry point
# ===================================================================


def run_server() -> None:
    """Run the graphsift MCP server over stdio."""
    mcp.run(transport="stdio")
