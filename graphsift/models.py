"""Pydantic models for the graphsift public API.

Graph entities are validated once, when a snapshot is coerced; the engine
then works on the model instances directly and hands the same instances
back in its results.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

NodeId = str | int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Node(BaseModel):
    """A typed entity in the property graph.

    Extra attributes are kept so that criteria search can match on them.
    """

    model_config = ConfigDict(extra="allow")

    id: NodeId
    label: str | None = None
    type: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)

    def __repr__(self) -> str:
        parts = [f"Node({self.id!r}"]
        if self.label is not None:
            parts.append(f", label={self.label!r}")
        if self.type is not None:
            parts.append(f", type={self.type!r}")
        parts.append(")")
        return "".join(parts)


class Edge(BaseModel):
    """A relationship between two nodes.

    ``source`` and ``target`` reference node ids. Dangling references are
    allowed; traversal simply finds no node for them.
    """

    model_config = ConfigDict(extra="allow")

    id: NodeId
    source: NodeId
    target: NodeId
    label: str | None = None
    type: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)

    def __repr__(self) -> str:
        return f"Edge({self.id!r}: {self.source!r} -> {self.target!r}, type={self.type!r})"


class GraphSnapshot(BaseModel):
    """A read-only view of the graph as supplied by the state container."""

    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    @classmethod
    def coerce(cls, value: Any) -> GraphSnapshot:
        """Build a snapshot from a snapshot, a mapping, or an object with nodes/edges."""
        if isinstance(value, GraphSnapshot):
            return value
        if value is None:
            return cls()
        if isinstance(value, dict):
            return cls.model_validate(
                {"nodes": value.get("nodes") or [], "edges": value.get("edges") or []}
            )
        return cls.model_validate(
            {
                "nodes": list(getattr(value, "nodes", None) or []),
                "edges": list(getattr(value, "edges", None) or []),
            }
        )


class FilterResult(BaseModel):
    """Nodes and edges that survived a filter pass."""

    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    @property
    def node_ids(self) -> list[NodeId]:
        return [n.id for n in self.nodes]

    @property
    def edge_ids(self) -> list[NodeId]:
        return [e.id for e in self.edges]


class FilterSetRecord(BaseModel):
    """A named, toggle-able filter configuration."""

    config: dict[str, Any] = Field(default_factory=dict)
    active: bool = True
    created: datetime = Field(default_factory=_utcnow)
    updated: datetime | None = None
    imported: datetime | None = None


class FilterAction(BaseModel):
    """One entry of the filter-set action history."""

    action: Literal["create", "update", "remove", "activate", "deactivate", "import", "clear_all"]
    name: str | None = None
    config: dict[str, Any] | None = None
    count: int | None = None
    timestamp: datetime = Field(default_factory=_utcnow)


class SavedSearch(BaseModel):
    """A persisted advanced-search request."""

    filters: dict[str, Any] = Field(default_factory=dict)
    created: datetime = Field(default_factory=_utcnow)
    last_used: datetime = Field(default_factory=_utcnow)


class FilterStats(BaseModel):
    """Effect of the currently active filter sets on the snapshot."""

    original_nodes: int
    original_edges: int
    filtered_nodes: int
    filtered_edges: int
    removed_nodes: int
    removed_edges: int
    nodes_percent: float
    edges_percent: float
    active_filters: int


class EngineConfig(BaseModel):
    """Tunables for a GraphQueryEngine instance."""

    search_history_size: int = Field(default=50, ge=1)
    filter_history_size: int = Field(default=20, ge=1)
    default_search_limit: int = Field(default=100, ge=1)
    default_path_depth: int = Field(default=10, ge=0)
    cache_capacity: int = Field(default=100, ge=1)
    cache_evict_fraction: float = Field(default=0.3, gt=0.0, le=1.0)
    store_namespace: str = "graphsift"

    @classmethod
    def from_env(cls, prefix: str = "GRAPHSIFT_") -> EngineConfig:
        """Read overrides from ``GRAPHSIFT_<FIELD>`` environment variables."""
        values: dict[str, Any] = {}
        for name in cls.model_fields:
            raw = os.environ.get(f"{prefix}{name.upper()}")
            if raw is not None:
                values[name] = raw
        return cls.model_validate(values)
