"""Multi-criteria filtering of nodes and edges.

A filter config looks like::

    {
        "nodes": {"type": ["concept", "process"], "connections": {"operator": "gte", "value": 2}},
        "edges": {"label": {"value": "uses", "operator": "startsWith"}},
        "cascade_edges": True,
    }

Node fields: type, label, text, id, properties, connections, degree, custom.
Edge fields: type, label, text, id, properties, source, target, custom.
All fields given for an entity must match; unknown fields are ignored.
With ``cascade_edges`` (the default) only edges whose endpoints both
survived the node filter are kept.
"""

import logging
import re
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from graphsift.engine.indexer import extract_searchable_text
from graphsift.engine.operators import (
    apply_operator,
    is_operator_filter,
    match_properties,
    strict_contains,
    strict_equals,
)
from graphsift.engine.traversal import Degree, degree_table
from graphsift.errors import InvalidCriteriaError
from graphsift.models import Edge, FilterResult, GraphSnapshot, Node, NodeId

logger = logging.getLogger(__name__)

_LIST_TYPES = (list, tuple, set, frozenset)


def match_value(actual: Any, criterion: Any) -> bool:
    """Strict literal equality, list membership, or an operator filter."""
    if isinstance(criterion, _LIST_TYPES):
        return strict_contains(criterion, actual)
    if is_operator_filter(criterion):
        return apply_operator(actual, criterion.get("value"), criterion["operator"])
    return strict_equals(actual, criterion)


def match_text(text: str | None, criterion: Any) -> bool:
    """Match a text field against a string or ``{value, operator, case_sensitive}``.

    A plain string is a case-insensitive ``contains`` test. A missing text
    only matches an empty criterion.
    """
    if not text:
        return not criterion

    if isinstance(criterion, str):
        return criterion.lower() in text.lower()

    if not isinstance(criterion, Mapping):
        return False

    value = criterion.get("value")
    if value is None:
        raise InvalidCriteriaError("Text filter needs a 'value'")
    value = str(value)
    operator = criterion.get("operator", "contains")
    case_sensitive = bool(criterion.get("case_sensitive", False))

    if operator == "regex":
        flags = 0 if case_sensitive else re.IGNORECASE
        try:
            return re.search(value, text, flags) is not None
        except re.error as exc:
            raise InvalidCriteriaError(f"Invalid regex {value!r}: {exc}") from exc

    haystack = text if case_sensitive else text.lower()
    needle = value if case_sensitive else value.lower()
    if operator == "equals":
        return haystack == needle
    if operator == "startsWith":
        return haystack.startswith(needle)
    if operator == "endsWith":
        return haystack.endswith(needle)
    return needle in haystack


def match_custom(item: Node | Edge, predicate: Any) -> bool:
    """Run a caller-supplied predicate. Non-callables match everything."""
    if not callable(predicate):
        logger.debug("Ignoring non-callable custom filter %r", predicate)
        return True
    return bool(predicate(item))


def match_connections(degree: Degree, criterion: Any) -> bool:
    if isinstance(criterion, (int, float)) and not isinstance(criterion, bool):
        return degree.connections == criterion
    if isinstance(criterion, Mapping):
        return apply_operator(degree.connections, criterion.get("value"), criterion.get("operator"))
    return False


def match_degree(degree: Degree, criterion: Any) -> bool:
    if not isinstance(criterion, Mapping):
        raise InvalidCriteriaError(f"Degree filter must be a mapping, got: {criterion!r}")
    kind = criterion.get("type", "total")
    operator = criterion.get("operator", "eq")
    return apply_operator(degree.of_kind(kind), criterion.get("value"), operator)


class FilterEngine:
    """Evaluates filter configs against a graph snapshot.

    Degree and connection criteria always count edges of the full snapshot
    returned by ``state``, even when filtering a subset of it.
    """

    def __init__(self, state: Callable[[], GraphSnapshot]) -> None:
        self._state = state

    def snapshot(self) -> GraphSnapshot:
        return self._state()

    def apply_filters(
        self,
        config: Mapping[str, Any] | None = None,
        nodes: Sequence[Node] | None = None,
        edges: Sequence[Edge] | None = None,
    ) -> FilterResult:
        """Filter nodes and edges.

        Args:
            config: Filter config with optional "nodes", "edges" and "cascade_edges"
            nodes: Input nodes (defaults to the snapshot's nodes)
            edges: Input edges (defaults to the snapshot's edges)

        Returns:
            The surviving nodes and edges, in input order
        """
        config = config or {}
        snapshot = self.snapshot()
        filtered_nodes = list(snapshot.nodes if nodes is None else nodes)
        filtered_edges = list(snapshot.edges if edges is None else edges)

        node_criteria = config.get("nodes")
        if node_criteria:
            degrees = degree_table(snapshot.edges)
            filtered_nodes = self.filter_nodes(filtered_nodes, node_criteria, degrees)

        edge_criteria = config.get("edges")
        if edge_criteria:
            filtered_edges = self.filter_edges(filtered_edges, edge_criteria)

        if config.get("cascade_edges", True) is not False:
            node_ids = {n.id for n in filtered_nodes}
            filtered_edges = [
                e for e in filtered_edges if e.source in node_ids and e.target in node_ids
            ]

        return FilterResult(nodes=filtered_nodes, edges=filtered_edges)

    def filter_nodes(
        self,
        nodes: Sequence[Node],
        criteria: Mapping[str, Any],
        degrees: Mapping[NodeId, Degree] | None = None,
    ) -> list[Node]:
        if degrees is None:
            degrees = degree_table(self.snapshot().edges)
        return [n for n in nodes if self.node_matches(n, criteria, degrees)]

    def filter_edges(self, edges: Sequence[Edge], criteria: Mapping[str, Any]) -> list[Edge]:
        return [e for e in edges if self.edge_matches(e, criteria)]

    def node_matches(
        self, node: Node, criteria: Mapping[str, Any], degrees: Mapping[NodeId, Degree]
    ) -> bool:
        for field_name, criterion in criteria.items():
            if not self._guarded(self._node_field, node, field_name, criterion, degrees):
                return False
        return True

    def edge_matches(self, edge: Edge, criteria: Mapping[str, Any]) -> bool:
        for field_name, criterion in criteria.items():
            if not self._guarded(self._edge_field, edge, field_name, criterion):
                return False
        return True

    @staticmethod
    def _guarded(check: Callable[..., bool], item: Any, field_name: str, *args: Any) -> bool:
        try:
            return check(item, field_name, *args)
        except (InvalidCriteriaError, TypeError) as exc:
            logger.debug("Filter %r failed closed for %r: %s", field_name, item.id, exc)
            return False

    def _node_field(
        self, node: Node, field_name: str, criterion: Any, degrees: Mapping[NodeId, Degree]
    ) -> bool:
        if field_name == "type":
            return match_value(node.type, criterion)
        if field_name == "label":
            return match_text(node.label, criterion)
        if field_name == "text":
            return match_text(extract_searchable_text(node), criterion)
        if field_name == "id":
            return match_value(node.id, criterion)
        if field_name == "properties":
            return match_properties(node.properties, criterion)
        if field_name == "connections":
            return match_connections(degrees.get(node.id, Degree()), criterion)
        if field_name == "degree":
            return match_degree(degrees.get(node.id, Degree()), criterion)
        if field_name == "custom":
            return match_custom(node, criterion)
        logger.debug("Ignoring unknown node filter field %r", field_name)
        return True

    def _edge_field(self, edge: Edge, field_name: str, criterion: Any) -> bool:
        if field_name == "type":
            return match_value(edge.type, criterion)
        if field_name == "label":
            return match_text(edge.label, criterion)
        if field_name == "text":
            return match_text(extract_searchable_text(edge), criterion)
        if field_name == "id":
            return match_value(edge.id, criterion)
        if field_name == "properties":
            return match_properties(edge.properties, criterion)
        if field_name == "source":
            return match_value(edge.source, criterion)
        if field_name == "target":
            return match_value(edge.target, criterion)
        if field_name == "custom":
            return match_custom(edge, criterion)
        logger.debug("Ignoring unknown edge filter field %r", field_name)
        return True


class QuickFilters:
    """Ready-made filter configs for common views."""

    @staticmethod
    def by_node_type(node_types: str | Sequence[str]) -> dict[str, Any]:
        if isinstance(node_types, str):
            node_types = [node_types]
        return {"nodes": {"type": list(node_types)}}

    @staticmethod
    def by_high_connectivity(min_connections: int = 3) -> dict[str, Any]:
        return {"nodes": {"connections": {"operator": "gte", "value": min_connections}}}

    @staticmethod
    def by_label(search_text: str) -> dict[str, Any]:
        return {"nodes": {"label": {"value": search_text, "operator": "contains"}}}

    @staticmethod
    def by_property(name: str, value: Any, operator: str = "eq") -> dict[str, Any]:
        return {"nodes": {"properties": {name: {"operator": operator, "value": value}}}}

    @staticmethod
    def leaf_nodes() -> dict[str, Any]:
        return {"nodes": {"connections": {"operator": "lte", "value": 1}}}

    @staticmethod
    def hub_nodes(threshold: int = 5) -> dict[str, Any]:
        return {"nodes": {"connections": {"operator": "gte", "value": threshold}}}
