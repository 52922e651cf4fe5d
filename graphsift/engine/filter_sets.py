"""Named filter sets: create, toggle, compose, export and import.

Active sets compose as a pipeline: each active set filters the output of
the previous one, so the result is the intersection of all active sets.
When a key-value store is supplied, every mutation is persisted under
``"{namespace}:filter_sets"`` before it takes effect; a failed write
leaves the sets unchanged.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from graphsift.engine.filters import FilterEngine
from graphsift.engine.history import FilterHistory
from graphsift.engine.storage import KeyValueStore
from graphsift.errors import ConfigurationError, NotFoundError
from graphsift.models import Edge, FilterAction, FilterResult, FilterSetRecord, FilterStats, Node

logger = logging.getLogger(__name__)


def _portable_config(value: Any, path: str = "config") -> Any:
    """Copy a config, dropping callables that cannot be serialized."""
    if isinstance(value, Mapping):
        portable = {}
        for key, item in value.items():
            if callable(item):
                logger.warning("Dropping non-serializable %s.%s from export", path, key)
                continue
            portable[key] = _portable_config(item, f"{path}.{key}")
        return portable
    if isinstance(value, (set, frozenset, tuple)):
        return [_portable_config(v, path) for v in value]
    if isinstance(value, list):
        return [_portable_config(v, path) for v in value]
    return value


def parse_filter_sets(payload: str) -> dict[str, FilterSetRecord]:
    """Parse exported filter sets into records without touching any state.

    Raises:
        ConfigurationError: If the payload is not a JSON object of
            name -> filter set objects
    """
    try:
        raw = json.loads(payload)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError("Invalid filter configuration JSON") from exc
    if not isinstance(raw, dict):
        raise ConfigurationError("Invalid filter configuration JSON: expected an object")

    imported_at = datetime.now(timezone.utc)
    staged: dict[str, FilterSetRecord] = {}
    for name, entry in raw.items():
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Invalid filter configuration JSON: entry {name!r}")
        fields: dict[str, Any] = {
            "config": entry.get("config") or {},
            "active": entry.get("active") is not False,
            "imported": imported_at,
        }
        if entry.get("created"):
            fields["created"] = entry["created"]
        if entry.get("updated"):
            fields["updated"] = entry["updated"]
        try:
            staged[name] = FilterSetRecord.model_validate(fields)
        except ValidationError as exc:
            raise ConfigurationError(
                f"Invalid filter configuration JSON: entry {name!r}"
            ) from exc
    return staged


def _serialize(sets: Mapping[str, FilterSetRecord]) -> str:
    exported = {}
    for name, record in sets.items():
        exported[name] = {
            "config": _portable_config(record.config),
            "active": record.active,
            "created": record.created.isoformat(),
            "updated": record.updated.isoformat() if record.updated else None,
        }
    return json.dumps(exported, indent=2)


class FilterSetManager:
    """Keeps named filter configs and the history of changes to them."""

    def __init__(
        self,
        engine: FilterEngine,
        *,
        store: KeyValueStore | None = None,
        namespace: str = "graphsift",
        history_size: int = 20,
    ) -> None:
        self._engine = engine
        self._store = store
        self._store_key = f"{namespace}:filter_sets"
        self._sets: dict[str, FilterSetRecord] = {}
        self.history = FilterHistory(history_size)

    # --- Persistence ---

    def save(self) -> None:
        """Write all sets to the key-value store, if one is configured."""
        if self._store is not None:
            self._store.set(self._store_key, _serialize(self._sets))

    def _commit(self, sets: dict[str, FilterSetRecord]) -> None:
        """Persist ``sets`` and only then make them current."""
        if self._store is not None:
            self._store.set(self._store_key, _serialize(sets))
        self._sets = sets

    def load(self) -> int:
        """Merge sets previously saved to the key-value store.

        Returns:
            Number of sets loaded
        """
        if self._store is None:
            return 0
        payload = self._store.get(self._store_key)
        if not payload:
            return 0
        staged = parse_filter_sets(payload)
        self._sets.update(staged)
        return len(staged)

    # --- Named sets ---

    def create_filter_set(self, name: str, config: Mapping[str, Any]) -> FilterResult:
        """Store an active filter set and return the result of applying it alone."""
        config = dict(config)
        self._commit({**self._sets, name: FilterSetRecord(config=config, active=True)})
        self.history.record("create", name=name, config=config)
        return self._engine.apply_filters(config)

    def update_filter_set(self, name: str, config: Mapping[str, Any]) -> FilterResult:
        """Replace the config of an existing set.

        Raises:
            NotFoundError: If no set has this name
        """
        existing = self._sets.get(name)
        if existing is None:
            raise NotFoundError(f"Filter set '{name}' not found")
        config = dict(config)
        updated = existing.model_copy(
            update={"config": config, "updated": datetime.now(timezone.utc)}
        )
        self._commit({**self._sets, name: updated})
        self.history.record("update", name=name, config=config)
        return self.apply_all_active_filters()

    def remove_filter_set(self, name: str) -> FilterResult:
        removed = self._sets.get(name)
        if removed is not None:
            self._commit({key: rec for key, rec in self._sets.items() if key != name})
            self.history.record("remove", name=name, config=removed.config)
        return self.apply_all_active_filters()

    def toggle_filter_set(self, name: str, active: bool | None = None) -> FilterResult | None:
        """Flip a set's active flag, or set it explicitly.

        Returns:
            The composed result of all active sets, or None for an unknown name
        """
        existing = self._sets.get(name)
        if existing is None:
            return None
        new_state = (not existing.active) if active is None else bool(active)
        self._commit({**self._sets, name: existing.model_copy(update={"active": new_state})})
        self.history.record(
            "activate" if new_state else "deactivate", name=name, config=existing.config
        )
        return self.apply_all_active_filters()

    def apply_all_active_filters(self) -> FilterResult:
        """Fold every active set through the filter engine, in creation order."""
        snapshot = self._engine.snapshot()
        result = FilterResult(nodes=list(snapshot.nodes), edges=list(snapshot.edges))
        for record in self._sets.values():
            if record.active:
                result = self._engine.apply_filters(
                    record.config, nodes=result.nodes, edges=result.edges
                )
        return result

    def clear_all_filters(self) -> FilterResult:
        self._commit({})
        self.history.record("clear_all")
        snapshot = self._engine.snapshot()
        return FilterResult(nodes=list(snapshot.nodes), edges=list(snapshot.edges))

    def get_filter_set(self, name: str) -> FilterSetRecord | None:
        return self._sets.get(name)

    def get_active_filters(self) -> dict[str, FilterSetRecord]:
        return {name: rec for name, rec in self._sets.items() if rec.active}

    def get_all_filters(self) -> dict[str, FilterSetRecord]:
        return dict(self._sets)

    def __len__(self) -> int:
        return len(self._sets)

    def __contains__(self, name: object) -> bool:
        return name in self._sets

    # --- Convenience creators ---

    def create_node_type_filter(self, node_types: str | Sequence[str]) -> FilterResult:
        if isinstance(node_types, str):
            node_types = [node_types]
        return self.create_filter_set("nodeType", {"nodes": {"type": list(node_types)}})

    def create_connection_filter(
        self, min_connections: int = 0, max_connections: int | None = None
    ) -> FilterResult:
        if max_connections is None:
            criterion = {"operator": "gte", "value": min_connections}
        else:
            criterion = {"operator": "between", "value": [min_connections, max_connections]}
        return self.create_filter_set("connections", {"nodes": {"connections": criterion}})

    def create_property_filter(
        self, property_name: str, property_value: Any, operator: str = "eq"
    ) -> FilterResult:
        return self.create_filter_set(
            f"property-{property_name}",
            {"nodes": {"properties": {property_name: {"operator": operator, "value": property_value}}}},
        )

    def create_text_filter(self, search_text: str, field: str = "label") -> FilterResult:
        return self.create_filter_set(
            "textSearch", {"nodes": {field: {"value": search_text, "operator": "contains"}}}
        )

    def create_filter_from_search(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge] = (),
        name: str = "searchFilter",
    ) -> FilterResult:
        """Pin the view to the given search hits."""
        return self.create_filter_set(
            name,
            {"nodes": {"id": [n.id for n in nodes]}, "edges": {"id": [e.id for e in edges]}},
        )

    # --- Export / import ---

    def export_filters(self) -> str:
        """Serialize all sets to a JSON object keyed by name."""
        return _serialize(self._sets)

    def import_filters(self, payload: str) -> FilterResult:
        """Merge exported sets; nothing is merged if any entry is malformed.

        Raises:
            ConfigurationError: If the payload cannot be parsed
        """
        staged = parse_filter_sets(payload)
        self._commit({**self._sets, **staged})
        self.history.record("import", count=len(staged))
        return self.apply_all_active_filters()

    # --- History & stats ---

    def get_filter_history(self) -> list[FilterAction]:
        return self.history.entries()

    def clear_filter_history(self) -> None:
        self.history.clear()

    def get_filter_stats(self) -> FilterStats:
        snapshot = self._engine.snapshot()
        filtered = self.apply_all_active_filters()
        total_nodes, total_edges = len(snapshot.nodes), len(snapshot.edges)
        kept_nodes, kept_edges = len(filtered.nodes), len(filtered.edges)
        return FilterStats(
            original_nodes=total_nodes,
            original_edges=total_edges,
            filtered_nodes=kept_nodes,
            filtered_edges=kept_edges,
            removed_nodes=total_nodes - kept_nodes,
            removed_edges=total_edges - kept_edges,
            nodes_percent=_reduction(total_nodes, kept_nodes),
            edges_percent=_reduction(total_edges, kept_edges),
            active_filters=len(self.get_active_filters()),
        )


def _reduction(total: int, kept: int) -> float:
    if total == 0:
        return 0.0
    return round((1 - kept / total) * 100, 1)
