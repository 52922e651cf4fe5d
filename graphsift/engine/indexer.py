"""Flat text index over graph nodes and edges.

The index is rebuilt in full on every call to ``build``; there are no
incremental updates. It reflects the snapshot it was built from until the
caller rebuilds it.
"""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any, Literal

from graphsift.models import Edge, Node, NodeId

logger = logging.getLogger(__name__)

EntryKind = Literal["node", "edge"]


@dataclass
class IndexEntry:
    """One indexed entity.

    Attributes:
        id: The entity id
        kind: "node" or "edge"
        text: Lowercased, space-joined searchable text
        raw_text: The same text with its original case
        ref: The indexed Node or Edge
    """

    id: NodeId
    kind: EntryKind
    text: str
    raw_text: str
    ref: Node | Edge

    @property
    def key(self) -> str:
        return index_key(self.kind, self.id)


def index_key(kind: str, entity_id: Any) -> str:
    return f"{kind}-{entity_id}"


def extract_searchable_text(item: Node | Edge, lowercase: bool = True) -> str:
    """Concatenate label, type, id and every property key and value."""
    parts: list[str] = []
    if item.label:
        parts.append(str(item.label))
    if item.type:
        parts.append(str(item.type))
    if item.id is not None and item.id != "":
        parts.append(str(item.id))
    for key, value in (item.properties or {}).items():
        parts.append(str(key))
        parts.append(str(value))
    text = " ".join(parts)
    return text.lower() if lowercase else text


class SearchIndex:
    """Lookup of IndexEntry keyed by ``"{kind}-{id}"``."""

    def __init__(self) -> None:
        self._entries: dict[str, IndexEntry] = {}

    def build(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
        """Replace the index contents with one entry per node and per edge."""
        self._entries.clear()
        node_count = edge_count = 0
        for node in nodes:
            self._add("node", node)
            node_count += 1
        for edge in edges:
            self._add("edge", edge)
            edge_count += 1
        logger.debug("Indexed %d nodes and %d edges", node_count, edge_count)

    def _add(self, kind: EntryKind, item: Node | Edge) -> None:
        raw = extract_searchable_text(item, lowercase=False)
        entry = IndexEntry(id=item.id, kind=kind, text=raw.lower(), raw_text=raw, ref=item)
        self._entries[entry.key] = entry

    def clear(self) -> None:
        self._entries.clear()

    def get(self, kind: str, entity_id: Any) -> IndexEntry | None:
        return self._entries.get(index_key(kind, entity_id))

    def entries(self) -> list[IndexEntry]:
        return list(self._entries.values())

    def tokens(self) -> Iterator[str]:
        """Yield the whitespace-separated words of every entry, in index order."""
        for entry in self._entries.values():
            yield from entry.text.split()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[IndexEntry]:
        return iter(list(self._entries.values()))
