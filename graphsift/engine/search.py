"""Ranked text search over a SearchIndex.

Matching is either fuzzy (the query is a subsequence of the entry text) or
exact (the query is a substring). Matches are ranked by ``relevance_score``.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from graphsift.engine.history import SearchHistory
from graphsift.engine.indexer import EntryKind, SearchIndex, extract_searchable_text
from graphsift.engine.operators import match_properties, strict_contains, strict_equals
from graphsift.models import Edge, Node, NodeId


@dataclass(frozen=True)
class SearchResult:
    """A matching index entry and its relevance score (higher is better)."""

    kind: EntryKind
    ref: Node | Edge
    score: float

    @property
    def id(self) -> NodeId:
        return self.ref.id


def fuzzy_match(text: str, query: str) -> bool:
    """True if every character of query appears in text, in order."""
    position = 0
    for char in text:
        if position == len(query):
            break
        if char == query[position]:
            position += 1
    return position == len(query)


def relevance_score(text: str, query: str) -> float:
    """Score a match: substring, prefix and word bonuses minus a length penalty."""
    score = 0.0
    if query in text:
        score += 100
    if text.startswith(query):
        score += 50
    for word in text.split():
        if word.startswith(query):
            score += 25
        if word == query:
            score += 75
    score -= len(text) * 0.1
    return max(0.0, score)


def matches_criterion(item: Node | Edge, key: str, value: Any) -> bool:
    if key == "text":
        return fuzzy_match(extract_searchable_text(item), str(value).lower())
    if key in ("type", "id"):
        actual = getattr(item, key)
        if isinstance(value, (list, tuple, set, frozenset)):
            return strict_contains(value, actual)
        return strict_equals(actual, value)
    if key == "properties":
        return match_properties(item.properties, value)
    return strict_equals(getattr(item, key, None), value)


def matches_criteria(item: Node | Edge, criteria: Mapping[str, Any]) -> bool:
    """Conjunction of per-key criteria, as used by criteria search."""
    return all(matches_criterion(item, key, value) for key, value in criteria.items())


class TextSearchEngine:
    """Text search and suggestions against a SearchIndex.

    Every non-empty query is recorded in the search history, whether or
    not it matches anything.
    """

    def __init__(self, index: SearchIndex, history: SearchHistory | None = None) -> None:
        self.index = index
        self.history = history if history is not None else SearchHistory()

    def text_search(
        self,
        query: str,
        *,
        case_sensitive: bool = False,
        exact_match: bool = False,
        search_nodes: bool = True,
        search_edges: bool = True,
        limit: int = 100,
    ) -> list[SearchResult]:
        """Search the index.

        Args:
            query: Text to look for; empty yields no results
            case_sensitive: Match against the case-preserved text
            exact_match: Substring instead of subsequence matching
            search_nodes: Include node entries
            search_edges: Include edge entries
            limit: Maximum number of results, best scores first

        Returns:
            Results sorted by descending score
        """
        if not query:
            return []

        needle = query if case_sensitive else query.lower()
        results: list[SearchResult] = []

        for entry in self.index:
            if entry.kind == "node" and not search_nodes:
                continue
            if entry.kind == "edge" and not search_edges:
                continue
            haystack = entry.raw_text if case_sensitive else entry.text
            if exact_match:
                matched = needle in haystack
            else:
                matched = fuzzy_match(haystack, needle)
            if matched:
                results.append(
                    SearchResult(
                        kind=entry.kind,
                        ref=entry.ref,
                        score=relevance_score(haystack, needle),
                    )
                )

        results.sort(key=lambda r: r.score, reverse=True)
        self.history.add(query)
        return results[: max(limit, 0)]

    def get_suggestions(self, partial_query: str, limit: int = 10) -> list[str]:
        """Indexed words that extend partial_query, in index order."""
        if not partial_query or limit <= 0:
            return []
        prefix = partial_query.lower()
        suggestions: dict[str, None] = {}
        for word in self.index.tokens():
            if len(word) > len(prefix) and word.startswith(prefix):
                suggestions.setdefault(word)
                if len(suggestions) >= limit:
                    break
        return list(suggestions)

    @staticmethod
    def filter_items(items: Iterable[Node | Edge], criteria: Mapping[str, Any]) -> list:
        return [item for item in items if matches_criteria(item, criteria)]
