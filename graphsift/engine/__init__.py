from graphsift.engine.cache import ResultCache
from graphsift.engine.filter_sets import FilterSetManager
from graphsift.engine.filters import FilterEngine, QuickFilters
from graphsift.engine.history import FilterHistory, SearchHistory
from graphsift.engine.indexer import IndexEntry, SearchIndex, extract_searchable_text
from graphsift.engine.operators import Operator, apply_operator, evaluate_operator
from graphsift.engine.persistence import load_snapshot, save_snapshot
from graphsift.engine.search import SearchResult, TextSearchEngine, fuzzy_match, relevance_score
from graphsift.engine.storage import KeyValueStore, MemoryStore, SQLiteStore
from graphsift.engine.traversal import find_connected_nodes, find_path

__all__ = [
    "IndexEntry",
    "SearchIndex",
    "extract_searchable_text",
    "SearchResult",
    "TextSearchEngine",
    "fuzzy_match",
    "relevance_score",
    "SearchHistory",
    "FilterHistory",
    "find_connected_nodes",
    "find_path",
    "Operator",
    "apply_operator",
    "evaluate_operator",
    "FilterEngine",
    "QuickFilters",
    "FilterSetManager",
    "ResultCache",
    "KeyValueStore",
    "MemoryStore",
    "SQLiteStore",
    "load_snapshot",
    "save_snapshot",
]
