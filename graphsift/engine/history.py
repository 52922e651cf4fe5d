"""Session bookkeeping: recent search queries and filter-set actions."""

from collections import deque
from typing import Any

from graphsift.models import FilterAction


class SearchHistory:
    """Distinct queries, most recent first, capped at ``max_size``.

    Re-issuing a query moves it to the front. Repeating the query that was
    recorded last is a no-op.
    """

    def __init__(self, max_size: int = 50) -> None:
        self.max_size = max_size
        self._queries: list[str] = []
        self._last_query = ""

    def add(self, query: str) -> None:
        if not query or query == self._last_query:
            return
        if query in self._queries:
            self._queries.remove(query)
        self._queries.insert(0, query)
        del self._queries[self.max_size :]
        self._last_query = query

    def entries(self) -> list[str]:
        return list(self._queries)

    def clear(self) -> None:
        self._queries.clear()
        self._last_query = ""

    def __len__(self) -> int:
        return len(self._queries)


class FilterHistory:
    """Ring buffer of filter-set actions, most recent first.

    When full, the oldest action is dropped.
    """

    def __init__(self, max_size: int = 20) -> None:
        self._actions: deque[FilterAction] = deque(maxlen=max_size)

    @property
    def max_size(self) -> int:
        return self._actions.maxlen or 0

    def record(self, action: str, **details: Any) -> FilterAction:
        entry = FilterAction(action=action, **details)
        self._actions.appendleft(entry)
        return entry

    def entries(self) -> list[FilterAction]:
        return list(self._actions)

    def clear(self) -> None:
        self._actions.clear()

    def __len__(self) -> int:
        return len(self._actions)
