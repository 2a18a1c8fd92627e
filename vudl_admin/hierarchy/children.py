"""Index-backed listings of an object's children and descendants."""

import re
from typing import Any, Dict, Optional

from ..shared.exceptions import SearchIndexError
from .protocols import SearchIndex, SearchResponse

PARENT_FIELD = "fedora_parent_id_str_mv"
ALL_PARENTS_FIELD = "hierarchy_all_parents_str_mv"
DEFAULT_ROWS = 100000


def sequence_field(pid: str) -> str:
    """Index field holding child positions under ``pid`` (``foo:123`` -> ``sequence_foo_123_str``)."""
    return "sequence_" + re.sub(r"[:.]", "_", pid) + "_str"


class ChildQueries:
    """Read-only child and descendant queries against the search index."""

    def __init__(self, index: SearchIndex, index_name: str = "biblio"):
        self.index = index
        self.index_name = index_name

    async def _query(self, query: str, params: Dict[str, str]) -> SearchResponse:
        response = await self.index.query(self.index_name, query, params)
        if response.status_code != 200:
            raise SearchIndexError("Unexpected Solr response code.")
        return response

    async def top_level_objects(self, start: int = 0, rows: int = DEFAULT_ROWS) -> Dict[str, Any]:
        response = await self._query(
            f"-{PARENT_FIELD}:*",
            {"fl": "id,title", "rows": str(rows), "sort": "title_sort ASC", "start": str(start)},
        )
        return response.response

    async def children(self, pid: str, start: int = 0, rows: int = DEFAULT_ROWS) -> Dict[str, Any]:
        """Direct children, custom positions first, then by title."""
        response = await self._query(
            f'{PARENT_FIELD}:"{pid}"',
            {
                "fl": "id,title",
                "rows": str(rows),
                "sort": f"{sequence_field(pid)} ASC,title_sort ASC",
                "start": str(start),
            },
        )
        return response.response

    async def child_counts(self, pid: str) -> Dict[str, int]:
        direct = await self._query(f'{PARENT_FIELD}:"{pid}"', {"rows": "0"})
        total = await self._query(f'{ALL_PARENTS_FIELD}:"{pid}"', {"rows": "0"})
        return {"directChildren": direct.num_found, "totalDescendants": total.num_found}

    async def last_child_position(self, pid: str) -> int:
        field = sequence_field(pid)
        response = await self._query(
            f'{PARENT_FIELD}:"{pid}"',
            {"fl": field, "rows": "1", "sort": f"{field} DESC"},
        )
        docs = response.docs
        if not docs or field not in docs[0]:
            return 0
        value = docs[0][field]
        # multi-valued fields come back as lists
        if isinstance(value, list):
            value = value[0] if value else 0
        return int(value)

    async def recursive_child_pids(self, pid: str, start: int = 0, rows: int = DEFAULT_ROWS) -> Dict[str, Any]:
        response = await self._query(
            f'{ALL_PARENTS_FIELD}:"{pid}"',
            {"fl": "id", "rows": str(rows), "sort": "id ASC", "start": str(start)},
        )
        return response.response

    async def direct_child_pids(
        self, pid: str, start: int = 0, rows: int = DEFAULT_ROWS, sort: Optional[str] = None
    ) -> Dict[str, Any]:
        response = await self._query(
            f'{PARENT_FIELD}:"{pid}"',
            {"fl": "id", "rows": str(rows), "sort": sort or "id ASC", "start": str(start)},
        )
        return response.response


__all__ = ["ChildQueries", "sequence_field"]
