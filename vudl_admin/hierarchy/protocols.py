"""Protocols for the external collaborators of the hierarchy engine.

Concrete implementations live in ``vudl_admin.services``; tests substitute
``AsyncMock`` objects.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol

from .models import ModelTag, ObjectDescriptor, ObjectState, SortOn


class RepositoryStore(Protocol):
    """Object metadata and relationship storage (Fedora)."""

    async def get_object_data(self, pid: str) -> ObjectDescriptor:
        """Fetch one object; raises ObjectNotFoundError for unknown PIDs."""
        ...

    async def add_parent_relationship(self, pid: str, parent_pid: str) -> None:
        ...

    async def delete_parent_relationship(self, pid: str, parent_pid: str) -> None:
        ...

    async def add_sequence_relationship(self, pid: str, parent_pid: str, position: int) -> None:
        ...

    async def update_sequence_relationship(self, pid: str, parent_pid: str, position: int) -> None:
        ...

    async def delete_sequence_relationship(self, pid: str, parent_pid: str) -> None:
        ...

    async def move_pid_to_parent(self, pid: str, parent_pid: str, position: Optional[int]) -> None:
        """Replace every parent/sequence edge of ``pid`` in one operation."""
        ...

    async def modify_object_state(self, pid: str, state: ObjectState) -> None:
        ...

    async def update_sort_on(self, pid: str, sort_on: SortOn) -> None:
        ...

    async def create_object(
        self, model: ModelTag, title: str, state: ObjectState, parent_pid: Optional[str]
    ) -> str:
        """Create an object and return its new PID."""
        ...


@dataclass
class SearchResponse:
    """Raw search index reply: HTTP status plus decoded JSON body."""

    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def response(self) -> Dict[str, Any]:
        return self.body.get("response", {}) or {}

    @property
    def docs(self) -> List[Dict[str, Any]]:
        return self.response.get("docs", []) or []

    @property
    def num_found(self) -> int:
        return int(self.response.get("numFound", 0) or 0)


class SearchIndex(Protocol):
    """Paginated query execution (Solr)."""

    async def query(self, index: str, query: str, params: Mapping[str, str]) -> SearchResponse:
        ...


__all__ = ["RepositoryStore", "SearchIndex", "SearchResponse"]
