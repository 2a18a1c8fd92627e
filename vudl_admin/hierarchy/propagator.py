"""Lifecycle state changes for an object and, optionally, its whole subtree.

Descendants are found through the search index, page by page, and updated
one at a time. Writes are never issued concurrently: custom sequencing edges
under the same subtree must not be rewritten in parallel.

A failed write stops the walk. Objects already updated keep their new state;
re-running the same change is safe because every write is idempotent.
"""

from typing import Callable, Optional

from loguru import logger

from ..shared.exceptions import ObjectNotFoundError, SearchIndexError
from .models import ObjectState
from .protocols import RepositoryStore, SearchIndex
from .results import Outcome, PropagationResult

ProgressCallback = Callable[[str], None]

DESCENDANT_FIELD = "hierarchy_all_parents_str_mv"
DEFAULT_PAGE_SIZE = 1000


def _ignore_progress(message: str) -> None:
    pass


class StatePropagator:
    """Applies a state to an object and (optionally) all of its descendants."""

    def __init__(
        self,
        store: RepositoryStore,
        index: SearchIndex,
        index_name: str = "biblio",
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        """
        Args:
            store: Repository store that receives the state writes
            index: Search index used to enumerate descendants
            index_name: Index (Solr core) holding the object records
            page_size: Descendant PIDs requested per index query
        """
        self.store = store
        self.index = index
        self.index_name = index_name
        self.page_size = page_size

    async def update_state(
        self,
        pid: str,
        new_state: ObjectState,
        expected_descendants: int = 0,
        progress: Optional[ProgressCallback] = None,
    ) -> PropagationResult:
        """Set ``pid`` (and up to ``expected_descendants`` descendants) to ``new_state``.

        Args:
            pid: Target object
            new_state: State to apply
            expected_descendants: Number of descendants to update, or 0 to
                leave descendants alone
            progress: Receives a status line before every write

        Returns:
            PropagationResult with a user-facing message and severity
        """
        report = progress or _ignore_progress
        try:
            if expected_descendants > 0:
                await self._apply_to_descendants(pid, new_state, expected_descendants, report)
            report(f"Saving status for {pid} (0 more remaining)...")
            await self._apply_if_changed(pid, new_state)
        except Exception as e:
            logger.exception(f"State propagation from {pid} to {new_state.value} stopped")
            return PropagationResult(f'Status failed to save; "{e}"', "error")
        logger.info(f"Saved state {new_state.value} for {pid}")
        return PropagationResult("Status saved successfully.", "success")

    async def set_state(self, pid: str, new_state: ObjectState) -> Outcome:
        """Set a single object's state, skipping the write when nothing changes."""
        try:
            await self._apply_if_changed(pid, new_state)
            return Outcome.success()
        except ObjectNotFoundError as e:
            logger.info(f"State change refused: {e}")
            return Outcome.not_found(str(e))
        except Exception as e:
            logger.exception(f"Failed to set state of {pid}")
            return Outcome.unexpected(str(e))

    async def _apply_if_changed(self, pid: str, new_state: ObjectState) -> None:
        current = await self.store.get_object_data(pid)
        if current.state == new_state:
            logger.debug(f"{pid} is already {new_state.value}; not writing")
            return
        await self.store.modify_object_state(pid, new_state)

    async def _apply_to_descendants(
        self, pid: str, new_state: ObjectState, expected: int, report: ProgressCallback
    ) -> None:
        query = f'{DESCENDANT_FIELD}:"{pid}"'
        found = 0
        while found < expected:
            response = await self.index.query(
                self.index_name,
                query,
                {
                    "fl": "id",
                    "rows": str(self.page_size),
                    "sort": "id ASC",
                    "start": str(found),
                },
            )
            if response.status_code != 200:
                raise SearchIndexError("Unexpected Solr response code.")
            docs = response.docs
            if not docs:
                logger.warning(
                    f"Index returned {found} of {expected} expected descendants of {pid}"
                )
                break
            found += len(docs)
            for i, doc in enumerate(docs):
                remaining = max(expected - (found + i), 0)
                report(f"Saving status for {doc['id']} ({remaining} more remaining)...")
                await self.store.modify_object_state(doc["id"], new_state)


__all__ = ["StatePropagator", "ProgressCallback", "DEFAULT_PAGE_SIZE"]
