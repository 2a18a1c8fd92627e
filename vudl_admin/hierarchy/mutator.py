"""Parent/child relationship editing.

Every entry point validates before it writes, and reports the result as an
``Outcome`` instead of raising. Validation messages are returned verbatim to
API callers, so they are kept stable.
"""

from typing import Optional, Tuple

from loguru import logger

from ..shared.exceptions import ObjectNotFoundError
from .models import ObjectDescriptor, TreeNode
from .protocols import RepositoryStore
from .resolver import HierarchyResolver
from .results import Outcome
from .rules import can_contain, requires_sequence


def parse_position(position_spec: Optional[str]) -> Optional[int]:
    """Turn a request body into a sequence number; blank or non-numeric means none."""
    if position_spec is None:
        return None
    text = position_spec.strip()
    if not text.isdecimal():
        return None
    return int(text)


def not_immediate_parent_message(pid: str, parent_pid: str) -> str:
    return f"{parent_pid} is not an immediate parent of {pid}."


class RelationshipMutator:
    """Adds, moves and removes parent edges and sibling positions."""

    def __init__(self, store: RepositoryStore, resolver: HierarchyResolver):
        self.store = store
        self.resolver = resolver

    # =========================================================================
    # Attach / move
    # =========================================================================

    async def _validate_new_parent(
        self, pid: str, parent_pid: str
    ) -> Tuple[Optional[Outcome], Optional[TreeNode]]:
        """Checks shared by add and move; returns (failure, parent tree)."""
        if pid == parent_pid:
            return Outcome.invalid("Object cannot be its own parent."), None

        try:
            parent = await self.resolver.get_hierarchy(parent_pid, False)
        except ObjectNotFoundError:
            return Outcome.not_found(f"Error loading parent PID: {parent_pid}"), None

        if pid in parent.all_ancestor_pids():
            return Outcome.invalid("Object cannot be its own grandparent."), None

        if not parent.descriptor.is_collection:
            return Outcome.invalid(f"Illegal parent {parent_pid}; not a collection!"), None

        child: ObjectDescriptor = await self.resolver.get_object_data(pid)
        decision = can_contain(parent.models, child.models)
        if not decision.allowed:
            return Outcome.invalid(decision.reason), None

        return None, parent

    async def add_parent(self, pid: str, parent_pid: str, position_spec: Optional[str] = "") -> Outcome:
        """Attach ``pid`` to an additional parent.

        Args:
            pid: Child PID
            parent_pid: New parent PID
            position_spec: Position among siblings ("" for none); only used
                when the parent sorts its children in custom order
        """
        try:
            failure, parent = await self._validate_new_parent(pid, parent_pid)
            if failure:
                return failure

            await self.store.add_parent_relationship(pid, parent_pid)
            position = parse_position(position_spec)
            if requires_sequence(parent.sort_on) and position is not None:
                await self.store.add_sequence_relationship(pid, parent_pid, position)
            logger.info(f"Added parent {parent_pid} to {pid}")
            return Outcome.success()
        except ObjectNotFoundError as e:
            return self._not_found(e)
        except Exception as e:
            logger.exception(f"Failed to add parent {parent_pid} to {pid}")
            return Outcome.unexpected(str(e))

    async def move_to_parent(self, pid: str, parent_pid: str, position_spec: Optional[str] = "") -> Outcome:
        """Replace all of ``pid``'s parents with ``parent_pid`` in one store call."""
        try:
            failure, parent = await self._validate_new_parent(pid, parent_pid)
            if failure:
                return failure

            position = parse_position(position_spec)
            if not requires_sequence(parent.sort_on):
                position = None
            await self.store.move_pid_to_parent(pid, parent_pid, position)
            logger.info(f"Moved {pid} to parent {parent_pid}")
            return Outcome.success()
        except ObjectNotFoundError as e:
            return self._not_found(e)
        except Exception as e:
            logger.exception(f"Failed to move {pid} to parent {parent_pid}")
            return Outcome.unexpected(str(e))

    # =========================================================================
    # Detach / positions
    # =========================================================================

    async def _immediate_parent(self, pid: str, parent_pid: str) -> Tuple[TreeNode, Optional[TreeNode]]:
        node = await self.resolver.get_hierarchy(pid, True)
        return node, node.find_parent(parent_pid)

    @staticmethod
    def _not_found(error: ObjectNotFoundError) -> Outcome:
        logger.info(f"Edit refused: {error}")
        return Outcome.not_found(str(error))

    @staticmethod
    def _require_custom_sort(parent_pid: str, parent: TreeNode) -> Optional[Outcome]:
        if requires_sequence(parent.sort_on):
            return None
        return Outcome.invalid(
            f"{parent_pid} has sort value of {parent.sort_on.value}; custom is required."
        )

    async def remove_parent(self, pid: str, parent_pid: str) -> Outcome:
        """Detach ``pid`` from ``parent_pid``, dropping its position there if any."""
        try:
            _, parent = await self._immediate_parent(pid, parent_pid)
            if parent is None:
                return Outcome.invalid(not_immediate_parent_message(pid, parent_pid))

            await self.store.delete_parent_relationship(pid, parent_pid)
            logger.info(f"Removed parent {parent_pid} from {pid}")
        except ObjectNotFoundError as e:
            return self._not_found(e)
        except Exception as e:
            logger.exception(f"Failed to remove parent {parent_pid} from {pid}")
            return Outcome.unexpected(str(e))

        if requires_sequence(parent.sort_on):
            try:
                await self.store.delete_sequence_relationship(pid, parent_pid)
            except Exception as e:
                logger.exception(f"Removed parent {parent_pid} from {pid} but not its sequence")
                return Outcome.unexpected(f"Parent removed, but sequence removal failed: {e}")
        return Outcome.success()

    async def set_position(self, pid: str, parent_pid: str, position: int) -> Outcome:
        """Set ``pid``'s sequence number under a custom-sorted parent."""
        try:
            _, parent = await self._immediate_parent(pid, parent_pid)
            if parent is None:
                return Outcome.invalid(not_immediate_parent_message(pid, parent_pid))
            failure = self._require_custom_sort(parent_pid, parent)
            if failure:
                return failure
            await self.store.update_sequence_relationship(pid, parent_pid, position)
            logger.info(f"Set position of {pid} in {parent_pid} to {position}")
            return Outcome.success()
        except ObjectNotFoundError as e:
            return self._not_found(e)
        except Exception as e:
            logger.exception(f"Failed to set position of {pid} in {parent_pid}")
            return Outcome.unexpected(str(e))

    async def clear_position(self, pid: str, parent_pid: str) -> Outcome:
        """Drop ``pid``'s sequence number under a custom-sorted parent.

        Deleting a sequence that is not there is a no-op in the store, so the
        edge is not looked up first.
        """
        try:
            _, parent = await self._immediate_parent(pid, parent_pid)
            if parent is None:
                return Outcome.invalid(not_immediate_parent_message(pid, parent_pid))
            failure = self._require_custom_sort(parent_pid, parent)
            if failure:
                return failure
            await self.store.delete_sequence_relationship(pid, parent_pid)
            logger.info(f"Cleared position of {pid} in {parent_pid}")
            return Outcome.success()
        except ObjectNotFoundError as e:
            return self._not_found(e)
        except Exception as e:
            logger.exception(f"Failed to clear position of {pid} in {parent_pid}")
            return Outcome.unexpected(str(e))


__all__ = ["RelationshipMutator", "parse_position"]
