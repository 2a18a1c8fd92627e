"""Ancestor tree assembly from the repository store."""

from typing import FrozenSet

from loguru import logger

from .models import ObjectDescriptor, TreeNode
from .protocols import RepositoryStore

DEFAULT_MAX_DEPTH = 100


class HierarchyResolver:
    """Builds ancestor trees by recursive descent over parent edges.

    Nothing is cached: every call reflects the repository as it is now.
    Store errors (ObjectNotFoundError, RepositoryError) propagate to the
    caller unchanged.
    """

    def __init__(self, store: RepositoryStore, max_depth: int = DEFAULT_MAX_DEPTH):
        """
        Args:
            store: Repository store to read object metadata from
            max_depth: Deepest ancestor level resolved before a branch is cut
        """
        self.store = store
        self.max_depth = max_depth

    async def get_object_data(self, pid: str) -> ObjectDescriptor:
        return await self.store.get_object_data(pid)

    async def get_hierarchy(self, pid: str, shallow: bool = False) -> TreeNode:
        """Resolve ``pid`` and its ancestors.

        Args:
            pid: Object to start from
            shallow: Only resolve immediate parents, without their ancestors

        Returns:
            TreeNode rooted at ``pid`` whose ``parents`` are the ancestor branches
        """
        descriptor = await self.store.get_object_data(pid)
        node = TreeNode(descriptor)
        if shallow:
            for parent_pid in descriptor.parent_pids:
                parent = await self.store.get_object_data(parent_pid)
                node.parents.append(TreeNode(parent))
            return node
        node.parents = [
            await self._resolve(parent_pid, frozenset({pid}), 1)
            for parent_pid in descriptor.parent_pids
        ]
        return node

    async def _resolve(self, pid: str, path: FrozenSet[str], depth: int) -> TreeNode:
        descriptor = await self.store.get_object_data(pid)
        node = TreeNode(descriptor)
        if pid in path:
            logger.warning(f"Cycle in stored hierarchy at {pid}; branch truncated")
            return node
        if depth >= self.max_depth:
            logger.warning(f"Hierarchy above {pid} exceeds {self.max_depth} levels; branch truncated")
            return node
        branch = path | {pid}
        for parent_pid in descriptor.parent_pids:
            node.parents.append(await self._resolve(parent_pid, branch, depth + 1))
        return node


__all__ = ["HierarchyResolver"]
