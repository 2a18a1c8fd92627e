"""New object creation under an optional parent."""

from typing import Optional

from loguru import logger

from ..shared.exceptions import IllegalValueError
from .models import parse_model_tag, parse_state
from .protocols import RepositoryStore
from .results import Outcome
from .rules import can_contain


class ObjectFactory:
    """Validates a new object against its parent and asks the store to build it."""

    def __init__(self, store: RepositoryStore):
        self.store = store

    async def create(
        self,
        model: Optional[str],
        title: Optional[str],
        state: Optional[str],
        parent_pid: Optional[str] = None,
    ) -> Outcome:
        """Create an object; on success ``Outcome.value`` holds the new PID.

        Args:
            model: Content model name, with or without namespace prefix
            title: Title of the new object
            state: Initial lifecycle state
            parent_pid: Parent to attach to, or None for a top-level object
        """
        if not model:
            return Outcome.invalid("Missing model parameter.")
        try:
            tag = parse_model_tag(model)
        except IllegalValueError as e:
            return Outcome.invalid(str(e))
        if not title:
            return Outcome.invalid("Missing title parameter.")
        if not state:
            return Outcome.invalid("Missing state parameter.")
        try:
            initial_state = parse_state(state)
        except IllegalValueError as e:
            return Outcome.invalid(str(e))

        if parent_pid:
            try:
                parent = await self.store.get_object_data(parent_pid)
            except Exception:
                logger.warning(f"Could not load parent {parent_pid} for new {tag.value}")
                return Outcome.not_found(f"Error loading parent PID: {parent_pid}")
            if not parent.is_collection:
                return Outcome.invalid(f"Illegal parent {parent_pid}; not a collection!")
            decision = can_contain(parent.models, {tag})
            if not decision.allowed:
                return Outcome.invalid(decision.reason)

        try:
            pid = await self.store.create_object(tag, title, initial_state, parent_pid or None)
        except Exception as e:
            logger.exception(f"Failed to create {tag.value} object {title!r}")
            return Outcome.invalid(str(e))
        logger.info(f"Created {tag.value} object {pid}")
        return Outcome.success(value=pid, message=pid)


__all__ = ["ObjectFactory"]
