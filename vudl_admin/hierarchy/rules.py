"""Containment rules for parent/child model combinations.

Rules are checked in priority order and the first one that matches the
child decides the outcome:

1. data objects may only live in a ListCollection
2. a ListCollection may only live in a ResourceCollection
3. a ResourceCollection may only live in a FolderCollection
4. a FolderCollection may only live in another FolderCollection
5. anything else needs a parent carrying CollectionModel
"""

from dataclasses import dataclass
from typing import AbstractSet, Optional

from .models import ModelTag, SortOn

# (child tag, required parent tag), in priority order
_CONTAINMENT_RULES = (
    (ModelTag.LIST, ModelTag.RESOURCE),
    (ModelTag.RESOURCE, ModelTag.FOLDER),
    (ModelTag.FOLDER, ModelTag.FOLDER),
)


@dataclass(frozen=True)
class ContainmentDecision:
    allowed: bool
    reason: Optional[str] = None


ALLOWED = ContainmentDecision(allowed=True)


def _describe(models: AbstractSet[ModelTag]) -> str:
    if not models:
        return "Untyped"
    return "/".join(sorted(tag.value for tag in models))


def can_contain(
    parent_models: AbstractSet[ModelTag], child_models: AbstractSet[ModelTag]
) -> ContainmentDecision:
    """Decide whether a parent with ``parent_models`` may hold the child."""
    if any(tag.is_data for tag in child_models):
        if ModelTag.LIST in parent_models:
            return ALLOWED
        return ContainmentDecision(
            False, "DataModel objects must be contained by a ListCollection"
        )

    for child_tag, parent_tag in _CONTAINMENT_RULES:
        if child_tag in child_models:
            if parent_tag in parent_models:
                return ALLOWED
            return ContainmentDecision(
                False,
                f"{child_tag.value} objects must be contained by a {parent_tag.value}",
            )

    if ModelTag.COLLECTION in parent_models:
        return ALLOWED
    return ContainmentDecision(
        False,
        f"{_describe(child_models)} objects must be contained by a CollectionModel",
    )


def requires_sequence(parent_sort_on: SortOn) -> bool:
    """Children of a custom-sorted parent carry an explicit position."""
    return parent_sort_on == SortOn.CUSTOM


__all__ = ["ContainmentDecision", "can_contain", "requires_sequence"]
