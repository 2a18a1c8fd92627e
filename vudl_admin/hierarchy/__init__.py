"""Hierarchy engine: containment rules, ancestor trees, relationship edits
and state propagation."""

from .children import ChildQueries
from .factory import ObjectFactory
from .models import (
    ModelTag,
    ObjectDescriptor,
    ObjectState,
    ParentEdge,
    SortOn,
    TreeNode,
    parse_model_tag,
    parse_model_tags,
    parse_sort_on,
    parse_state,
)
from .mutator import RelationshipMutator
from .propagator import StatePropagator
from .protocols import RepositoryStore, SearchIndex, SearchResponse
from .resolver import HierarchyResolver
from .results import ErrorKind, Outcome, PropagationResult
from .rules import ContainmentDecision, can_contain, requires_sequence

__all__ = [
    "ChildQueries",
    "ContainmentDecision",
    "ErrorKind",
    "HierarchyResolver",
    "ModelTag",
    "ObjectDescriptor",
    "ObjectFactory",
    "ObjectState",
    "Outcome",
    "ParentEdge",
    "PropagationResult",
    "RelationshipMutator",
    "RepositoryStore",
    "SearchIndex",
    "SearchResponse",
    "SortOn",
    "StatePropagator",
    "TreeNode",
    "can_contain",
    "parse_model_tag",
    "parse_model_tags",
    "parse_sort_on",
    "parse_state",
    "requires_sequence",
]
