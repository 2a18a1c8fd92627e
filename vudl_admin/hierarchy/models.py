"""Repository object descriptors and ancestor trees.

Model tags arrive from the repository as namespaced URIs
(``http://localhost:8080/rest/vudl-system:FolderCollection``) or prefixed
names (``vudl-system:FolderCollection``). They are parsed into ``ModelTag``
values once, when a descriptor is built, so the rest of the package compares
enum members instead of substrings.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from loguru import logger

from ..shared.exceptions import IllegalValueError


class ModelTag(str, Enum):
    """Content models an object may carry."""

    CORE = "CoreModel"
    COLLECTION = "CollectionModel"
    FOLDER = "FolderCollection"
    RESOURCE = "ResourceCollection"
    LIST = "ListCollection"
    DATA = "DataModel"
    IMAGE_DATA = "ImageData"
    PDF_DATA = "PDFData"
    DOC_DATA = "DOCData"
    AUDIO_DATA = "AudioData"
    VIDEO_DATA = "VideoData"
    TEXT_DATA = "TextData"

    @property
    def is_data(self) -> bool:
        return self is ModelTag.DATA or self.value.endswith("Data")


class ObjectState(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    DELETED = "Deleted"


class SortOn(str, Enum):
    CUSTOM = "custom"
    TITLE = "title"


def _strip_namespace(raw: str) -> str:
    # "http://host/rest/vudl-system:X" -> "vudl-system:X" -> "X"
    name = raw.rsplit("/", 1)[-1]
    return name.rsplit(":", 1)[-1]


def parse_model_tag(raw: str) -> ModelTag:
    """Parse a single model name, with or without namespace prefix.

    Raises:
        IllegalValueError: If the name is not a known content model.
    """
    try:
        return ModelTag(_strip_namespace(raw.strip()))
    except ValueError:
        raise IllegalValueError(f"Unrecognized model {raw}.") from None


def parse_model_tags(raws: Iterable[str]) -> FrozenSet[ModelTag]:
    """Parse every recognized model name; unknown names are skipped."""
    tags: Set[ModelTag] = set()
    for raw in raws:
        try:
            tags.add(parse_model_tag(raw))
        except IllegalValueError:
            logger.debug(f"Ignoring unrecognized model tag: {raw}")
    return frozenset(tags)


def parse_state(raw: str) -> ObjectState:
    try:
        return ObjectState(raw)
    except ValueError:
        raise IllegalValueError(f"Illegal state: {raw}") from None


def parse_sort_on(raw: str) -> SortOn:
    try:
        return SortOn(raw)
    except ValueError:
        legal = ", ".join(sorted(s.value for s in SortOn))
        raise IllegalValueError(
            f"Unrecognized sortOn value: {raw}. Legal values: {legal}"
        ) from None


@dataclass(frozen=True)
class ParentEdge:
    """One parent link of an object; ``sequence`` is set only under custom sort."""

    parent_pid: str
    sequence: Optional[int] = None


@dataclass(frozen=True)
class ObjectDescriptor:
    """Metadata snapshot of one repository object, built fresh on every fetch."""

    pid: str
    title: str = ""
    models: FrozenSet[ModelTag] = frozenset()
    state: Optional[ObjectState] = None
    sort_on: SortOn = SortOn.TITLE
    parents: Tuple[ParentEdge, ...] = ()

    def has_model(self, tag: ModelTag) -> bool:
        return tag in self.models

    @property
    def is_collection(self) -> bool:
        return self.has_model(ModelTag.COLLECTION)

    @property
    def parent_pids(self) -> List[str]:
        return [edge.parent_pid for edge in self.parents]

    def sequence_for(self, parent_pid: str) -> Optional[int]:
        for edge in self.parents:
            if edge.parent_pid == parent_pid:
                return edge.sequence
        return None


@dataclass
class TreeNode:
    """An object plus the ancestor branches resolved above it.

    A node with several parents has one branch per parent. The same PID may
    appear in more than one branch; this is a display tree, not a graph.
    """

    descriptor: ObjectDescriptor
    parents: List["TreeNode"] = field(default_factory=list)

    @property
    def pid(self) -> str:
        return self.descriptor.pid

    @property
    def title(self) -> str:
        return self.descriptor.title

    @property
    def models(self) -> FrozenSet[ModelTag]:
        return self.descriptor.models

    @property
    def sort_on(self) -> SortOn:
        return self.descriptor.sort_on

    def find_parent(self, pid: str) -> Optional["TreeNode"]:
        for parent in self.parents:
            if parent.pid == pid:
                return parent
        return None

    def all_ancestor_pids(self) -> Set[str]:
        pids: Set[str] = set()
        stack = list(self.parents)
        while stack:
            node = stack.pop()
            pids.add(node.pid)
            stack.extend(node.parents)
        return pids

    def to_dict(self) -> Dict:
        return {
            "pid": self.pid,
            "title": self.title,
            "parents": [parent.to_dict() for parent in self.parents],
        }


__all__ = [
    "ModelTag",
    "ObjectState",
    "SortOn",
    "ParentEdge",
    "ObjectDescriptor",
    "TreeNode",
    "parse_model_tag",
    "parse_model_tags",
    "parse_state",
    "parse_sort_on",
]
