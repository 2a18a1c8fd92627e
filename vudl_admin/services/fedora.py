"""
Fedora repository adapter.

Object metadata is read as JSON-LD and relationships are written with
SPARQL-Update PATCH requests. Each public write method issues exactly one
request, so a move replaces every parent and sequence edge atomically.
"""

import uuid
from typing import Any, Dict, Iterable, List, Optional

import httpx
from loguru import logger

from ..hierarchy.models import (
    ModelTag,
    ObjectDescriptor,
    ObjectState,
    ParentEdge,
    SortOn,
    parse_model_tags,
)
from ..shared.exceptions import ObjectNotFoundError, RepositoryError

HAS_MODEL = "info:fedora/fedora-system:def/model#hasModel"
STATE = "info:fedora/fedora-system:def/model#state"
IS_MEMBER_OF = "info:fedora/fedora-system:def/relations-external#isMemberOf"
SEQUENCE = "http://vudl.org/relationships#sequence"
SORT_ON = "http://vudl.org/relationships#sortOn"
TITLE = "http://purl.org/dc/terms/title"

MODEL_NAMESPACE = "vudl-system"
SPARQL_UPDATE = "application/sparql-update"


def _literal(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def _object_uri(pid: str) -> str:
    return f"<info:fedora/{pid}>"


def _model_uri(tag: ModelTag) -> str:
    return f"<info:fedora/{MODEL_NAMESPACE}:{tag.value}>"


def _pid_from_uri(uri: str) -> str:
    return uri.rsplit("/", 1)[-1]


def _values(node: Dict[str, Any], predicate: str) -> List[str]:
    """String values of a predicate in an expanded JSON-LD node."""
    values = []
    for item in node.get(predicate, []) or []:
        if isinstance(item, dict):
            value = item.get("@value", item.get("@id"))
        else:
            value = item
        if value is not None:
            values.append(str(value))
    return values


class FedoraRepository:
    """Repository store backed by a Fedora REST endpoint.

    The httpx client is owned by the caller (the application lifespan), which
    configures credentials and timeouts.
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str, pid_namespace: str = "vudl"):
        """
        Args:
            client: Shared async HTTP client
            base_url: Fedora REST root, e.g. http://localhost:8080/rest
            pid_namespace: Prefix for PIDs minted by create_object
        """
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.pid_namespace = pid_namespace

    def _url(self, pid: str) -> str:
        return f"{self.base_url}/{pid}"

    def _check(self, response: httpx.Response, pid: str) -> None:
        if response.status_code == 404:
            raise ObjectNotFoundError(pid)
        if response.status_code >= 400:
            raise RepositoryError(
                f"Fedora request for {pid} failed ({response.status_code}): {response.text[:200]}"
            )

    async def _patch(self, pid: str, sparql: str) -> None:
        response = await self.client.patch(
            self._url(pid), content=sparql, headers={"Content-Type": SPARQL_UPDATE}
        )
        self._check(response, pid)

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_object_data(self, pid: str) -> ObjectDescriptor:
        response = await self.client.get(
            self._url(pid), headers={"Accept": "application/ld+json"}
        )
        self._check(response, pid)
        return self._parse_descriptor(pid, response.json())

    def _parse_descriptor(self, pid: str, document: Any) -> ObjectDescriptor:
        nodes = document if isinstance(document, list) else document.get("@graph", [document])
        node = next(
            (n for n in nodes if str(n.get("@id", "")).endswith(f"/{pid}")),
            nodes[0] if nodes else {},
        )

        sequences: Dict[str, int] = {}
        for value in _values(node, SEQUENCE):
            parent_pid, _, position = value.rpartition("#")
            if parent_pid and position.isdigit():
                sequences[parent_pid] = int(position)

        parents = tuple(
            ParentEdge(parent_pid, sequences.get(parent_pid))
            for parent_pid in (_pid_from_uri(uri) for uri in _values(node, IS_MEMBER_OF))
        )

        states = _values(node, STATE)
        state = None
        if states:
            try:
                state = ObjectState(_pid_from_uri(states[0]).rsplit("#", 1)[-1])
            except ValueError:
                logger.warning(f"{pid} has unrecognized state {states[0]}")

        sort_values = _values(node, SORT_ON)
        sort_on = SortOn.CUSTOM if sort_values and sort_values[0] == "custom" else SortOn.TITLE

        titles = _values(node, TITLE)
        return ObjectDescriptor(
            pid=pid,
            title=titles[0] if titles else "",
            models=parse_model_tags(_values(node, HAS_MODEL)),
            state=state,
            sort_on=sort_on,
            parents=parents,
        )

    # =========================================================================
    # Relationship writes
    # =========================================================================

    async def add_parent_relationship(self, pid: str, parent_pid: str) -> None:
        await self._patch(
            pid, f"INSERT {{ <> <{IS_MEMBER_OF}> {_object_uri(parent_pid)} . }} WHERE {{}}"
        )

    async def delete_parent_relationship(self, pid: str, parent_pid: str) -> None:
        await self._patch(
            pid, f"DELETE {{ <> <{IS_MEMBER_OF}> {_object_uri(parent_pid)} . }} WHERE {{}}"
        )

    async def add_sequence_relationship(self, pid: str, parent_pid: str, position: int) -> None:
        await self._patch(
            pid,
            f"INSERT {{ <> <{SEQUENCE}> {_literal(f'{parent_pid}#{position}')} . }} WHERE {{}}",
        )

    async def update_sequence_relationship(self, pid: str, parent_pid: str, position: int) -> None:
        prefix = _literal(f"{parent_pid}#")
        await self._patch(
            pid,
            f"DELETE {{ <> <{SEQUENCE}> ?seq . }} "
            f"INSERT {{ <> <{SEQUENCE}> {_literal(f'{parent_pid}#{position}')} . }} "
            f"WHERE {{ OPTIONAL {{ <> <{SEQUENCE}> ?seq . FILTER(STRSTARTS(STR(?seq), {prefix})) }} }}",
        )

    async def delete_sequence_relationship(self, pid: str, parent_pid: str) -> None:
        prefix = _literal(f"{parent_pid}#")
        await self._patch(
            pid,
            f"DELETE {{ <> <{SEQUENCE}> ?seq . }} "
            f"WHERE {{ <> <{SEQUENCE}> ?seq . FILTER(STRSTARTS(STR(?seq), {prefix})) }}",
        )

    async def move_pid_to_parent(self, pid: str, parent_pid: str, position: Optional[int]) -> None:
        inserts = [f"<> <{IS_MEMBER_OF}> {_object_uri(parent_pid)} ."]
        if position is not None:
            inserts.append(f"<> <{SEQUENCE}> {_literal(f'{parent_pid}#{position}')} .")
        await self._patch(
            pid,
            f"DELETE {{ <> <{IS_MEMBER_OF}> ?parent . <> <{SEQUENCE}> ?seq . }} "
            f"INSERT {{ {' '.join(inserts)} }} "
            f"WHERE {{ OPTIONAL {{ <> <{IS_MEMBER_OF}> ?parent }} OPTIONAL {{ <> <{SEQUENCE}> ?seq }} }}",
        )

    async def _replace_value(self, pid: str, predicate: str, value: str) -> None:
        await self._patch(
            pid,
            f"DELETE {{ <> <{predicate}> ?old . }} "
            f"INSERT {{ <> <{predicate}> {_literal(value)} . }} "
            f"WHERE {{ OPTIONAL {{ <> <{predicate}> ?old }} }}",
        )

    async def modify_object_state(self, pid: str, state: ObjectState) -> None:
        await self._replace_value(pid, STATE, state.value)

    async def update_sort_on(self, pid: str, sort_on: SortOn) -> None:
        await self._replace_value(pid, SORT_ON, sort_on.value)

    # =========================================================================
    # Creation
    # =========================================================================

    def _models_for(self, model: ModelTag) -> Iterable[ModelTag]:
        base = ModelTag.DATA if model.is_data else ModelTag.COLLECTION
        return dict.fromkeys([ModelTag.CORE, base, model])

    async def create_object(
        self, model: ModelTag, title: str, state: ObjectState, parent_pid: Optional[str]
    ) -> str:
        pid = f"{self.pid_namespace}:{uuid.uuid4().hex}"
        triples = [f"<> <{HAS_MODEL}> {_model_uri(tag)} ." for tag in self._models_for(model)]
        triples.append(f"<> <{TITLE}> {_literal(title)} .")
        triples.append(f"<> <{STATE}> {_literal(state.value)} .")
        if not model.is_data:
            triples.append(f"<> <{SORT_ON}> {_literal(SortOn.TITLE.value)} .")
        if parent_pid:
            triples.append(f"<> <{IS_MEMBER_OF}> {_object_uri(parent_pid)} .")
        response = await self.client.put(
            self._url(pid),
            content="\n".join(triples),
            headers={"Content-Type": "text/turtle"},
        )
        self._check(response, pid)
        return pid


__all__ = ["FedoraRepository"]
