"""Shared fixtures"""
from typing import Iterable, Optional
from unittest.mock import AsyncMock

import pytest

from vudl_admin.hierarchy import (
    ModelTag,
    ObjectDescriptor,
    ObjectState,
    ParentEdge,
    SearchResponse,
    SortOn,
)
from vudl_admin.shared.exceptions import ObjectNotFoundError

PLAIN_COLLECTION = frozenset({ModelTag.CORE, ModelTag.COLLECTION})


def _make_object(
    pid: str,
    models: Iterable[ModelTag] = PLAIN_COLLECTION,
    parents: Iterable = (),
    sort_on: SortOn = SortOn.TITLE,
    state: Optional[ObjectState] = ObjectState.ACTIVE,
    title: str = "",
) -> ObjectDescriptor:
    edges = tuple(p if isinstance(p, ParentEdge) else ParentEdge(p) for p in parents)
    return ObjectDescriptor(
        pid=pid,
        title=title,
        models=frozenset(models),
        state=state,
        sort_on=sort_on,
        parents=edges,
    )


@pytest.fixture
def make_object():
    """Build an ObjectDescriptor; parents may be PIDs or ParentEdges"""
    return _make_object


@pytest.fixture
def make_store():
    """Mock RepositoryStore serving the given descriptors"""

    def _make(*descriptors: ObjectDescriptor) -> AsyncMock:
        objects = {d.pid: d for d in descriptors}

        async def get_object_data(pid):
            if pid not in objects:
                raise ObjectNotFoundError(pid)
            return objects[pid]

        store = AsyncMock()
        store.objects = objects
        store.get_object_data = AsyncMock(side_effect=get_object_data)
        store.create_object = AsyncMock(return_value="vudl:new")
        return store

    return _make


@pytest.fixture
def solr_reply():
    """Build a SearchResponse around a Solr ``response`` block"""

    def _reply(status_code: int = 200, **response) -> SearchResponse:
        return SearchResponse(status_code=status_code, body={"response": response})

    return _reply
