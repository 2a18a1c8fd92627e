"""Editor routes: relationships, positions, states and child listings"""
import asyncio
import json
from typing import AsyncGenerator, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from loguru import logger
from sse_starlette.sse import EventSourceResponse

from ..auth import verify_token
from ..hierarchy import (
    ChildQueries,
    ErrorKind,
    HierarchyResolver,
    ObjectFactory,
    Outcome,
    RelationshipMutator,
    RepositoryStore,
    StatePropagator,
    parse_sort_on,
    parse_state,
)
from ..hierarchy.children import DEFAULT_ROWS
from ..hierarchy.mutator import parse_position
from ..shared.exceptions import IllegalValueError, SearchIndexError
from .dependencies import (
    get_child_queries,
    get_factory,
    get_mutator,
    get_propagator,
    get_repository,
    get_resolver,
)
from .schemas import ChildCountsResponse, NewObjectRequest, PropagateStateRequest, PropagationResponse

router = APIRouter(prefix="/edit", dependencies=[Depends(verify_token)])

_STATUS_CODES = {
    None: 200,
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UNEXPECTED: 500,
}


def _respond(outcome: Outcome) -> PlainTextResponse:
    return PlainTextResponse(outcome.message, status_code=_STATUS_CODES[outcome.error])


async def _read_text(request: Request) -> str:
    return (await request.body()).decode("utf-8").strip()


# =============================================================================
# Object creation
# =============================================================================

@router.post("/object/new")
async def create_object(
    body: NewObjectRequest,
    factory: ObjectFactory = Depends(get_factory),
):
    """Create a new object; the response body is the new PID"""
    outcome = await factory.create(body.model, body.title, body.state, body.parent)
    return _respond(outcome)


# =============================================================================
# Parents and positions
# =============================================================================

@router.put("/object/{pid}/parent/{parent_pid}")
async def add_parent(
    pid: str,
    parent_pid: str,
    request: Request,
    mutator: RelationshipMutator = Depends(get_mutator),
):
    """Attach to an additional parent; the body is an optional position"""
    return _respond(await mutator.add_parent(pid, parent_pid, await _read_text(request)))


@router.post("/object/{pid}/moveToParent/{parent_pid}")
async def move_to_parent(
    pid: str,
    parent_pid: str,
    request: Request,
    mutator: RelationshipMutator = Depends(get_mutator),
):
    """Replace every parent with a single new one"""
    return _respond(await mutator.move_to_parent(pid, parent_pid, await _read_text(request)))


@router.delete("/object/{pid}/parent/{parent_pid}")
async def remove_parent(
    pid: str,
    parent_pid: str,
    mutator: RelationshipMutator = Depends(get_mutator),
):
    return _respond(await mutator.remove_parent(pid, parent_pid))


@router.put("/object/{pid}/positionInParent/{parent_pid}")
async def set_position(
    pid: str,
    parent_pid: str,
    request: Request,
    mutator: RelationshipMutator = Depends(get_mutator),
):
    raw = await _read_text(request)
    position = parse_position(raw)
    if position is None:
        return PlainTextResponse(f"Illegal position: {raw}", status_code=400)
    return _respond(await mutator.set_position(pid, parent_pid, position))


@router.delete("/object/{pid}/positionInParent/{parent_pid}")
async def clear_position(
    pid: str,
    parent_pid: str,
    mutator: RelationshipMutator = Depends(get_mutator),
):
    return _respond(await mutator.clear_position(pid, parent_pid))


@router.get("/object/{pid}/parents")
async def get_parents(
    pid: str,
    shallow: int = 0,
    resolver: HierarchyResolver = Depends(get_resolver),
):
    """Ancestor tree (breadcrumbs); ``shallow=1`` stops at immediate parents"""
    try:
        tree = await resolver.get_hierarchy(pid, shallow == 1)
    except Exception as e:
        logger.error(f"Error retrieving breadcrumbs: {e}")
        return PlainTextResponse("Unexpected error", status_code=500)
    return tree.to_dict()


# =============================================================================
# State and sort order
# =============================================================================

@router.put("/object/{pid}/state")
async def set_state(
    pid: str,
    request: Request,
    propagator: StatePropagator = Depends(get_propagator),
):
    """Change the state of a single object"""
    try:
        state = parse_state(await _read_text(request))
    except IllegalValueError as e:
        return PlainTextResponse(str(e), status_code=400)
    return _respond(await propagator.set_state(pid, state))


@router.post("/object/{pid}/state/propagate")
async def propagate_state(
    pid: str,
    body: PropagateStateRequest,
    propagator: StatePropagator = Depends(get_propagator),
):
    """Change the state of an object and its descendants (SSE Streaming)

    Event types:
    - progress: status line before each write
    - result: final PropagationResponse
    """
    try:
        state = parse_state(body.state)
    except IllegalValueError as e:
        return PlainTextResponse(str(e), status_code=400)

    async def event_generator() -> AsyncGenerator[dict, None]:
        queue: asyncio.Queue = asyncio.Queue()
        task = _start_propagation(
            pid,
            propagator.update_state(pid, state, body.expected_descendants, queue.put_nowait),
        )
        getter = None
        try:
            while not task.done() or not queue.empty():
                getter = asyncio.ensure_future(queue.get())
                await asyncio.wait({getter, task}, return_when=asyncio.FIRST_COMPLETED)
                if getter.done():
                    yield {"event": "progress", "data": getter.result()}
                else:
                    getter.cancel()
            result = task.result()
            yield {
                "event": "result",
                "data": json.dumps(
                    PropagationResponse(message=result.message, severity=result.severity).model_dump()
                ),
            }
        finally:
            # A closed stream only stops forwarding; the writes keep going.
            if getter is not None and not getter.done():
                getter.cancel()

    return EventSourceResponse(event_generator())


# In-flight propagation tasks; each one removes itself when done.
running_propagations: set = set()


def _start_propagation(pid: str, job) -> asyncio.Task:
    task = asyncio.create_task(job)
    running_propagations.add(task)

    def _finished(done: asyncio.Task) -> None:
        running_propagations.discard(done)
        if done.cancelled():
            logger.warning(f"Propagation for {pid} was cancelled")
        elif done.exception() is not None:
            logger.opt(exception=done.exception()).error(f"Propagation for {pid} crashed")
        else:
            logger.info(f"Propagation for {pid} finished: {done.result().message}")

    task.add_done_callback(_finished)
    return task


@router.put("/object/{pid}/sortOn")
async def set_sort_on(
    pid: str,
    request: Request,
    store: RepositoryStore = Depends(get_repository),
):
    try:
        sort_on = parse_sort_on(await _read_text(request))
    except IllegalValueError as e:
        return PlainTextResponse(str(e), status_code=400)
    try:
        await store.update_sort_on(pid, sort_on)
    except Exception as e:
        logger.exception(f"Failed to set sortOn of {pid}")
        return PlainTextResponse(str(e), status_code=500)
    logger.info(f"Set sortOn of {pid} to {sort_on.value}")
    return PlainTextResponse("ok")


# =============================================================================
# Child listings
# =============================================================================

def _index_error(e: SearchIndexError) -> PlainTextResponse:
    logger.error(f"Search index query failed: {e}")
    return PlainTextResponse(str(e), status_code=500)


@router.get("/topLevelObjects")
async def top_level_objects(
    start: int = 0,
    rows: int = DEFAULT_ROWS,
    queries: ChildQueries = Depends(get_child_queries),
):
    try:
        return await queries.top_level_objects(start, rows)
    except SearchIndexError as e:
        return _index_error(e)


@router.get("/object/{pid}/children")
async def children(
    pid: str,
    start: int = 0,
    rows: int = DEFAULT_ROWS,
    queries: ChildQueries = Depends(get_child_queries),
):
    try:
        return await queries.children(pid, start, rows)
    except SearchIndexError as e:
        return _index_error(e)


@router.get("/object/{pid}/childCounts", response_model=ChildCountsResponse)
async def child_counts(
    pid: str,
    queries: ChildQueries = Depends(get_child_queries),
):
    try:
        return await queries.child_counts(pid)
    except SearchIndexError as e:
        return _index_error(e)


@router.get("/object/{pid}/lastChildPosition")
async def last_child_position(
    pid: str,
    queries: ChildQueries = Depends(get_child_queries),
):
    try:
        position = await queries.last_child_position(pid)
    except SearchIndexError as e:
        return _index_error(e)
    return PlainTextResponse(str(position))


@router.get("/object/{pid}/recursiveChildPids")
async def recursive_child_pids(
    pid: str,
    start: int = 0,
    rows: int = DEFAULT_ROWS,
    queries: ChildQueries = Depends(get_child_queries),
):
    try:
        return await queries.recursive_child_pids(pid, start, rows)
    except SearchIndexError as e:
        return _index_error(e)


@router.get("/object/{pid}/directChildPids")
async def direct_child_pids(
    pid: str,
    start: int = 0,
    rows: int = DEFAULT_ROWS,
    sort: Optional[str] = None,
    queries: ChildQueries = Depends(get_child_queries),
):
    try:
        return await queries.direct_child_pids(pid, start, rows, sort)
    except SearchIndexError as e:
        return _index_error(e)
