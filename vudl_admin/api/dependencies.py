"""Dependency providers that assemble hierarchy components per request."""

from fastapi import Depends, HTTPException, Request, status

from ..config import config
from ..hierarchy import (
    ChildQueries,
    HierarchyResolver,
    ObjectFactory,
    RelationshipMutator,
    RepositoryStore,
    SearchIndex,
    StatePropagator,
)


def get_repository(request: Request) -> RepositoryStore:
    """Repository store created by the application lifespan."""
    if not hasattr(request.app.state, "repository"):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Repository client not initialized",
        )
    return request.app.state.repository


def get_search_index(request: Request) -> SearchIndex:
    """Search index created by the application lifespan."""
    if not hasattr(request.app.state, "index"):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Search index client not initialized",
        )
    return request.app.state.index


def get_resolver(store: RepositoryStore = Depends(get_repository)) -> HierarchyResolver:
    return HierarchyResolver(store, max_depth=config.HIERARCHY_MAX_DEPTH)


def get_mutator(
    store: RepositoryStore = Depends(get_repository),
    resolver: HierarchyResolver = Depends(get_resolver),
) -> RelationshipMutator:
    return RelationshipMutator(store, resolver)


def get_propagator(
    store: RepositoryStore = Depends(get_repository),
    index: SearchIndex = Depends(get_search_index),
) -> StatePropagator:
    return StatePropagator(
        store, index, index_name=config.SOLR_CORE, page_size=config.STATE_PAGE_SIZE
    )


def get_factory(store: RepositoryStore = Depends(get_repository)) -> ObjectFactory:
    return ObjectFactory(store)


def get_child_queries(index: SearchIndex = Depends(get_search_index)) -> ChildQueries:
    return ChildQueries(index, index_name=config.SOLR_CORE)
