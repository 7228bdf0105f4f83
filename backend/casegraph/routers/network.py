"""
Relationship network API routes.
"""
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from casegraph.config import settings
from casegraph.dependencies import get_layout_options, get_mutation_service, get_repository
from casegraph.errors import DataIntegrityWarning, NotFoundError, PartialWriteError, ValidationError
from casegraph.models.entity import DEFAULT_CONFIDENCE, EntityKey, EntityType, Person, Relationship, RelationshipQuery, StyleHint
from casegraph.models.graph import GraphStats, NetworkEdge, NetworkGraph, NetworkNode, Workflow
from casegraph.models.relationship_schema import relationship_type_options
from casegraph.network.filters import FilterSpec, apply_filter, graph_stats
from casegraph.network.graph_builder import GraphBuilder
from casegraph.network.layout import LayoutOptions, apply_layout, resolve_layout
from casegraph.network.mutation import RelationshipMutationService
from casegraph.services.entity_repository import EntityRepository, fetch_entities

router = APIRouter()


class NetworkResponse(BaseModel):
    """Laid-out graph view."""

    workflow: Workflow
    layout: str
    nodes: List[NetworkNode]
    edges: List[NetworkEdge]
    stats: GraphStats
    warnings: List[Dict[str, Any]] = Field(default_factory=list)


class CreateRelationshipRequest(BaseModel):
    """Enhanced workflow relationship"""

    source_type: EntityType
    source_id: int
    target_type: EntityType
    target_id: int
    relationship_type: str
    note: Optional[str] = None
    confidence_score: int = Field(default=DEFAULT_CONFIDENCE, ge=0, le=100)
    style_hint: Optional[StyleHint] = None


class CreateConnectionRequest(BaseModel):
    """Basic workflow person-to-person connection"""

    target_id: int
    type: str = "associate"
    note: Optional[str] = None


class ConnectionPairResponse(BaseModel):
    source: Person
    target: Optional[Person] = None


def _map_exception_to_http(exc: Exception) -> HTTPException:
    if isinstance(exc, PartialWriteError):
        return HTTPException(
            status_code=409,
            detail={
                "message": str(exc),
                "error_code": exc.error_code,
                "retryable": exc.retryable,
                "compensated": exc.compensated,
            },
        )
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (ValidationError, ValueError)):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def _warning_payload(warning: DataIntegrityWarning) -> Dict[str, Any]:
    return {
        "kind": warning.kind,
        "message": warning.message,
        "source": warning.source,
        "target": warning.target,
    }


async def _build_filtered(
    repository: EntityRepository,
    workflow: Workflow,
    spec: FilterSpec,
) -> Tuple[NetworkGraph, List[DataIntegrityWarning]]:
    if workflow == Workflow.BASIC:
        entities = await fetch_entities(repository, [EntityType.PERSON])
        relationships = None
    else:
        entities = await fetch_entities(repository)
        relationships = await repository.list_relationships()
    builder = GraphBuilder(workflow)
    graph = builder.build(entities, relationships)
    return apply_filter(graph, spec), builder.warnings


def _filter_spec(
    entity_types: Optional[List[EntityType]],
    min_confidence: int,
    show_isolated: bool,
    relationship_types: Optional[List[str]],
    focus_type: Optional[EntityType],
    focus_id: Optional[int],
) -> FilterSpec:
    values: Dict[str, Any] = {
        "min_confidence": min_confidence,
        "show_isolated_nodes": show_isolated,
        "focus_type": focus_type,
        "focus_id": focus_id,
    }
    if entity_types:
        values["entity_types"] = set(entity_types)
    if relationship_types:
        values["relationship_types"] = set(relationship_types)
    return FilterSpec(**values)


# ==================== Graph views ====================


@router.get("/network")
async def get_network(
    workflow: Workflow = Query(default=Workflow.ENHANCED),
    layout: str = Query(default=settings.default_layout),
    entity_types: Optional[List[EntityType]] = Query(default=None),
    min_confidence: int = Query(default=0, ge=0, le=100),
    show_isolated: bool = Query(default=True),
    relationship_types: Optional[List[str]] = Query(default=None),
    focus_type: Optional[EntityType] = Query(default=None),
    focus_id: Optional[int] = Query(default=None),
    seed: Optional[int] = Query(default=None),
    repository: EntityRepository = Depends(get_repository),
    layout_options: LayoutOptions = Depends(get_layout_options),
) -> NetworkResponse:
    """Build, filter and lay out the relationship network."""
    try:
        algorithm = resolve_layout(layout)
        spec = _filter_spec(entity_types, min_confidence, show_isolated, relationship_types, focus_type, focus_id)
        view, warnings = await _build_filtered(repository, workflow, spec)
        if seed is not None:
            layout_options = replace(layout_options, seed=seed)
        apply_layout(view, algorithm, layout_options)
    except Exception as exc:
        raise _map_exception_to_http(exc) from exc

    return NetworkResponse(
        workflow=workflow,
        layout=algorithm.value,
        nodes=view.nodes,
        edges=view.edges,
        stats=graph_stats(view),
        warnings=[_warning_payload(warning) for warning in warnings],
    )


@router.get("/network/stats")
async def get_network_stats(
    workflow: Workflow = Query(default=Workflow.ENHANCED),
    entity_types: Optional[List[EntityType]] = Query(default=None),
    min_confidence: int = Query(default=0, ge=0, le=100),
    show_isolated: bool = Query(default=True),
    relationship_types: Optional[List[str]] = Query(default=None),
    focus_type: Optional[EntityType] = Query(default=None),
    focus_id: Optional[int] = Query(default=None),
    repository: EntityRepository = Depends(get_repository),
) -> GraphStats:
    """Entity and relationship counts of the filtered view."""
    try:
        spec = _filter_spec(entity_types, min_confidence, show_isolated, relationship_types, focus_type, focus_id)
        view, _ = await _build_filtered(repository, workflow, spec)
    except Exception as exc:
        raise _map_exception_to_http(exc) from exc
    return graph_stats(view)


@router.get("/relationship-types")
async def get_relationship_types(
    source_type: EntityType = Query(default=EntityType.PERSON),
    target_type: EntityType = Query(default=EntityType.PERSON),
    workflow: Workflow = Query(default=Workflow.ENHANCED),
):
    """Allowed relationship types for an ordered pair of entity types."""
    return {
        "source_type": source_type.value,
        "target_type": target_type.value,
        "workflow": workflow.value,
        "options": relationship_type_options(source_type, target_type, workflow),
    }


# ==================== Enhanced workflow ====================


@router.get("/relationships")
async def list_relationships(
    source_type: Optional[EntityType] = Query(default=None),
    source_id: Optional[int] = Query(default=None),
    target_type: Optional[EntityType] = Query(default=None),
    target_id: Optional[int] = Query(default=None),
    relationship_type: Optional[str] = Query(default=None),
    repository: EntityRepository = Depends(get_repository),
):
    query = RelationshipQuery(
        source_type=source_type,
        source_id=source_id,
        target_type=target_type,
        target_id=target_id,
        relationship_type=relationship_type,
    )
    relationships = await repository.list_relationships(query)
    return {"relationships": relationships}


@router.post("/relationships")
async def create_relationship(
    payload: CreateRelationshipRequest,
    mutation: RelationshipMutationService = Depends(get_mutation_service),
) -> Relationship:
    try:
        return await mutation.create_relationship(
            EntityKey(payload.source_type, payload.source_id),
            EntityKey(payload.target_type, payload.target_id),
            payload.relationship_type,
            note=payload.note,
            confidence_score=payload.confidence_score,
            style_hint=payload.style_hint,
        )
    except Exception as exc:
        raise _map_exception_to_http(exc) from exc


@router.delete("/relationships")
async def delete_relationship(
    source_type: EntityType = Query(...),
    source_id: int = Query(...),
    target_type: EntityType = Query(...),
    target_id: int = Query(...),
    relationship_type: str = Query(...),
    mutation: RelationshipMutationService = Depends(get_mutation_service),
):
    """Delete by (source, target, type); the id is resolved server side."""
    try:
        relationship = await mutation.delete_relationship(
            EntityKey(source_type, source_id),
            EntityKey(target_type, target_id),
            relationship_type,
        )
    except Exception as exc:
        raise _map_exception_to_http(exc) from exc
    return {"deleted": relationship.id}


@router.delete("/relationships/{relationship_id}")
async def delete_relationship_by_id(
    relationship_id: str,
    mutation: RelationshipMutationService = Depends(get_mutation_service),
):
    try:
        await mutation.delete_relationship_by_id(relationship_id)
    except Exception as exc:
        raise _map_exception_to_http(exc) from exc
    return {"deleted": relationship_id}


# ==================== Basic workflow ====================


@router.post("/people/{person_id}/connections")
async def create_connection(
    person_id: int,
    payload: CreateConnectionRequest,
    mutation: RelationshipMutationService = Depends(get_mutation_service),
) -> ConnectionPairResponse:
    """Record a connection on both people."""
    try:
        source, target = await mutation.create_connection(
            person_id, payload.target_id, payload.type, payload.note
        )
    except Exception as exc:
        raise _map_exception_to_http(exc) from exc
    return ConnectionPairResponse(source=source, target=target)


@router.delete("/people/{person_id}/connections/{target_id}")
async def delete_connection(
    person_id: int,
    target_id: int,
    type: Optional[str] = Query(default=None),
    mutation: RelationshipMutationService = Depends(get_mutation_service),
) -> ConnectionPairResponse:
    try:
        source, target = await mutation.delete_connection(person_id, target_id, type)
    except Exception as exc:
        raise _map_exception_to_http(exc) from exc
    return ConnectionPairResponse(source=source, target=target)
