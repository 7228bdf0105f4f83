"""
GraphBuilder

Turns entity records and their relationships into a renderable
NetworkGraph. Pure in-memory construction, rebuilt from a fresh fetch on
every request; nothing is cached between builds.

Build steps:
  Step 1: nodes   - one node per entity, label resolved per variant
  Step 2: edges   - basic workflow: embedded person connections,
                    deduplicated per unordered pair;
                    enhanced workflow: independent relationship records,
                    several typed relationships per pair allowed,
                    plus derived nodes for addresses embedded on people
  Step 3: styles  - render style looked up in the workflow's style table

Dangling references and malformed entries are dropped, recorded as
DataIntegrityWarning and logged. Partially loaded investigative data
must still render.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from casegraph.models.entity import (
    Entity,
    EntityKey,
    EntityType,
    Person,
    Relationship,
    StyleHint,
    entity_attributes,
    entity_label,
)
from casegraph.models.graph import EdgeStyle, NetworkEdge, NetworkGraph, NetworkNode, Workflow
from casegraph.models.relationship_schema import (
    ANIMATED_RELATIONSHIP_TYPES,
    DASH_PATTERNS,
    FALLBACK_EDGE_STYLE,
    style_table,
)
from casegraph.errors import DataIntegrityWarning

logger = logging.getLogger(__name__)

# Embedded person connections carry no confidence of their own.
BASIC_CONNECTION_CONFIDENCE = 90
# Person -> embedded address edges.
EMBEDDED_LOCATION_CONFIDENCE = 85
EMBEDDED_LOCATION_RELATIONSHIP = "located_at"

_entity_adapter: TypeAdapter = TypeAdapter(Entity)


# =============================================================================
# Helper Functions
# =============================================================================


def coerce_entity(raw: Union[Entity, Dict[str, Any]]) -> Entity:
    """Accept either a parsed entity model or a raw record with `entity_type`."""
    if isinstance(raw, dict):
        return _entity_adapter.validate_python(raw)
    return raw


def resolve_edge_style(
    relationship_type: str,
    workflow: Workflow = Workflow.ENHANCED,
    style_hint: Optional[StyleHint] = None,
) -> EdgeStyle:
    """Static style table lookup with fallback, plus per-relationship override.

    Always returns a fresh copy so callers never mutate the shared table.
    """
    base = style_table(workflow).get(relationship_type, FALLBACK_EDGE_STYLE)
    updates: Dict[str, Any] = {
        "animated": relationship_type in ANIMATED_RELATIONSHIP_TYPES,
    }
    if style_hint is not None:
        if style_hint.color:
            updates["stroke"] = style_hint.color
        if style_hint.style:
            updates["stroke_dasharray"] = DASH_PATTERNS[style_hint.style]
    return base.model_copy(update=updates)


def canonical_pair_key(a: int, b: int) -> Tuple[int, int]:
    """Direction-independent key for a person pair."""
    return (a, b) if a <= b else (b, a)


def embedded_location_node_id(person_id: int, index: int) -> str:
    """Node id of a person's embedded address, e.g. ``location-7-0``.

    Two numeric segments, so it never equals a stored ``location-{id}``.
    """
    return f"{EntityType.LOCATION.value}-{person_id}-{index}"


def _entity_node(entity: Entity) -> NetworkNode:
    key = entity.key
    data: Dict[str, Any] = {
        "label": entity_label(entity),
        "entity_type": key.entity_type.value,
        "entity_id": key.entity_id,
    }
    data.update(entity_attributes(entity))
    return NetworkNode(
        id=key.node_id,
        entity_type=key.entity_type,
        entity_id=key.entity_id,
        position=None,
        data=data,
    )


# =============================================================================
# GraphBuilder
# =============================================================================


class GraphBuilder:
    """Builds a NetworkGraph for one workflow.

    `warnings` holds the DataIntegrityWarning records of the last build.

    Usage::

        builder = GraphBuilder(Workflow.ENHANCED)
        graph = builder.build(entities, relationships)
    """

    def __init__(self, workflow: Workflow = Workflow.ENHANCED) -> None:
        self.workflow = Workflow(workflow)
        self.warnings: List[DataIntegrityWarning] = []

    def build(
        self,
        entities: Iterable[Union[Entity, Dict[str, Any]]],
        relationships: Optional[Iterable[Union[Relationship, Dict[str, Any]]]] = None,
    ) -> NetworkGraph:
        """Build nodes then edges.

        In the basic workflow only people become nodes and `relationships`
        is ignored: connections are read from each person's embedded list.
        """
        self.warnings = []

        parsed = self._parse_entities(entities)
        if self.workflow == Workflow.BASIC:
            parsed = [entity for entity in parsed if isinstance(entity, Person)]

        nodes = self._build_nodes(parsed)
        node_ids = {node.id for node in nodes}

        if self.workflow == Workflow.BASIC:
            edges = self._build_connection_edges(parsed, node_ids)
        else:
            edges = self._build_relationship_edges(relationships or [], node_ids)
            location_nodes, location_edges = self._build_embedded_locations(
                [entity for entity in parsed if isinstance(entity, Person)]
            )
            nodes.extend(location_nodes)
            edges.extend(location_edges)

        logger.info(
            "[GraphBuilder] %s graph built: %d nodes, %d edges, %d dropped",
            self.workflow.value,
            len(nodes),
            len(edges),
            len(self.warnings),
        )
        return NetworkGraph(nodes=nodes, edges=edges)

    # -------------------------------------------------------------------------
    # Step 1: nodes
    # -------------------------------------------------------------------------

    def _parse_entities(self, entities: Iterable[Union[Entity, Dict[str, Any]]]) -> List[Entity]:
        parsed: List[Entity] = []
        for raw in entities:
            try:
                parsed.append(coerce_entity(raw))
            except PydanticValidationError as exc:
                self._warn(
                    "malformed_entity",
                    f"skipping unparseable entity record: {exc.error_count()} error(s)",
                )
        return parsed

    def _build_nodes(self, entities: List[Entity]) -> List[NetworkNode]:
        nodes: List[NetworkNode] = []
        seen: Set[EntityKey] = set()
        for entity in entities:
            key = entity.key
            if key in seen:
                self._warn("duplicate_entity", f"duplicate entity {key.node_id} ignored", source=key.node_id)
                continue
            seen.add(key)
            nodes.append(_entity_node(entity))
        return nodes

    # -------------------------------------------------------------------------
    # Step 2a: basic workflow edges (embedded connections)
    # -------------------------------------------------------------------------

    def _build_connection_edges(self, people: List[Person], node_ids: Set[str]) -> List[NetworkEdge]:
        edges: List[NetworkEdge] = []
        emitted: Set[Tuple[int, int]] = set()

        for person in people:
            source_key = person.key
            for index, connection in enumerate(person.connections):
                if connection.target_id is None:
                    self._warn(
                        "malformed_relationship",
                        f"connection #{index} of {source_key.node_id} has no target id",
                        source=source_key.node_id,
                    )
                    continue

                target_key = EntityKey(EntityType.PERSON, connection.target_id)
                if target_key.node_id not in node_ids:
                    self._warn(
                        "dangling_reference",
                        f"target {target_key.node_id} not loaded",
                        source=source_key.node_id,
                        target=target_key.node_id,
                    )
                    continue

                pair = canonical_pair_key(person.id, connection.target_id)
                if pair in emitted:
                    logger.debug(
                        "[GraphBuilder] skipping mirrored connection %s -> %s",
                        source_key.node_id,
                        target_key.node_id,
                    )
                    continue
                emitted.add(pair)

                style = resolve_edge_style(connection.type, Workflow.BASIC)
                edges.append(NetworkEdge(
                    id=f"edge-{person.id}-to-{connection.target_id}",
                    source=source_key.node_id,
                    target=target_key.node_id,
                    relationship_type=connection.type,
                    render_style=style,
                    data={
                        "label": connection.note or style.label,
                        "note": connection.note,
                        "confidence_score": BASIC_CONNECTION_CONFIDENCE,
                        "workflow": Workflow.BASIC.value,
                        "source_person_id": person.id,
                        "target_person_id": connection.target_id,
                    },
                ))
        return edges

    # -------------------------------------------------------------------------
    # Step 2b: enhanced workflow edges (relationship records)
    # -------------------------------------------------------------------------

    def _build_relationship_edges(
        self,
        relationships: Iterable[Union[Relationship, Dict[str, Any]]],
        node_ids: Set[str],
    ) -> List[NetworkEdge]:
        edges: List[NetworkEdge] = []
        edge_ids: Set[str] = set()

        for raw in relationships:
            relationship = self._parse_relationship(raw)
            if relationship is None:
                continue

            source_id = relationship.source_key.node_id
            target_id = relationship.target_key.node_id
            if source_id not in node_ids or target_id not in node_ids:
                self._warn(
                    "dangling_reference",
                    f"relationship {relationship.id or '?'} references an entity that is not loaded",
                    source=source_id,
                    target=target_id,
                )
                continue

            edge_id = relationship.id or f"{source_id}-{relationship.relationship_type}-{target_id}"
            if edge_id in edge_ids:
                self._warn("duplicate_edge", f"duplicate relationship {edge_id} ignored", source_id, target_id)
                continue
            edge_ids.add(edge_id)

            style = resolve_edge_style(
                relationship.relationship_type,
                Workflow.ENHANCED,
                relationship.style_hint,
            )
            edges.append(NetworkEdge(
                id=edge_id,
                source=source_id,
                target=target_id,
                relationship_type=relationship.relationship_type,
                render_style=style,
                data={
                    "label": relationship.note or style.label,
                    "note": relationship.note,
                    "confidence_score": relationship.confidence_score,
                    "workflow": Workflow.ENHANCED.value,
                    "relationship_id": relationship.id,
                    "source_type": relationship.source_type.value,
                    "source_id": relationship.source_id,
                    "target_type": relationship.target_type.value,
                    "target_id": relationship.target_id,
                },
            ))
        return edges

    # -------------------------------------------------------------------------
    # Step 2c: enhanced workflow, addresses embedded on people
    # -------------------------------------------------------------------------

    def _build_embedded_locations(
        self,
        people: List[Person],
    ) -> Tuple[List[NetworkNode], List[NetworkEdge]]:
        """One derived location node per embedded address with a city or country."""
        nodes: List[NetworkNode] = []
        edges: List[NetworkEdge] = []
        seen: Set[int] = set()

        for person in people:
            # duplicates were already dropped from the node list
            if person.id in seen:
                continue
            seen.add(person.id)

            person_node_id = person.key.node_id
            for index, location in enumerate(person.locations):
                if not location.display_name:
                    continue
                node_id = embedded_location_node_id(person.id, index)
                nodes.append(NetworkNode(
                    id=node_id,
                    entity_type=EntityType.LOCATION,
                    entity_id=None,
                    data={
                        "label": location.display_name,
                        "entity_type": EntityType.LOCATION.value,
                        "derived": True,
                        "person_id": person.id,
                        "location_type": location.type,
                        "address": location.address,
                        "city": location.city,
                        "country": location.country,
                        "latitude": location.latitude,
                        "longitude": location.longitude,
                    },
                ))

                style = resolve_edge_style(EMBEDDED_LOCATION_RELATIONSHIP, Workflow.ENHANCED)
                edges.append(NetworkEdge(
                    id=f"edge-{person_node_id}-to-{node_id}",
                    source=person_node_id,
                    target=node_id,
                    relationship_type=EMBEDDED_LOCATION_RELATIONSHIP,
                    render_style=style,
                    data={
                        "label": style.label,
                        "confidence_score": EMBEDDED_LOCATION_CONFIDENCE,
                        "workflow": Workflow.ENHANCED.value,
                        "derived": True,
                    },
                ))
        return nodes, edges

    def _parse_relationship(self, raw: Union[Relationship, Dict[str, Any]]) -> Optional[Relationship]:
        if isinstance(raw, Relationship):
            return raw
        try:
            return Relationship.model_validate(raw)
        except PydanticValidationError as exc:
            missing = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
            self._warn(
                "malformed_relationship",
                f"relationship {raw.get('id', '?') if isinstance(raw, dict) else '?'} "
                f"dropped, invalid fields: {missing}",
            )
            return None

    def _warn(
        self,
        kind: str,
        message: str,
        source: Optional[str] = None,
        target: Optional[str] = None,
    ) -> None:
        warning = DataIntegrityWarning(kind=kind, message=message, source=source, target=target)
        self.warnings.append(warning)
        logger.warning("[GraphBuilder] %s: %s", kind, message)


def build_graph(
    entities: Iterable[Union[Entity, Dict[str, Any]]],
    relationships: Optional[Iterable[Union[Relationship, Dict[str, Any]]]] = None,
    workflow: Workflow = Workflow.ENHANCED,
) -> NetworkGraph:
    """Functional entry point: `GraphBuilder(workflow).build(...)`."""
    return GraphBuilder(workflow).build(entities, relationships)
