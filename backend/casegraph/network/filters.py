"""
Filter engine: derive a reduced view of a NetworkGraph.

The input graph is never mutated. The returned graph is a new container
whose lists reference a subset of the original node and edge objects.

Order of operations:
  1. drop nodes whose entity type is not selected
  2. drop edges whose endpoints were dropped
  3. drop edges below the confidence threshold
  4. drop edges of unselected relationship types
  5. restrict to the focus entity's neighbourhood
  6. drop isolated nodes (last, so edges removed by 3-5 count)
"""
from __future__ import annotations

import logging
from collections import Counter
from typing import List, Optional, Set, Tuple

import networkx as nx
from pydantic import BaseModel, Field, model_validator

from casegraph.models.entity import ENTITY_TYPE_ORDER, EntityKey, EntityType
from casegraph.models.graph import GraphStats, NetworkEdge, NetworkGraph, NetworkNode

logger = logging.getLogger(__name__)


class FilterSpec(BaseModel):
    """User-selected view criteria. Defaults select everything."""

    entity_types: Set[EntityType] = Field(default_factory=lambda: set(EntityType))
    min_confidence: int = Field(default=0, ge=0, le=100)
    show_isolated_nodes: bool = True
    relationship_types: Optional[Set[str]] = None
    focus_type: Optional[EntityType] = None
    focus_id: Optional[int] = None
    focus_depth: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def _focus_pair(self) -> "FilterSpec":
        if (self.focus_type is None) != (self.focus_id is None):
            raise ValueError("focus_type and focus_id must be given together")
        return self

    @property
    def focus(self) -> Optional[EntityKey]:
        if self.focus_type is None or self.focus_id is None:
            return None
        return EntityKey(self.focus_type, self.focus_id)


def _ego_view(
    nodes: List[NetworkNode],
    edges: List[NetworkEdge],
    focus_id: str,
    depth: int,
) -> Tuple[List[NetworkNode], List[NetworkEdge]]:
    """Focus node, its neighbours up to `depth` hops in either direction, and the edges among them."""
    graph = nx.Graph()
    graph.add_nodes_from(node.id for node in nodes)
    graph.add_edges_from((edge.source, edge.target) for edge in edges)

    if focus_id not in graph:
        logger.info("focus %s is not part of the filtered view, showing it unfocused", focus_id)
        return nodes, edges

    keep = set(nx.ego_graph(graph, focus_id, radius=depth).nodes)
    return (
        [node for node in nodes if node.id in keep],
        [edge for edge in edges if edge.source in keep and edge.target in keep],
    )


def apply_filter(graph: NetworkGraph, spec: Optional[FilterSpec] = None) -> NetworkGraph:
    spec = spec or FilterSpec()

    nodes = [node for node in graph.nodes if node.entity_type in spec.entity_types]
    node_ids = {node.id for node in nodes}

    edges = [
        edge
        for edge in graph.edges
        if edge.source in node_ids and edge.target in node_ids
    ]
    edges = [edge for edge in edges if edge.confidence_score >= spec.min_confidence]
    if spec.relationship_types is not None:
        edges = [edge for edge in edges if edge.relationship_type in spec.relationship_types]

    focus = spec.focus
    if focus is not None:
        nodes, edges = _ego_view(nodes, edges, focus.node_id, spec.focus_depth)

    if not spec.show_isolated_nodes:
        connected = {edge.source for edge in edges} | {edge.target for edge in edges}
        nodes = [node for node in nodes if node.id in connected]

    logger.debug(
        "filter kept %d/%d nodes, %d/%d edges",
        len(nodes), len(graph.nodes), len(edges), len(graph.edges),
    )
    return NetworkGraph(nodes=nodes, edges=edges)


def graph_stats(graph: NetworkGraph) -> GraphStats:
    type_counts = Counter(node.entity_type for node in graph.nodes)
    return GraphStats(
        node_count=len(graph.nodes),
        edge_count=len(graph.edges),
        entity_counts={entity_type.value: type_counts.get(entity_type, 0) for entity_type in ENTITY_TYPE_ORDER},
        relationship_counts=dict(Counter(edge.relationship_type for edge in graph.edges)),
    )
