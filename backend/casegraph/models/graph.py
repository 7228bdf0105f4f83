"""
Graph view models handed to the rendering layer.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from casegraph.models.entity import EntityKey, EntityType


class Workflow(str, Enum):
    """Relationship workflows.

    BASIC: person-only connections embedded on each person record.
    ENHANCED: multi-entity relationships stored as independent records.
    """

    BASIC = "basic"
    ENHANCED = "enhanced"


class Position(BaseModel):
    """2D coordinate owned by the layout engine."""

    x: float = 0.0
    y: float = 0.0


class EdgeStyle(BaseModel):
    """Resolved visual style of an edge."""

    stroke: str
    stroke_width: float = 2
    stroke_dasharray: Optional[str] = None
    label: str
    animated: bool = False


class NetworkNode(BaseModel):
    """Graph node model.

    `entity_id` is None for derived nodes (a person's embedded address),
    which have no stored record behind them.
    """

    id: str
    entity_type: EntityType
    entity_id: Optional[int] = None
    position: Optional[Position] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)

    @property
    def derived(self) -> bool:
        return self.entity_id is None

    @property
    def key(self) -> Optional[EntityKey]:
        if self.entity_id is None:
            return None
        return EntityKey(self.entity_type, self.entity_id)

    @property
    def label(self) -> str:
        return self.data.get("label", self.id)


class NetworkEdge(BaseModel):
    """Graph edge model."""

    id: str
    source: str
    target: str
    relationship_type: str
    render_style: EdgeStyle
    data: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)

    @property
    def confidence_score(self) -> int:
        return self.data.get("confidence_score", 50)


class NetworkGraph(BaseModel):
    """Serializable graph container."""

    nodes: List[NetworkNode] = Field(default_factory=list)
    edges: List[NetworkEdge] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    def get_node(self, node_id: str) -> Optional[NetworkNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_edge(self, edge_id: str) -> Optional[NetworkEdge]:
        for edge in self.edges:
            if edge.id == edge_id:
                return edge
        return None

    def node_ids(self) -> set:
        return {node.id for node in self.nodes}


class GraphStats(BaseModel):
    """Entity and connection counts of a graph view."""

    node_count: int = 0
    edge_count: int = 0
    entity_counts: Dict[str, int] = Field(default_factory=dict)
    relationship_counts: Dict[str, int] = Field(default_factory=dict)
