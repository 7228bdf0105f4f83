"""
Relationship network engine.
"""
from casegraph.network.controller import ConnectionDraft, InteractionResult, NetworkController
from casegraph.errors import (
    DataIntegrityWarning,
    NetworkError,
    NotFoundError,
    PartialWriteError,
    ValidationError,
)
from casegraph.network.filters import FilterSpec, apply_filter, graph_stats
from casegraph.network.graph_builder import GraphBuilder, build_graph, resolve_edge_style
from casegraph.network.graph_store import GraphStore
from casegraph.network.interaction import ConnectionSelection, SelectionState
from casegraph.network.layout import LayoutAlgorithm, LayoutOptions, apply_layout, resolve_layout
from casegraph.network.mutation import RelationshipMutationService

__all__ = [
    "ConnectionDraft",
    "ConnectionSelection",
    "DataIntegrityWarning",
    "FilterSpec",
    "GraphBuilder",
    "GraphStore",
    "InteractionResult",
    "LayoutAlgorithm",
    "LayoutOptions",
    "NetworkController",
    "NetworkError",
    "NotFoundError",
    "PartialWriteError",
    "RelationshipMutationService",
    "SelectionState",
    "ValidationError",
    "apply_filter",
    "apply_layout",
    "build_graph",
    "graph_stats",
    "resolve_edge_style",
    "resolve_layout",
]
