"""
Layout engine.

Assigns 2D coordinates to the nodes of a NetworkGraph. `apply_layout`
writes `position` on each node in place and returns the same graph; no
other field is touched and no state is kept between calls.

Algorithms:
  hierarchical - one horizontal layer per entity type
  circular     - one angular sector per entity type on a single ring
  force        - spring/repulsion simulation, seedable
  tree         - BFS levels from nodes without incoming edges
  ring         - every node on one ring, in input order
  grid         - square grid in input order
"""
from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

import networkx as nx

from casegraph.models.entity import ENTITY_TYPE_ORDER, EntityType
from casegraph.models.graph import NetworkGraph, NetworkNode, Position

logger = logging.getLogger(__name__)


class LayoutAlgorithm(str, Enum):
    HIERARCHICAL = "hierarchical"
    CIRCULAR = "circular"
    FORCE = "force"
    TREE = "tree"
    RING = "ring"
    GRID = "grid"


# Hierarchical
LAYER_HEIGHT = 200
NODE_WIDTH = 250

# Circular
CIRCULAR_RADIUS_PER_NODE = 50
CIRCULAR_MIN_RADIUS = 300
CIRCULAR_MAX_RADIUS = 600

# Force-directed
FORCE_ITERATIONS = 50
FORCE_DAMPING = 0.85
REPULSION_STEP = 0.1
ATTRACTION_STEP = 0.01
INITIAL_SPREAD = 500.0
MIN_DISTANCE = 0.01

# Tree / ring / grid
TREE_LEVEL_HEIGHT = 200
TREE_NODE_WIDTH = 300
RING_RADIUS_PER_NODE = 40
RING_MIN_RADIUS = 200
RING_MAX_RADIUS = 400
GRID_SPACING = 300


@dataclass(frozen=True)
class LayoutOptions:
    """Tunables shared by all algorithms. Only the force layout reads most of them."""

    seed: Optional[int] = None
    iterations: int = FORCE_ITERATIONS
    damping: float = FORCE_DAMPING
    canvas_width: float = 1000.0
    canvas_height: float = 1000.0
    tolerance: Optional[float] = None

    def __post_init__(self) -> None:
        if self.iterations < 0:
            raise ValueError("iterations must be >= 0")
        if not 0.0 < self.damping <= 1.0:
            raise ValueError("damping must be in (0, 1]")
        if self.canvas_width <= 0 or self.canvas_height <= 0:
            raise ValueError("canvas dimensions must be positive")


def resolve_layout(name: Union[str, LayoutAlgorithm]) -> LayoutAlgorithm:
    """Map a layout name to its enum member. Raises ValueError when unknown."""
    if isinstance(name, LayoutAlgorithm):
        return name
    try:
        return LayoutAlgorithm(str(name).strip().lower())
    except ValueError as exc:
        known = ", ".join(item.value for item in LayoutAlgorithm)
        raise ValueError(f"unknown layout '{name}', expected one of: {known}") from exc


def _clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def _centered_row(nodes: List[NetworkNode], y: float, width: float) -> None:
    count = len(nodes)
    for index, node in enumerate(nodes):
        node.position = Position(x=(index - (count - 1) / 2) * width, y=y)


def _group_by_type(nodes: List[NetworkNode]) -> Dict[EntityType, List[NetworkNode]]:
    """Insertion-ordered buckets; node order inside a bucket is preserved."""
    groups: Dict[EntityType, List[NetworkNode]] = {}
    for node in nodes:
        groups.setdefault(node.entity_type, []).append(node)
    return groups


# =============================================================================
# Type-grouped layouts
# =============================================================================


def hierarchical_layout(graph: NetworkGraph, options: LayoutOptions) -> None:
    groups = _group_by_type(graph.nodes)
    layer = 0
    for entity_type in ENTITY_TYPE_ORDER:
        bucket = groups.get(entity_type)
        if not bucket:
            continue
        _centered_row(bucket, layer * LAYER_HEIGHT, NODE_WIDTH)
        layer += 1


def circular_layout(graph: NetworkGraph, options: LayoutOptions) -> None:
    nodes = graph.nodes
    if not nodes:
        return
    radius = _clamp(len(nodes) * CIRCULAR_RADIUS_PER_NODE, CIRCULAR_MIN_RADIUS, CIRCULAR_MAX_RADIUS)
    groups = _group_by_type(nodes)
    sector = 2 * math.pi / len(groups)

    for group_index, members in enumerate(groups.values()):
        start = group_index * sector
        for index, node in enumerate(members):
            angle = start + index * sector / len(members)
            node.position = Position(x=radius * math.cos(angle), y=radius * math.sin(angle))


# =============================================================================
# Force-directed
# =============================================================================


def force_layout(graph: NetworkGraph, options: LayoutOptions) -> None:
    """Fruchterman-Reingold style simulation.

    k = sqrt(area / n); repulsion k^2 / d between every pair (O(n^2) per
    iteration); attraction d^2 / k along edges. Displacements are scaled
    by fixed step constants, added to a per-node velocity and damped.
    Runs the full iteration count unless `options.tolerance` is set and
    the largest per-node movement drops below it.
    """
    nodes = graph.nodes
    count = len(nodes)
    if count == 0:
        return

    rng = random.Random(options.seed)
    positions: Dict[str, List[float]] = {}
    for node in nodes:
        if node.position is None:
            positions[node.id] = [
                rng.uniform(-INITIAL_SPREAD, INITIAL_SPREAD),
                rng.uniform(-INITIAL_SPREAD, INITIAL_SPREAD),
            ]
        else:
            positions[node.id] = [node.position.x, node.position.y]

    k = math.sqrt(options.canvas_width * options.canvas_height / count)
    springs = [
        (edge.source, edge.target)
        for edge in graph.edges
        if edge.source in positions and edge.target in positions and edge.source != edge.target
    ]
    node_ids = list(positions)
    velocity = {node_id: [0.0, 0.0] for node_id in node_ids}

    for iteration in range(options.iterations):
        displacement = {node_id: [0.0, 0.0] for node_id in node_ids}

        for i in range(count):
            a = node_ids[i]
            for j in range(i + 1, count):
                b = node_ids[j]
                dx = positions[a][0] - positions[b][0]
                dy = positions[a][1] - positions[b][1]
                distance = math.hypot(dx, dy)
                if distance < MIN_DISTANCE:
                    # coincident nodes: separate along a random direction
                    angle = rng.uniform(0.0, 2 * math.pi)
                    dx, dy = math.cos(angle) * MIN_DISTANCE, math.sin(angle) * MIN_DISTANCE
                    distance = MIN_DISTANCE
                force = k * k / distance * REPULSION_STEP
                fx, fy = dx / distance * force, dy / distance * force
                displacement[a][0] += fx
                displacement[a][1] += fy
                displacement[b][0] -= fx
                displacement[b][1] -= fy

        for source, target in springs:
            dx = positions[target][0] - positions[source][0]
            dy = positions[target][1] - positions[source][1]
            distance = math.hypot(dx, dy)
            if distance == 0:
                continue
            force = distance * distance / k * ATTRACTION_STEP
            fx, fy = dx / distance * force, dy / distance * force
            displacement[source][0] += fx
            displacement[source][1] += fy
            displacement[target][0] -= fx
            displacement[target][1] -= fy

        max_step = 0.0
        for node_id in node_ids:
            vel = velocity[node_id]
            vel[0] = (vel[0] + displacement[node_id][0]) * options.damping
            vel[1] = (vel[1] + displacement[node_id][1]) * options.damping
            positions[node_id][0] += vel[0]
            positions[node_id][1] += vel[1]
            max_step = max(max_step, math.hypot(vel[0], vel[1]))

        if options.tolerance is not None and max_step < options.tolerance:
            logger.debug("force layout settled after %d iterations", iteration + 1)
            break

    for node in nodes:
        x, y = positions[node.id]
        node.position = Position(x=x, y=y)


# =============================================================================
# Order-based layouts
# =============================================================================


def tree_layout(graph: NetworkGraph, options: LayoutOptions) -> None:
    nodes = graph.nodes
    if not nodes:
        return
    by_id = {node.id: node for node in nodes}

    digraph = nx.DiGraph()
    digraph.add_nodes_from(by_id)
    digraph.add_edges_from(
        (edge.source, edge.target)
        for edge in graph.edges
        if edge.source in by_id and edge.target in by_id
    )

    roots = [node.id for node in nodes if digraph.in_degree(node.id) == 0]
    if not roots:
        roots = [nodes[0].id]

    levels: List[List[NetworkNode]] = [
        [by_id[node_id] for node_id in layer]
        for layer in nx.bfs_layers(digraph, roots)
    ]
    reached = {node.id for layer in levels for node in layer}
    unreached = [node for node in nodes if node.id not in reached]
    if unreached:
        levels.append(unreached)

    for level, members in enumerate(levels):
        _centered_row(members, level * TREE_LEVEL_HEIGHT, TREE_NODE_WIDTH)


def ring_layout(graph: NetworkGraph, options: LayoutOptions) -> None:
    nodes = graph.nodes
    count = len(nodes)
    if not count:
        return
    radius = _clamp(count * RING_RADIUS_PER_NODE, RING_MIN_RADIUS, RING_MAX_RADIUS)
    for index, node in enumerate(nodes):
        angle = 2 * math.pi * index / count - math.pi / 2
        node.position = Position(x=radius * math.cos(angle), y=radius * math.sin(angle))


def grid_layout(graph: NetworkGraph, options: LayoutOptions) -> None:
    nodes = graph.nodes
    if not nodes:
        return
    cols = math.ceil(math.sqrt(len(nodes)))
    for index, node in enumerate(nodes):
        row, col = divmod(index, cols)
        node.position = Position(x=col * GRID_SPACING, y=row * GRID_SPACING)


LAYOUTS: Dict[LayoutAlgorithm, Callable[[NetworkGraph, LayoutOptions], None]] = {
    LayoutAlgorithm.HIERARCHICAL: hierarchical_layout,
    LayoutAlgorithm.CIRCULAR: circular_layout,
    LayoutAlgorithm.FORCE: force_layout,
    LayoutAlgorithm.TREE: tree_layout,
    LayoutAlgorithm.RING: ring_layout,
    LayoutAlgorithm.GRID: grid_layout,
}


def apply_layout(
    graph: NetworkGraph,
    algorithm: Union[str, LayoutAlgorithm] = LayoutAlgorithm.HIERARCHICAL,
    options: Optional[LayoutOptions] = None,
) -> NetworkGraph:
    """Populate node positions in place and return the same graph."""
    resolved = resolve_layout(algorithm)
    LAYOUTS[resolved](graph, options or LayoutOptions())
    logger.debug("applied %s layout to %d nodes", resolved.value, len(graph.nodes))
    return graph


def positions_of(graph: NetworkGraph) -> Dict[str, Tuple[float, float]]:
    """Snapshot of node positions, for comparisons and serialization."""
    return {
        node.id: (node.position.x, node.position.y)
        for node in graph.nodes
        if node.position is not None
    }
