"""Layout engine tests."""
from __future__ import annotations

import math

import pytest

from casegraph.models.entity import Business, Location, Person, Relationship
from casegraph.models.graph import Position
from casegraph.network.filters import FilterSpec, apply_filter
from casegraph.network.graph_builder import build_graph
from casegraph.network.layout import (
    LayoutAlgorithm,
    LayoutOptions,
    apply_layout,
    positions_of,
    resolve_layout,
)


def _make_graph():
    entities = [
        Person(id=1, first_name="Alice"),
        Business(id=10, name="Acme"),
        Person(id=2, first_name="Bob"),
        Location(id=20, name="Dock 4"),
        Person(id=3, first_name="Carol"),
    ]
    relationships = [
        Relationship(source_type="person", source_id=1, target_type="person", target_id=2,
                     relationship_type="friend", id="r1"),
        Relationship(source_type="person", source_id=1, target_type="business", target_id=10,
                     relationship_type="owns", id="r2"),
        Relationship(source_type="business", source_id=10, target_type="location", target_id=20,
                     relationship_type="located_at", id="r3"),
    ]
    return build_graph(entities, relationships)


class TestHierarchical:
    def test_layers_follow_type_order(self):
        graph = apply_layout(_make_graph(), LayoutAlgorithm.HIERARCHICAL)
        positions = positions_of(graph)
        # people centred on layer 0 in input order
        assert positions["person-1"] == (-250.0, 0.0)
        assert positions["person-2"] == (0.0, 0.0)
        assert positions["person-3"] == (250.0, 0.0)
        assert positions["business-10"] == (0.0, 200.0)
        assert positions["location-20"] == (0.0, 400.0)

    def test_empty_buckets_skip_layers(self):
        graph = build_graph([Person(id=1), Location(id=2)], [])
        apply_layout(graph, "hierarchical")
        assert positions_of(graph)["location-2"] == (0.0, 200.0)

    def test_returns_same_graph(self):
        graph = _make_graph()
        assert apply_layout(graph, "hierarchical") is graph


class TestCircular:
    def test_two_people_scenario(self):
        graph = build_graph(
            [Person(id=1, first_name="Alice"), Person(id=2, first_name="Bob"), Business(id=10, name="Acme")],
            [
                Relationship(source_type="person", source_id=1, target_type="person", target_id=2,
                             relationship_type="friend"),
                Relationship(source_type="person", source_id=1, target_type="business", target_id=10,
                             relationship_type="owns"),
            ],
        )
        view = apply_filter(graph, FilterSpec(entity_types={"person"}))
        apply_layout(view, "circular")

        a, b = view.nodes
        assert math.hypot(a.position.x, a.position.y) == pytest.approx(300)
        assert math.hypot(b.position.x, b.position.y) == pytest.approx(300)
        angle = abs(math.atan2(a.position.y, a.position.x) - math.atan2(b.position.y, b.position.x))
        assert math.degrees(angle) == pytest.approx(180)

    def test_radius_clamped(self):
        graph = build_graph([Person(id=i) for i in range(1, 21)], [])
        apply_layout(graph, "circular")
        node = graph.nodes[0]
        assert math.hypot(node.position.x, node.position.y) == pytest.approx(600)

    def test_one_sector_per_type(self):
        graph = build_graph([Person(id=1), Person(id=2), Business(id=3), Business(id=4)], [])
        apply_layout(graph, "circular")
        angles = {
            node.id: math.atan2(node.position.y, node.position.x) % (2 * math.pi)
            for node in graph.nodes
        }
        assert angles["person-1"] == pytest.approx(0)
        assert angles["person-2"] == pytest.approx(math.pi / 2)
        assert angles["business-3"] == pytest.approx(math.pi)
        assert angles["business-4"] == pytest.approx(3 * math.pi / 2)


class TestDeterminism:
    @pytest.mark.parametrize("algorithm", ["hierarchical", "circular", "tree", "ring", "grid"])
    def test_repeated_calls_identical(self, algorithm):
        first = positions_of(apply_layout(_make_graph(), algorithm))
        second = positions_of(apply_layout(_make_graph(), algorithm))
        assert first == second
        assert len(first) == 5

    def test_force_same_seed_same_positions(self):
        options = LayoutOptions(seed=7)
        first = positions_of(apply_layout(_make_graph(), "force", options))
        second = positions_of(apply_layout(_make_graph(), "force", options))
        for node_id, (x, y) in first.items():
            assert second[node_id][0] == pytest.approx(x, abs=1e-6)
            assert second[node_id][1] == pytest.approx(y, abs=1e-6)


class TestForce:
    def test_all_nodes_positioned_and_finite(self):
        graph = apply_layout(_make_graph(), "force", LayoutOptions(seed=1))
        for node in graph.nodes:
            assert math.isfinite(node.position.x)
            assert math.isfinite(node.position.y)

    def test_coincident_nodes_pushed_apart(self):
        graph = build_graph([Person(id=1), Person(id=2)], [])
        for node in graph.nodes:
            node.position = Position(x=0, y=0)
        apply_layout(graph, "force", LayoutOptions(seed=3, iterations=5))
        a, b = graph.nodes
        assert (a.position.x, a.position.y) != (b.position.x, b.position.y)

    def test_existing_positions_used_as_start(self):
        graph = build_graph([Person(id=1)], [])
        graph.nodes[0].position = Position(x=12, y=34)
        apply_layout(graph, "force", LayoutOptions(seed=1))
        # a lone node feels no force
        assert positions_of(graph)["person-1"] == (12, 34)

    def test_tolerance_stops_early(self):
        graph = build_graph([Person(id=1)], [])
        graph.nodes[0].position = Position(x=1, y=1)
        apply_layout(graph, "force", LayoutOptions(seed=1, iterations=10_000, tolerance=0.5))
        assert positions_of(graph)["person-1"] == (1, 1)

    def test_zero_iterations_keeps_initial_positions(self):
        graph = build_graph([Person(id=1), Person(id=2)], [])
        apply_layout(graph, "force", LayoutOptions(seed=5, iterations=0))
        for x, y in positions_of(graph).values():
            assert -500 <= x <= 500
            assert -500 <= y <= 500


class TestBasicLayouts:
    def test_tree_levels_from_roots(self):
        graph = apply_layout(_make_graph(), "tree")
        positions = positions_of(graph)
        # person-1 and person-3 have no incoming edges
        assert positions["person-1"][1] == 0
        assert positions["person-3"][1] == 0
        assert positions["business-10"][1] == 200
        assert positions["person-2"][1] == 200
        assert positions["location-20"][1] == 400

    def test_tree_cycle_starts_at_first_node(self):
        graph = build_graph(
            [Person(id=1), Person(id=2)],
            [
                Relationship(source_type="person", source_id=1, target_type="person", target_id=2,
                             relationship_type="friend", id="a"),
                Relationship(source_type="person", source_id=2, target_type="person", target_id=1,
                             relationship_type="friend", id="b"),
            ],
        )
        apply_layout(graph, "tree")
        assert positions_of(graph) == {"person-1": (0.0, 0.0), "person-2": (0.0, 200.0)}

    def test_ring_starts_at_top(self):
        graph = build_graph([Person(id=1), Person(id=2)], [])
        apply_layout(graph, "ring")
        x, y = positions_of(graph)["person-1"]
        assert x == pytest.approx(0, abs=1e-9)
        assert y == pytest.approx(-200)

    def test_grid(self):
        graph = apply_layout(_make_graph(), "grid")
        positions = [positions_of(graph)[node.id] for node in graph.nodes]
        assert positions == [(0, 0), (300, 0), (600, 0), (0, 300), (300, 300)]


class TestResolveLayout:
    def test_case_insensitive(self):
        assert resolve_layout("Force") is LayoutAlgorithm.FORCE

    def test_unknown_layout(self):
        with pytest.raises(ValueError, match="unknown layout"):
            resolve_layout("spiral")

    def test_empty_graph(self):
        graph = build_graph([], [])
        for algorithm in LayoutAlgorithm:
            assert apply_layout(graph, algorithm).nodes == []

    def test_invalid_options(self):
        with pytest.raises(ValueError):
            LayoutOptions(damping=0)
