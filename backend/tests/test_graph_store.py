"""GraphStore request sequencing and view recomputation."""
from casegraph.models.entity import EntityType, Person
from casegraph.network.filters import FilterSpec
from casegraph.network.graph_builder import build_graph
from casegraph.network.graph_store import GraphStore
from casegraph.network.layout import LayoutAlgorithm


def _graph(*person_ids):
    return build_graph([Person(id=person_id) for person_id in person_ids], [])


class TestRequestTokens:
    def test_tokens_are_monotonic(self):
        store = GraphStore()
        first = store.next_token()
        second = store.next_token()
        assert second > first
        assert store.is_current(second)
        assert not store.is_current(first)

    def test_stale_commit_discarded(self):
        store = GraphStore()
        old = store.next_token()
        new = store.next_token()

        assert store.commit(new, _graph(1, 2)) is True
        assert store.commit(old, _graph(9)) is False
        assert store.graph.node_ids() == {"person-1", "person-2"}
        assert store.committed_token == new

    def test_out_of_order_completion_keeps_newest(self):
        store = GraphStore()
        old = store.next_token()
        new = store.next_token()
        # the older request finishes first but was already superseded
        assert store.commit(old, _graph(9)) is False
        assert store.commit(new, _graph(1)) is True
        assert store.view.node_ids() == {"person-1"}


class TestView:
    def test_commit_lays_out_view(self):
        store = GraphStore()
        store.commit(store.next_token(), _graph(1, 2))
        assert all(node.position is not None for node in store.view.nodes)

    def test_set_filter_recomputes(self):
        store = GraphStore()
        store.commit(store.next_token(), _graph(1, 2))
        view = store.set_filter(FilterSpec(entity_types={EntityType.BUSINESS}))
        assert view.nodes == []
        assert len(store.graph.nodes) == 2

    def test_set_layout(self):
        store = GraphStore()
        store.commit(store.next_token(), _graph(1, 2, 3, 4))
        store.set_layout(LayoutAlgorithm.GRID)
        assert store.layout is LayoutAlgorithm.GRID
        assert store.view.get_node("person-4").position.y == 300
