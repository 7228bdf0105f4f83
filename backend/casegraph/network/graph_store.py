"""
GraphStore - per-caller holder of the current graph and its view.

Builder, filter and layout stay pure; the store is the only place where
the "current graph" lives. A monotonic request token guards against
out-of-order refresh completions: only the newest issued token may
commit.
"""
from __future__ import annotations

import itertools
import logging
from typing import List, Optional

from casegraph.models.graph import NetworkGraph, Workflow
from casegraph.errors import DataIntegrityWarning
from casegraph.network.filters import FilterSpec, apply_filter
from casegraph.network.layout import LayoutAlgorithm, LayoutOptions, apply_layout

logger = logging.getLogger(__name__)


class GraphStore:
    def __init__(
        self,
        workflow: Workflow = Workflow.ENHANCED,
        layout: LayoutAlgorithm = LayoutAlgorithm.HIERARCHICAL,
        filter_spec: Optional[FilterSpec] = None,
        layout_options: Optional[LayoutOptions] = None,
    ) -> None:
        self.workflow = Workflow(workflow)
        self.layout = LayoutAlgorithm(layout)
        self.filter_spec = filter_spec or FilterSpec()
        self.layout_options = layout_options or LayoutOptions()
        self.graph: NetworkGraph = NetworkGraph()
        self.view: NetworkGraph = NetworkGraph()
        self.warnings: List[DataIntegrityWarning] = []
        self._counter = itertools.count(1)
        self._latest_token = 0
        self._committed_token = 0

    # ------------------------------------------------------------------
    # Request sequencing
    # ------------------------------------------------------------------

    def next_token(self) -> int:
        """Issue a new request token; every earlier token becomes stale."""
        self._latest_token = next(self._counter)
        return self._latest_token

    def is_current(self, token: int) -> bool:
        return token == self._latest_token

    @property
    def committed_token(self) -> int:
        return self._committed_token

    def commit(
        self,
        token: int,
        graph: NetworkGraph,
        warnings: Optional[List[DataIntegrityWarning]] = None,
    ) -> bool:
        """Install a freshly built graph unless a newer request was issued."""
        if not self.is_current(token):
            logger.debug(
                "discarding stale graph for token %d (latest %d)",
                token,
                self._latest_token,
            )
            return False
        self.graph = graph
        self.warnings = list(warnings or [])
        self._committed_token = token
        self.recompute_view()
        return True

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------

    def recompute_view(self) -> NetworkGraph:
        """Filter the source graph, then lay out the result."""
        view = apply_filter(self.graph, self.filter_spec)
        self.view = apply_layout(view, self.layout, self.layout_options)
        return self.view

    def set_filter(self, spec: FilterSpec) -> NetworkGraph:
        self.filter_spec = spec
        return self.recompute_view()

    def set_layout(self, layout: LayoutAlgorithm) -> NetworkGraph:
        self.layout = LayoutAlgorithm(layout)
        return self.recompute_view()
