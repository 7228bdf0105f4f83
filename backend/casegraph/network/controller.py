"""
NetworkController - bridges UI events to the engine.

Holds one GraphStore, one ConnectionSelection and a mutation service
for a single diagram. Event handlers never raise: engine errors are
turned into an InteractionResult for the initiating action.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from casegraph.models.entity import DEFAULT_CONFIDENCE, EntityKey, EntityType, StyleHint
from casegraph.models.graph import NetworkGraph, Workflow
from casegraph.models.relationship_schema import relationship_type_options
from casegraph.errors import NetworkError, NotFoundError, ValidationError
from casegraph.network.filters import FilterSpec
from casegraph.network.graph_builder import GraphBuilder
from casegraph.network.graph_store import GraphStore
from casegraph.network.interaction import ConnectionSelection, SelectionState
from casegraph.network.layout import LayoutAlgorithm, resolve_layout
from casegraph.network.mutation import RelationshipMutationService
from casegraph.services.entity_repository import EntityRepository, fetch_entities

logger = logging.getLogger(__name__)


class InteractionResult(BaseModel):
    """Outcome of a UI event."""

    success: bool
    message: str = ""
    error_code: Optional[str] = None
    retryable: bool = False
    state: SelectionState = SelectionState.IDLE
    data: Dict[str, Any] = Field(default_factory=dict)


class ConnectionDraft(BaseModel):
    """Contents of the type-selection dialog for the selected pair."""

    source: str
    target: str
    source_label: str
    target_label: str
    options: List[Dict[str, str]] = Field(default_factory=list)


def _stored_key(node_id: str) -> EntityKey:
    # derived nodes (embedded person addresses) have no record to link or delete
    try:
        return EntityKey.parse(node_id)
    except ValueError as exc:
        raise ValidationError(f"{node_id} is not a stored entity") from exc


class NetworkController:
    def __init__(
        self,
        repository: EntityRepository,
        workflow: Workflow = Workflow.ENHANCED,
        store: Optional[GraphStore] = None,
        mutation: Optional[RelationshipMutationService] = None,
    ) -> None:
        self.repository = repository
        self.workflow = Workflow(workflow)
        self.store = store or GraphStore(workflow=self.workflow)
        self.mutation = mutation or RelationshipMutationService(repository)
        self.selection = ConnectionSelection()

    @property
    def view(self) -> NetworkGraph:
        return self.store.view

    # =========================================================================
    # Graph lifecycle
    # =========================================================================

    async def refresh(self) -> bool:
        """Fetch, rebuild and commit. Returns False if the result was stale or failed."""
        token = self.store.next_token()
        try:
            if self.workflow == Workflow.BASIC:
                entities = await fetch_entities(self.repository, [EntityType.PERSON])
                relationships = None
            else:
                entities = await fetch_entities(self.repository)
                relationships = await self.repository.list_relationships()
        except Exception:
            logger.exception("[NetworkController] refresh %d failed", token)
            return False

        builder = GraphBuilder(self.workflow)
        graph = builder.build(entities, relationships)
        committed = self.store.commit(token, graph, builder.warnings)
        if not committed:
            logger.info("[NetworkController] refresh %d superseded, result dropped", token)
        return committed

    def set_filter(self, spec: FilterSpec) -> NetworkGraph:
        return self.store.set_filter(spec)

    def set_layout(self, layout: str) -> NetworkGraph:
        try:
            algorithm = resolve_layout(layout)
        except ValueError as exc:
            logger.warning("[NetworkController] %s; using hierarchical", exc)
            algorithm = LayoutAlgorithm.HIERARCHICAL
        return self.store.set_layout(algorithm)

    # =========================================================================
    # Connect workflow
    # =========================================================================

    def enter_connect_mode(self) -> SelectionState:
        return self.selection.enter()

    def cancel(self) -> SelectionState:
        return self.selection.cancel()

    def on_node_selected(self, node_id: str) -> InteractionResult:
        if self.store.view.get_node(node_id) is None:
            return InteractionResult(
                success=False,
                message=f"unknown node {node_id}",
                error_code=NotFoundError.error_code,
                state=self.selection.state,
            )
        state = self.selection.toggle(node_id)
        return InteractionResult(
            success=True,
            state=state,
            data={"selected": list(self.selection.selected)},
        )

    def request_connect(self) -> Optional[ConnectionDraft]:
        """Dialog contents once two nodes are selected, else None."""
        pair = self.selection.pair
        if pair is None:
            return None
        source = self.store.view.get_node(pair[0])
        target = self.store.view.get_node(pair[1])
        if source is None or target is None:
            return None
        return ConnectionDraft(
            source=source.id,
            target=target.id,
            source_label=source.label,
            target_label=target.label,
            options=relationship_type_options(source.entity_type, target.entity_type, self.workflow),
        )

    async def on_connect_requested(
        self,
        relationship_type: str,
        note: Optional[str] = None,
        confidence_score: int = DEFAULT_CONFIDENCE,
        style_hint: Optional[StyleHint] = None,
    ) -> InteractionResult:
        pair = self.selection.pair
        if pair is None:
            return self._failure(ValidationError("select two entities first"))

        try:
            source, target = _stored_key(pair[0]), _stored_key(pair[1])
            if self.workflow == Workflow.BASIC:
                if source.entity_type != EntityType.PERSON or target.entity_type != EntityType.PERSON:
                    raise ValidationError("basic connections link two people")
                await self.mutation.create_connection(
                    source.entity_id, target.entity_id, relationship_type, note
                )
            else:
                await self.mutation.create_relationship(
                    source, target, relationship_type, note, confidence_score, style_hint
                )
        except NetworkError as exc:
            # selection is kept so the user can retry from the dialog
            return self._failure(exc)
        except Exception as exc:
            logger.exception("[NetworkController] connect %s -> %s failed", pair[0], pair[1])
            return self._unexpected(exc)

        self.selection.reset()
        await self.refresh()
        return InteractionResult(
            success=True,
            message=f"connected {pair[0]} and {pair[1]}",
            state=self.selection.state,
        )

    async def on_edge_delete_requested(self, edge_id: str) -> InteractionResult:
        edge = self.store.graph.get_edge(edge_id)
        if edge is None:
            return self._failure(NotFoundError(f"edge {edge_id} not found"))

        try:
            source, target = _stored_key(edge.source), _stored_key(edge.target)
            if self.workflow == Workflow.BASIC:
                # one basic edge stands for both mirrored entries, whatever their types
                await self.mutation.delete_connection(source.entity_id, target.entity_id)
            elif edge.data.get("relationship_id"):
                await self.mutation.delete_relationship_by_id(edge.data["relationship_id"])
            else:
                await self.mutation.delete_relationship(source, target, edge.relationship_type)
        except NetworkError as exc:
            return self._failure(exc)
        except Exception as exc:
            logger.exception("[NetworkController] delete of edge %s failed", edge_id)
            return self._unexpected(exc)

        await self.refresh()
        return InteractionResult(
            success=True,
            message=f"deleted {edge_id}",
            state=self.selection.state,
        )

    # =========================================================================
    # Results
    # =========================================================================

    def _failure(self, exc: NetworkError) -> InteractionResult:
        logger.warning("[NetworkController] %s: %s", exc.error_code, exc)
        return InteractionResult(
            success=False,
            message=str(exc),
            error_code=exc.error_code,
            retryable=exc.retryable,
            state=self.selection.state,
        )

    def _unexpected(self, exc: Exception) -> InteractionResult:
        return InteractionResult(
            success=False,
            message=str(exc) or type(exc).__name__,
            error_code="internal_error",
            retryable=True,
            state=self.selection.state,
        )
