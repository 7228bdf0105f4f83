"""
Relationship mutation service.

Validates and applies edge creation/deletion against the persistence
collaborator. The in-memory graph is never touched here; callers
rebuild after a successful write.

Enhanced workflow: one relationship record per logical edge, so every
operation is a single write.

Basic workflow: a person-to-person connection is stored on both people.
Writes run as a two-step saga:
  1. write the source person's connection list
  2. write the target person's connection list
  3. if step 2 fails, restore the source list saved before step 1 and
     raise PartialWriteError (retryable; `compensated` says whether the
     restore succeeded)
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from casegraph.models.entity import (
    DEFAULT_CONFIDENCE,
    Connection,
    Entity,
    EntityKey,
    Person,
    Relationship,
    RelationshipQuery,
    StyleHint,
)
from casegraph.models.graph import Workflow
from casegraph.models.relationship_schema import BASIC_CONNECTION_TYPES, allowed_relationship_types
from casegraph.errors import NotFoundError, PartialWriteError, ValidationError
from casegraph.services.entity_repository import EntityRepository

logger = logging.getLogger(__name__)


def _upsert_connection(
    connections: Sequence[Connection],
    target_id: int,
    connection_type: str,
    note: Optional[str],
    now: datetime,
) -> List[Connection]:
    """Replace an existing connection to `target_id` or append a new one."""
    updated: List[Connection] = []
    replaced = False
    for connection in connections:
        if connection.target_id == target_id:
            if not replaced:
                updated.append(Connection(
                    target_id=target_id,
                    type=connection_type,
                    note=note,
                    created_at=connection.created_at or now,
                    updated_at=now,
                ))
                replaced = True
            continue
        updated.append(connection)
    if not replaced:
        updated.append(Connection(
            target_id=target_id,
            type=connection_type,
            note=note,
            created_at=now,
            updated_at=now,
        ))
    return updated


def _without_connection(
    connections: Sequence[Connection],
    target_id: int,
    connection_type: Optional[str],
) -> List[Connection]:
    return [
        connection
        for connection in connections
        if not (
            connection.target_id == target_id
            and (connection_type is None or connection.type == connection_type)
        )
    ]


class RelationshipMutationService:
    """Create/delete relationships and person connections."""

    def __init__(self, repository: EntityRepository) -> None:
        self.repository = repository

    # =========================================================================
    # Validation
    # =========================================================================

    @staticmethod
    def validate_relationship_type(
        source: EntityKey,
        target: EntityKey,
        relationship_type: str,
        workflow: Workflow = Workflow.ENHANCED,
    ) -> None:
        allowed = allowed_relationship_types(source.entity_type, target.entity_type, workflow)
        if relationship_type not in allowed:
            raise ValidationError(
                f"'{relationship_type}' is not allowed for "
                f"{source.entity_type.value} -> {target.entity_type.value}; "
                f"expected one of {list(allowed)}"
            )

    async def _require_entity(self, key: EntityKey) -> Entity:
        entity = await self.repository.get_entity(key)
        if entity is None:
            raise ValidationError(f"{key.node_id} does not exist")
        return entity

    # =========================================================================
    # Enhanced workflow
    # =========================================================================

    async def create_relationship(
        self,
        source: EntityKey,
        target: EntityKey,
        relationship_type: str,
        note: Optional[str] = None,
        confidence_score: int = DEFAULT_CONFIDENCE,
        style_hint: Optional[StyleHint] = None,
    ) -> Relationship:
        if source == target:
            raise ValidationError(f"cannot relate {source.node_id} to itself")
        self.validate_relationship_type(source, target, relationship_type)
        if not 0 <= confidence_score <= 100:
            raise ValidationError(f"confidence_score must be within 0-100, got {confidence_score}")

        await self._require_entity(source)
        await self._require_entity(target)

        relationship = Relationship(
            source_type=source.entity_type,
            source_id=source.entity_id,
            target_type=target.entity_type,
            target_id=target.entity_id,
            relationship_type=relationship_type,
            note=note,
            confidence_score=confidence_score,
            style_hint=style_hint,
        )
        created = await self.repository.create_relationship(relationship)
        logger.info(
            "[Mutation] created %s %s -> %s (%s)",
            relationship_type,
            source.node_id,
            target.node_id,
            created.id,
        )
        return created

    async def find_relationship(
        self,
        source: EntityKey,
        target: EntityKey,
        relationship_type: str,
    ) -> Relationship:
        """Resolve the stored relationship for a (source, target, type) triple."""
        query = RelationshipQuery.between(source, target).model_copy(
            update={"relationship_type": relationship_type}
        )
        matches = await self.repository.list_relationships(query)
        if not matches:
            raise NotFoundError(
                f"no {relationship_type} relationship {source.node_id} -> {target.node_id}"
            )
        if len(matches) > 1:
            logger.warning(
                "[Mutation] %d %s relationships %s -> %s, using %s",
                len(matches),
                relationship_type,
                source.node_id,
                target.node_id,
                matches[0].id,
            )
        return matches[0]

    async def delete_relationship(
        self,
        source: EntityKey,
        target: EntityKey,
        relationship_type: str,
    ) -> Relationship:
        relationship = await self.find_relationship(source, target, relationship_type)
        await self.repository.delete_relationship(relationship.id)
        logger.info("[Mutation] deleted relationship %s", relationship.id)
        return relationship

    async def delete_relationship_by_id(self, relationship_id: str) -> None:
        await self.repository.delete_relationship(relationship_id)
        logger.info("[Mutation] deleted relationship %s", relationship_id)

    # =========================================================================
    # Basic workflow (mirrored person connections)
    # =========================================================================

    async def create_connection(
        self,
        source_id: int,
        target_id: int,
        connection_type: str,
        note: Optional[str] = None,
    ) -> Tuple[Person, Person]:
        """Record the connection on both people. Returns the updated pair."""
        if source_id == target_id:
            raise ValidationError(f"cannot connect person {source_id} to itself")
        if connection_type not in BASIC_CONNECTION_TYPES:
            raise ValidationError(
                f"'{connection_type}' is not a connection type; "
                f"expected one of {sorted(BASIC_CONNECTION_TYPES)}"
            )

        source = await self.repository.get_person(source_id)
        if source is None:
            raise ValidationError(f"person {source_id} does not exist")
        target = await self.repository.get_person(target_id)
        if target is None:
            raise ValidationError(f"person {target_id} does not exist")

        now = datetime.now()
        return await self._mirrored_write(
            "create_connection",
            source,
            _upsert_connection(source.connections, target_id, connection_type, note, now),
            target,
            _upsert_connection(target.connections, source_id, connection_type, note, now),
        )

    async def delete_connection(
        self,
        source_id: int,
        target_id: int,
        connection_type: Optional[str] = None,
    ) -> Tuple[Person, Optional[Person]]:
        """Remove the connection from both people.

        A target that no longer exists only has its side skipped, so a
        dangling connection can still be cleaned up.
        """
        source = await self.repository.get_person(source_id)
        if source is None:
            raise NotFoundError(f"person {source_id} not found")
        target = await self.repository.get_person(target_id)

        source_connections = _without_connection(source.connections, target_id, connection_type)
        removed = len(source_connections) != len(source.connections)

        if target is None:
            if not removed:
                raise NotFoundError(f"person {source_id} has no connection to {target_id}")
            updated = await self.repository.save_person_connections(source_id, source_connections)
            logger.warning("[Mutation] removed dangling connection %s -> person %s", source.key, target_id)
            return updated, None

        target_connections = _without_connection(target.connections, source_id, connection_type)
        if not removed and len(target_connections) == len(target.connections):
            raise NotFoundError(f"no connection between person {source_id} and person {target_id}")

        return await self._mirrored_write(
            "delete_connection",
            source,
            source_connections,
            target,
            target_connections,
        )

    async def _mirrored_write(
        self,
        operation: str,
        source: Person,
        source_connections: List[Connection],
        target: Person,
        target_connections: List[Connection],
    ) -> Tuple[Person, Person]:
        previous = list(source.connections)
        updated_source = await self.repository.save_person_connections(source.id, source_connections)

        try:
            updated_target = await self.repository.save_person_connections(target.id, target_connections)
        except Exception as exc:
            logger.error(
                "[Mutation] %s %s -> %s: mirrored write failed: %s",
                operation,
                source.key,
                target.key,
                exc,
            )
            compensated = await self._restore(source.id, previous)
            raise PartialWriteError(
                operation,
                source.key.node_id,
                target.key.node_id,
                str(exc),
                compensated,
            ) from exc

        logger.info("[Mutation] %s %s <-> %s", operation, source.key, target.key)
        return updated_source, updated_target

    async def _restore(self, person_id: int, connections: List[Connection]) -> bool:
        try:
            await self.repository.save_person_connections(person_id, connections)
        except Exception:
            logger.exception("[Mutation] rollback of person %s failed", person_id)
            return False
        logger.info("[Mutation] rolled back connections of person %s", person_id)
        return True
