"""
Entity/relationship persistence contract and the in-memory implementation.

The engine only talks to persistence through `EntityRepository`. Every
method is async because real backends suspend on network I/O. Returned
models are copies; mutating them never changes stored state.
"""
from __future__ import annotations

import itertools
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Set

from casegraph.models.entity import (
    ENTITY_TYPE_ORDER,
    Business,
    Connection,
    EmailAddress,
    Entity,
    EntityKey,
    EntityType,
    Location,
    Person,
    PhoneNumber,
    Relationship,
    RelationshipQuery,
)
from casegraph.errors import NotFoundError

logger = logging.getLogger(__name__)


class EntityRepository(Protocol):
    """Read/write collaborator consumed by the network engine."""

    async def list_people(self) -> List[Person]: ...

    async def list_businesses(self) -> List[Business]: ...

    async def list_locations(self) -> List[Location]: ...

    async def list_phones(self) -> List[PhoneNumber]: ...

    async def list_emails(self) -> List[EmailAddress]: ...

    async def list_entities(self, entity_types: Optional[Iterable[EntityType]] = None) -> List[Entity]: ...

    async def get_entity(self, key: EntityKey) -> Optional[Entity]: ...

    async def get_person(self, person_id: int) -> Optional[Person]: ...

    async def save_person_connections(self, person_id: int, connections: Sequence[Connection]) -> Person: ...

    async def list_relationships(self, query: Optional[RelationshipQuery] = None) -> List[Relationship]: ...

    async def get_relationship(self, relationship_id: str) -> Optional[Relationship]: ...

    async def create_relationship(self, relationship: Relationship) -> Relationship: ...

    async def delete_relationship(self, relationship_id: str) -> None: ...


async def fetch_entities(
    repository: EntityRepository,
    entity_types: Optional[Iterable[EntityType]] = None,
) -> List[Entity]:
    """Fetch entities type by type, in bucket order."""
    wanted: Set[EntityType] = set(entity_types) if entity_types is not None else set(EntityType)
    loaders = {
        EntityType.PERSON: repository.list_people,
        EntityType.BUSINESS: repository.list_businesses,
        EntityType.LOCATION: repository.list_locations,
        EntityType.PHONE: repository.list_phones,
        EntityType.EMAIL: repository.list_emails,
    }
    entities: List[Entity] = []
    for entity_type in ENTITY_TYPE_ORDER:
        if entity_type in wanted:
            entities.extend(await loaders[entity_type]())
    return entities


class InMemoryEntityRepository:
    """Dict-backed repository. Default backend and test double."""

    def __init__(
        self,
        entities: Optional[Iterable[Entity]] = None,
        relationships: Optional[Iterable[Relationship]] = None,
    ) -> None:
        self._entities: Dict[EntityKey, Entity] = {}
        self._relationships: Dict[str, Relationship] = {}
        self._ids = itertools.count(1)
        for entity in entities or []:
            self.add_entity(entity)
        for relationship in relationships or []:
            self._store_relationship(relationship)

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def add_entity(self, entity: Entity) -> None:
        self._entities[entity.key] = entity.model_copy(deep=True)

    def _store_relationship(self, relationship: Relationship) -> Relationship:
        stored = relationship.model_copy(deep=True)
        if not stored.id:
            stored.id = f"rel-{next(self._ids)}"
            # seeded records may already use the generated form
            while stored.id in self._relationships:
                stored.id = f"rel-{next(self._ids)}"
        self._relationships[stored.id] = stored
        return stored

    # ------------------------------------------------------------------
    # Entity reads
    # ------------------------------------------------------------------

    def _of_type(self, entity_type: EntityType) -> list:
        return [
            entity.model_copy(deep=True)
            for key, entity in self._entities.items()
            if key.entity_type == entity_type
        ]

    async def list_people(self) -> List[Person]:
        return self._of_type(EntityType.PERSON)

    async def list_businesses(self) -> List[Business]:
        return self._of_type(EntityType.BUSINESS)

    async def list_locations(self) -> List[Location]:
        return self._of_type(EntityType.LOCATION)

    async def list_phones(self) -> List[PhoneNumber]:
        return self._of_type(EntityType.PHONE)

    async def list_emails(self) -> List[EmailAddress]:
        return self._of_type(EntityType.EMAIL)

    async def list_entities(self, entity_types: Optional[Iterable[EntityType]] = None) -> List[Entity]:
        return await fetch_entities(self, entity_types)

    async def get_entity(self, key: EntityKey) -> Optional[Entity]:
        entity = self._entities.get(key)
        return entity.model_copy(deep=True) if entity is not None else None

    async def get_person(self, person_id: int) -> Optional[Person]:
        return await self.get_entity(EntityKey(EntityType.PERSON, person_id))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def save_person_connections(self, person_id: int, connections: Sequence[Connection]) -> Person:
        key = EntityKey(EntityType.PERSON, person_id)
        person = self._entities.get(key)
        if person is None:
            raise NotFoundError(f"person {person_id} not found")
        person.connections = [connection.model_copy(deep=True) for connection in connections]
        return person.model_copy(deep=True)

    async def list_relationships(self, query: Optional[RelationshipQuery] = None) -> List[Relationship]:
        query = query or RelationshipQuery()
        return [
            relationship.model_copy(deep=True)
            for relationship in self._relationships.values()
            if query.matches(relationship)
        ]

    async def get_relationship(self, relationship_id: str) -> Optional[Relationship]:
        relationship = self._relationships.get(relationship_id)
        return relationship.model_copy(deep=True) if relationship is not None else None

    async def create_relationship(self, relationship: Relationship) -> Relationship:
        now = datetime.now()
        stored = self._store_relationship(
            relationship.model_copy(update={"created_at": now, "updated_at": now})
        )
        logger.info("stored relationship %s (%s)", stored.id, stored.relationship_type)
        return stored.model_copy(deep=True)

    async def delete_relationship(self, relationship_id: str) -> None:
        if self._relationships.pop(relationship_id, None) is None:
            raise NotFoundError(f"relationship {relationship_id} not found")
        logger.info("deleted relationship %s", relationship_id)
