"""
Entity persistence service (Firestore).

Collections:
- people        people/{person_id}       (embedded `connections` list)
- businesses    businesses/{business_id}
- locations     locations/{location_id}
- phones        phones/{phone_id}
- emails        emails/{email_id}
- relationships relationships/{auto_id}  (enhanced workflow)
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from google.cloud import firestore
from pydantic import ValidationError as PydanticValidationError

from casegraph.config import settings
from casegraph.models.entity import (
    ENTITY_MODELS,
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
from casegraph.services.entity_repository import fetch_entities

logger = logging.getLogger(__name__)

ENTITY_COLLECTIONS: Dict[EntityType, str] = {
    EntityType.PERSON: "people",
    EntityType.BUSINESS: "businesses",
    EntityType.LOCATION: "locations",
    EntityType.PHONE: "phones",
    EntityType.EMAIL: "emails",
}
RELATIONSHIPS_COLLECTION = "relationships"


class FirestoreEntityRepository:
    """Entity repository backed by Firestore."""

    def __init__(self, firestore_client: Optional[firestore.Client] = None) -> None:
        self.db = firestore_client or firestore.Client(database=settings.firestore_database)

    def _collection(self, entity_type: EntityType) -> firestore.CollectionReference:
        return self.db.collection(ENTITY_COLLECTIONS[entity_type])

    def _relationships(self) -> firestore.CollectionReference:
        return self.db.collection(RELATIONSHIPS_COLLECTION)

    @staticmethod
    def _entity_from_doc(entity_type: EntityType, doc: Any) -> Optional[Entity]:
        data = doc.to_dict()
        if not data:
            return None
        data["entity_type"] = entity_type.value
        try:
            if "id" not in data:
                data["id"] = int(doc.id)
            return ENTITY_MODELS[entity_type].model_validate(data)
        except (PydanticValidationError, ValueError) as exc:
            logger.warning("skip unreadable %s document %s: %s", entity_type.value, doc.id, exc)
            return None

    @staticmethod
    def _relationship_from_doc(doc: Any) -> Optional[Relationship]:
        data = doc.to_dict()
        if not data:
            return None
        data["id"] = doc.id
        try:
            return Relationship.model_validate(data)
        except PydanticValidationError as exc:
            logger.warning("skip unreadable relationship document %s: %s", doc.id, exc)
            return None

    def _list(self, entity_type: EntityType) -> list:
        entities = []
        for doc in self._collection(entity_type).stream():
            entity = self._entity_from_doc(entity_type, doc)
            if entity is not None:
                entities.append(entity)
        return entities

    # ---- Entity reads ----

    async def list_people(self) -> List[Person]:
        return self._list(EntityType.PERSON)

    async def list_businesses(self) -> List[Business]:
        return self._list(EntityType.BUSINESS)

    async def list_locations(self) -> List[Location]:
        return self._list(EntityType.LOCATION)

    async def list_phones(self) -> List[PhoneNumber]:
        return self._list(EntityType.PHONE)

    async def list_emails(self) -> List[EmailAddress]:
        return self._list(EntityType.EMAIL)

    async def list_entities(self, entity_types: Optional[Iterable[EntityType]] = None) -> List[Entity]:
        return await fetch_entities(self, entity_types)

    async def get_entity(self, key: EntityKey) -> Optional[Entity]:
        doc = self._collection(key.entity_type).document(str(key.entity_id)).get()
        if not doc.exists:
            return None
        return self._entity_from_doc(key.entity_type, doc)

    async def get_person(self, person_id: int) -> Optional[Person]:
        return await self.get_entity(EntityKey(EntityType.PERSON, person_id))

    # ---- Basic workflow writes ----

    async def save_person_connections(self, person_id: int, connections: Sequence[Connection]) -> Person:
        ref = self._collection(EntityType.PERSON).document(str(person_id))
        doc = ref.get()
        if not doc.exists:
            raise NotFoundError(f"person {person_id} not found")
        payload = [connection.model_dump(mode="json") for connection in connections]
        ref.set({"connections": payload, "updated_at": datetime.now()}, merge=True)

        data = doc.to_dict() or {}
        data.update({"id": person_id, "entity_type": EntityType.PERSON.value, "connections": payload})
        return Person.model_validate(data)

    # ---- Enhanced workflow (relationship collection) ----

    async def list_relationships(self, query: Optional[RelationshipQuery] = None) -> List[Relationship]:
        query = query or RelationshipQuery()
        docs = self._relationships()
        for field_name, value in query.model_dump(mode="json", exclude_none=True).items():
            docs = docs.where(field_name, "==", value)

        relationships = []
        for doc in docs.stream():
            relationship = self._relationship_from_doc(doc)
            if relationship is not None and query.matches(relationship):
                relationships.append(relationship)
        return relationships

    async def get_relationship(self, relationship_id: str) -> Optional[Relationship]:
        doc = self._relationships().document(relationship_id).get()
        if not doc.exists:
            return None
        return self._relationship_from_doc(doc)

    async def create_relationship(self, relationship: Relationship) -> Relationship:
        now = datetime.now()
        ref = (
            self._relationships().document(relationship.id)
            if relationship.id
            else self._relationships().document()
        )
        stored = relationship.model_copy(update={"id": ref.id, "created_at": now, "updated_at": now})
        ref.set(stored.model_dump(mode="json", exclude={"id"}))
        logger.info("stored relationship %s (%s)", stored.id, stored.relationship_type)
        return stored

    async def delete_relationship(self, relationship_id: str) -> None:
        ref = self._relationships().document(relationship_id)
        if not ref.get().exists:
            raise NotFoundError(f"relationship {relationship_id} not found")
        ref.delete()
        logger.info("deleted relationship %s", relationship_id)
