"""
Investigation entity models.

Entities are the node-eligible records of the relationship network:
people, businesses, locations, phone numbers and email addresses.
`Entity` is a discriminated union over the five variants; the
`entity_type` literal on each model is the tag.

Identity is the pair (entity_type, entity_id), modelled by `EntityKey`.
Two entity types may reuse the same raw id without colliding.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class EntityType(str, Enum):
    """Entity variants that may appear as graph nodes."""

    PERSON = "person"
    BUSINESS = "business"
    LOCATION = "location"
    PHONE = "phone"
    EMAIL = "email"


# Bucket order used by type-grouped layouts and statistics.
ENTITY_TYPE_ORDER = (
    EntityType.PERSON,
    EntityType.BUSINESS,
    EntityType.LOCATION,
    EntityType.PHONE,
    EntityType.EMAIL,
)


@dataclass(frozen=True)
class EntityKey:
    """Composite identity of an entity: (entity_type, entity_id)."""

    entity_type: EntityType
    entity_id: int

    def __post_init__(self) -> None:
        # Accept the plain string value ("person") as well as the enum member.
        object.__setattr__(self, "entity_type", EntityType(self.entity_type))
        if isinstance(self.entity_id, bool) or not isinstance(self.entity_id, int):
            raise ValueError(f"entity_id must be an int, got {self.entity_id!r}")

    @property
    def node_id(self) -> str:
        """String encoding handed to the rendering layer, e.g. ``person-42``."""
        return f"{self.entity_type.value}-{self.entity_id}"

    @staticmethod
    def parse(node_id: str) -> "EntityKey":
        """Inverse of `node_id`. Raises ValueError on unknown type or bad id."""
        type_part, sep, id_part = node_id.partition("-")
        if not sep:
            raise ValueError(f"malformed node id: {node_id!r}")
        try:
            entity_type = EntityType(type_part)
        except ValueError as exc:
            raise ValueError(f"unknown entity type in node id: {node_id!r}") from exc
        if not id_part.lstrip("-").isdigit():
            raise ValueError(f"non-numeric entity id in node id: {node_id!r}")
        return EntityKey(entity_type, int(id_part))

    def __str__(self) -> str:
        return self.node_id


class Connection(BaseModel):
    """Embedded person-to-person connection (basic workflow).

    `target_id` is optional so that malformed stored entries can be
    detected and dropped by the graph builder instead of failing to load.
    """

    target_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("target_id", "person_id"),
    )
    type: str = "associate"
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True)


class PersonLocation(BaseModel):
    """Address embedded on a person record (not a stored Location)."""

    type: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def display_name(self) -> str:
        return ", ".join(part for part in (self.city, self.country) if part)


class _EntityBase(BaseModel):
    id: int

    model_config = ConfigDict(from_attributes=True)


class Person(_EntityBase):
    """Person record."""

    entity_type: Literal["person"] = "person"
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    category: Optional[str] = None
    status: Optional[str] = None
    case_name: Optional[str] = None
    profile_picture_url: Optional[str] = None
    connections: List[Connection] = Field(default_factory=list)
    locations: List[PersonLocation] = Field(default_factory=list)

    @property
    def key(self) -> EntityKey:
        return EntityKey(EntityType.PERSON, self.id)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class Business(_EntityBase):
    """Business record."""

    entity_type: Literal["business"] = "business"
    name: Optional[str] = None
    business_type: Optional[str] = None
    industry: Optional[str] = None
    status: Optional[str] = None

    @property
    def key(self) -> EntityKey:
        return EntityKey(EntityType.BUSINESS, self.id)


class Location(_EntityBase):
    """Location record."""

    entity_type: Literal["location"] = "location"
    name: Optional[str] = None
    address: Optional[str] = None
    location_type: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None

    @property
    def key(self) -> EntityKey:
        return EntityKey(EntityType.LOCATION, self.id)


class PhoneNumber(_EntityBase):
    """Phone number record."""

    entity_type: Literal["phone"] = "phone"
    value: Optional[str] = None

    @property
    def key(self) -> EntityKey:
        return EntityKey(EntityType.PHONE, self.id)


class EmailAddress(_EntityBase):
    """Email address record."""

    entity_type: Literal["email"] = "email"
    value: Optional[str] = None

    @property
    def key(self) -> EntityKey:
        return EntityKey(EntityType.EMAIL, self.id)


Entity = Annotated[
    Union[Person, Business, Location, PhoneNumber, EmailAddress],
    Field(discriminator="entity_type"),
]

ENTITY_MODELS = {
    EntityType.PERSON: Person,
    EntityType.BUSINESS: Business,
    EntityType.LOCATION: Location,
    EntityType.PHONE: PhoneNumber,
    EntityType.EMAIL: EmailAddress,
}


def entity_label(entity: Entity) -> str:
    """Display label for an entity node."""
    match entity:
        case Person():
            return entity.full_name or "Unknown"
        case Business():
            return entity.name or "Unknown Business"
        case Location():
            return entity.name or entity.address or "Unknown Location"
        case PhoneNumber():
            return entity.value or "Unknown Phone"
        case EmailAddress():
            return entity.value or "Unknown Email"
    raise TypeError(f"not an entity: {type(entity).__name__}")


def entity_attributes(entity: Entity) -> dict:
    """Type-specific attributes copied into the node payload."""
    match entity:
        case Person():
            return {
                "category": entity.category,
                "status": entity.status,
                "case_name": entity.case_name,
                "profile_picture_url": entity.profile_picture_url,
            }
        case Business():
            return {
                "business_type": entity.business_type,
                "industry": entity.industry,
                "status": entity.status,
            }
        case Location():
            return {
                "location_type": entity.location_type,
                "address": entity.address,
                "city": entity.city,
                "country": entity.country,
            }
        case PhoneNumber() | EmailAddress():
            return {"value": entity.value}
    raise TypeError(f"not an entity: {type(entity).__name__}")


class StyleHint(BaseModel):
    """Per-relationship visual override."""

    color: Optional[str] = None
    style: Optional[Literal["solid", "dashed", "dotted"]] = None


DEFAULT_CONFIDENCE = 75


class Relationship(BaseModel):
    """Independently stored, typed relationship (enhanced workflow)."""

    id: Optional[str] = None
    source_type: EntityType
    source_id: int
    target_type: EntityType
    target_id: int
    relationship_type: str
    note: Optional[str] = None
    confidence_score: int = Field(default=DEFAULT_CONFIDENCE, ge=0, le=100)
    style_hint: Optional[StyleHint] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    model_config = ConfigDict(from_attributes=True)

    @property
    def source_key(self) -> EntityKey:
        return EntityKey(self.source_type, self.source_id)

    @property
    def target_key(self) -> EntityKey:
        return EntityKey(self.target_type, self.target_id)


class RelationshipQuery(BaseModel):
    """Filter for listing relationships; unset fields match anything."""

    source_type: Optional[EntityType] = None
    source_id: Optional[int] = None
    target_type: Optional[EntityType] = None
    target_id: Optional[int] = None
    relationship_type: Optional[str] = None

    def matches(self, relationship: Relationship) -> bool:
        for field_name in ("source_type", "source_id", "target_type", "target_id", "relationship_type"):
            expected = getattr(self, field_name)
            if expected is not None and getattr(relationship, field_name) != expected:
                return False
        return True

    @classmethod
    def between(cls, source: EntityKey, target: EntityKey) -> "RelationshipQuery":
        return cls(
            source_type=source.entity_type,
            source_id=source.entity_id,
            target_type=target.entity_type,
            target_id=target.entity_id,
        )
