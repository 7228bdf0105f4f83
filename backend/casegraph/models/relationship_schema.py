"""
Relationship vocabularies and edge style tables.

The basic (person-only) and enhanced (multi-entity) workflows keep
separate closed vocabularies; a type that exists in one is not implied
to exist in the other.
"""
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from casegraph.models.entity import EntityType
from casegraph.models.graph import EdgeStyle, Workflow


class ConnectionType(str, Enum):
    """Basic workflow connection types (person -> person)."""

    ASSOCIATE = "associate"
    FAMILY = "family"
    FRIEND = "friend"
    ENEMY = "enemy"
    EMPLOYER = "employer"
    SUSPECT = "suspect"
    WITNESS = "witness"
    VICTIM = "victim"
    OTHER = "other"


class RelationshipType(str, Enum):
    """Enhanced workflow relationship types."""

    # person -> person
    FAMILY = "family"
    FRIEND = "friend"
    ASSOCIATE = "associate"
    ENEMY = "enemy"
    # person -> business
    OWNS = "owns"
    WORKS_AT = "works_at"
    DIRECTOR_OF = "director_of"
    CUSTOMER_OF = "customer_of"
    # business -> person
    EMPLOYS = "employs"
    OWNED_BY = "owned_by"
    HAS_DIRECTOR = "has_director"
    HAS_CUSTOMER = "has_customer"
    # person -> location
    LIVES_AT = "lives_at"
    OWNS_PROPERTY = "owns_property"
    FREQUENTS = "frequents"
    # business -> location
    LOCATED_AT = "located_at"
    HAS_BRANCH = "has_branch"
    # person/business -> phone/email
    USES_PHONE = "uses_phone"
    USES_EMAIL = "uses_email"
    # any other pair
    OTHER = "other"


CONNECTION_TYPE_LABELS: Dict[str, str] = {
    ConnectionType.ASSOCIATE.value: "Associate",
    ConnectionType.FAMILY.value: "Family",
    ConnectionType.FRIEND.value: "Friend",
    ConnectionType.ENEMY.value: "Enemy",
    ConnectionType.EMPLOYER.value: "Employer/Employee",
    ConnectionType.SUSPECT.value: "Suspect Connection",
    ConnectionType.WITNESS.value: "Witness",
    ConnectionType.VICTIM.value: "Victim",
    ConnectionType.OTHER.value: "Other",
}

BASIC_CONNECTION_TYPES: FrozenSet[str] = frozenset(item.value for item in ConnectionType)

# Allowed relationship types per ordered (source, target) pair.
ENHANCED_RELATIONSHIP_TYPES: Dict[Tuple[EntityType, EntityType], Tuple[str, ...]] = {
    (EntityType.PERSON, EntityType.PERSON): ("family", "friend", "associate", "enemy"),
    (EntityType.PERSON, EntityType.BUSINESS): ("owns", "works_at", "director_of", "customer_of"),
    (EntityType.BUSINESS, EntityType.PERSON): ("employs", "owned_by", "has_director", "has_customer"),
    (EntityType.PERSON, EntityType.LOCATION): ("lives_at", "owns_property", "frequents"),
    (EntityType.BUSINESS, EntityType.LOCATION): ("located_at", "has_branch"),
    (EntityType.PERSON, EntityType.PHONE): ("uses_phone",),
    (EntityType.BUSINESS, EntityType.PHONE): ("uses_phone",),
    (EntityType.PERSON, EntityType.EMAIL): ("uses_email",),
    (EntityType.BUSINESS, EntityType.EMAIL): ("uses_email",),
}
FALLBACK_RELATIONSHIP_TYPES: Tuple[str, ...] = (RelationshipType.OTHER.value,)


def _style(stroke: str, width: float, label: str, dash: Optional[str] = None) -> EdgeStyle:
    return EdgeStyle(stroke=stroke, stroke_width=width, stroke_dasharray=dash, label=label)


FALLBACK_EDGE_STYLE = _style("#6b7280", 2, "Connected")

BASIC_EDGE_STYLES: Dict[str, EdgeStyle] = {
    "family": _style("#10b981", 3, "Family"),
    "friend": _style("#3b82f6", 2, "Friend"),
    "enemy": _style("#ef4444", 2, "Enemy", "5 5"),
    "associate": _style("#6b7280", 2, "Associate"),
    "employer": _style("#8b5cf6", 2, "Employer/Employee", "5 5"),
    "suspect": _style("#ef4444", 3, "Suspect Connection"),
    "witness": _style("#f59e0b", 2, "Witness", "3 3"),
    "victim": _style("#ec4899", 2, "Victim"),
    "other": _style("#6b7280", 2, "Other"),
}

ENHANCED_EDGE_STYLES: Dict[str, EdgeStyle] = {
    # person relationships
    "family": _style("#10b981", 3, "Family"),
    "friend": _style("#3b82f6", 2, "Friend"),
    "associate": _style("#6b7280", 2, "Associate"),
    "enemy": _style("#ef4444", 2, "Enemy", "5 5"),
    # business relationships
    "owns": _style("#10b981", 3, "Owns"),
    "works_at": _style("#f59e0b", 2, "Works At"),
    "employs": _style("#f59e0b", 2, "Employs", "5 5"),
    "director_of": _style("#8b5cf6", 2, "Director"),
    "has_director": _style("#8b5cf6", 2, "Has Director", "5 5"),
    "owned_by": _style("#10b981", 3, "Owned By", "5 5"),
    "customer_of": _style("#0ea5e9", 2, "Customer Of"),
    "has_customer": _style("#0ea5e9", 2, "Has Customer", "5 5"),
    # location relationships
    "lives_at": _style("#8b5cf6", 2, "Lives At"),
    "located_at": _style("#6366f1", 2, "Located At"),
    "owns_property": _style("#10b981", 3, "Owns Property", "5 5"),
    "frequents": _style("#a855f7", 2, "Frequents", "3 3"),
    "has_branch": _style("#6366f1", 2, "Has Branch", "3 3"),
    # communication relationships
    "uses_phone": _style("#3b82f6", 2, "Uses Phone"),
    "uses_email": _style("#6366f1", 2, "Uses Email"),
    "other": FALLBACK_EDGE_STYLE,
}

ANIMATED_RELATIONSHIP_TYPES: FrozenSet[str] = frozenset({"suspect", "transfers_money"})

DASH_PATTERNS: Dict[str, Optional[str]] = {
    "solid": None,
    "dashed": "5 5",
    "dotted": "2 2",
}


def style_table(workflow: Workflow) -> Dict[str, EdgeStyle]:
    if workflow == Workflow.BASIC:
        return BASIC_EDGE_STYLES
    return ENHANCED_EDGE_STYLES


def allowed_relationship_types(
    source_type: EntityType,
    target_type: EntityType,
    workflow: Workflow = Workflow.ENHANCED,
) -> Tuple[str, ...]:
    """Closed vocabulary for an ordered pair of entity types."""
    source_type, target_type = EntityType(source_type), EntityType(target_type)
    if workflow == Workflow.BASIC:
        if source_type == EntityType.PERSON and target_type == EntityType.PERSON:
            return tuple(item.value for item in ConnectionType)
        return ()
    return ENHANCED_RELATIONSHIP_TYPES.get((source_type, target_type), FALLBACK_RELATIONSHIP_TYPES)


def relationship_label(relationship_type: str, workflow: Workflow = Workflow.ENHANCED) -> str:
    if workflow == Workflow.BASIC and relationship_type in CONNECTION_TYPE_LABELS:
        return CONNECTION_TYPE_LABELS[relationship_type]
    style = style_table(workflow).get(relationship_type)
    if style is not None:
        return style.label
    return relationship_type.replace("_", " ").title()


def relationship_type_options(
    source_type: EntityType,
    target_type: EntityType,
    workflow: Workflow = Workflow.ENHANCED,
) -> List[Dict[str, str]]:
    """Value/label pairs for the type-selection dialog."""
    return [
        {"value": value, "label": relationship_label(value, workflow)}
        for value in allowed_relationship_types(source_type, target_type, workflow)
    ]
