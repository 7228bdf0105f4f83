"""
Data models package.
"""
from .entity import (
    Business,
    Connection,
    EmailAddress,
    Entity,
    EntityKey,
    EntityType,
    Location,
    Person,
    PersonLocation,
    PhoneNumber,
    Relationship,
    RelationshipQuery,
    StyleHint,
)
from .graph import EdgeStyle, GraphStats, NetworkEdge, NetworkGraph, NetworkNode, Position, Workflow
from .relationship_schema import ConnectionType, RelationshipType

__all__ = [
    "Business",
    "Connection",
    "EmailAddress",
    "Entity",
    "EntityKey",
    "EntityType",
    "Location",
    "Person",
    "PersonLocation",
    "PhoneNumber",
    "Relationship",
    "RelationshipQuery",
    "StyleHint",
    "EdgeStyle",
    "GraphStats",
    "NetworkEdge",
    "NetworkGraph",
    "NetworkNode",
    "Position",
    "Workflow",
    "ConnectionType",
    "RelationshipType",
]
