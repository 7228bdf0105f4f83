"""Persistence collaborators."""
from casegraph.services.entity_repository import (
    EntityRepository,
    InMemoryEntityRepository,
    fetch_entities,
)

__all__ = [
    "EntityRepository",
    "InMemoryEntityRepository",
    "fetch_entities",
]
