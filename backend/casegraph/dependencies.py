"""
FastAPI dependencies.
"""
from functools import lru_cache

from casegraph.config import settings
from casegraph.network.layout import LayoutOptions
from casegraph.network.mutation import RelationshipMutationService
from casegraph.services.entity_repository import EntityRepository, InMemoryEntityRepository
from casegraph.services.firestore_repository import FirestoreEntityRepository


@lru_cache()
def get_repository() -> EntityRepository:
    if settings.storage_backend == "firestore":
        return FirestoreEntityRepository()
    return InMemoryEntityRepository()


@lru_cache()
def get_mutation_service() -> RelationshipMutationService:
    return RelationshipMutationService(get_repository())


@lru_cache()
def get_layout_options() -> LayoutOptions:
    return LayoutOptions(
        seed=settings.force_seed,
        iterations=settings.force_iterations,
        damping=settings.force_damping,
        canvas_width=settings.canvas_width,
        canvas_height=settings.canvas_height,
    )
