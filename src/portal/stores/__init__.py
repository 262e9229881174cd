"""Entity stores and the optimistic mutation pipeline."""

from .entity_store import EntityStore, EntityStoreState
from .mutations import Mutation, MutationPipeline, MutationState, MutationValidationError
from .registry import StoreRegistry

__all__ = [
    "EntityStore",
    "EntityStoreState",
    "Mutation",
    "MutationPipeline",
    "MutationState",
    "MutationValidationError",
    "StoreRegistry",
]
