"""Repository layer public exports."""

from .protocols import EntityRepository
from .memory_impl import InMemoryEntityRepository

__all__ = ["EntityRepository", "InMemoryEntityRepository"]
