"""Repository interface for entity persistence.

The table engine never talks to the database directly: stores are filled and
written through an :class:`EntityRepository`. ``core.entity_client.EntityApiClient``
is the HTTP implementation; :class:`portal.repositories.memory_impl.InMemoryEntityRepository`
is the offline / test double.

Implementations report failures by raising ``core.entity_client.NetworkError``.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Protocol, runtime_checkable

__all__ = ["EntityRepository"]


@runtime_checkable
class EntityRepository(Protocol):
    async def fetch_all(self) -> List[Dict[str, Any]]: ...  # pragma: no cover - structural

    async def fetch_by_id(self, row_id: Any) -> Dict[str, Any]: ...  # pragma: no cover

    async def create(self, data: Mapping[str, Any]) -> Dict[str, Any]: ...  # pragma: no cover

    async def update(
        self, row_id: Any, partial: Mapping[str, Any]
    ) -> Dict[str, Any]: ...  # pragma: no cover

    async def delete(self, row_id: Any) -> None: ...  # pragma: no cover

    async def bulk_delete(self, ids: Iterable[Any]) -> None: ...  # pragma: no cover
