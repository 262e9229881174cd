"""In-memory EntityRepository used offline and in tests.

Rows live in an insertion-ordered dict keyed by id. ``fail_next(...)`` makes
the next call of the named operation raise ``NetworkError`` so callers can
exercise their rollback paths.
"""

from __future__ import annotations

import copy
import itertools
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from config import settings
from core.entity_client import NetworkError

__all__ = ["InMemoryEntityRepository"]


class InMemoryEntityRepository:
    def __init__(
        self,
        rows: Iterable[Mapping[str, Any]] = (),
        *,
        id_field: str = settings.ROW_ID_FIELD,
    ) -> None:
        self.id_field = id_field
        self._rows: Dict[Any, Dict[str, Any]] = {}
        for row in rows:
            self._rows[row[id_field]] = dict(row)
        numeric = [k for k in self._rows if isinstance(k, int)]
        self._next_id = itertools.count(max(numeric, default=0) + 1)
        self._failures: Dict[str, NetworkError] = {}
        self.calls: List[str] = []

    def fail_next(self, operation: str, message: str = "Service unavailable", status: int = 500) -> None:
        self._failures[operation] = NetworkError(message, status=status)

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        error = self._failures.pop(operation, None)
        if error is not None:
            raise error

    def _get(self, row_id: Any) -> Dict[str, Any]:
        try:
            return self._rows[row_id]
        except KeyError:
            raise NetworkError(f"Record {row_id!r} not found", status=404) from None

    async def fetch_all(self) -> List[Dict[str, Any]]:
        self._enter("fetch_all")
        return [copy.deepcopy(r) for r in self._rows.values()]

    async def fetch_by_id(self, row_id: Any) -> Dict[str, Any]:
        self._enter("fetch_by_id")
        return copy.deepcopy(self._get(row_id))

    async def create(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        self._enter("create")
        row = dict(data)
        if row.get(self.id_field) is None:
            row[self.id_field] = next(self._next_id)
        self._rows[row[self.id_field]] = row
        return copy.deepcopy(row)

    async def update(self, row_id: Any, partial: Mapping[str, Any]) -> Dict[str, Any]:
        self._enter("update")
        row = self._get(row_id)
        row.update(partial)
        return copy.deepcopy(row)

    async def delete(self, row_id: Any) -> None:
        self._enter("delete")
        self._get(row_id)
        del self._rows[row_id]

    async def bulk_delete(self, ids: Iterable[Any]) -> None:
        self._enter("bulk_delete")
        wanted: Set[Any] = set(ids)
        missing: Optional[Any] = next((i for i in wanted if i not in self._rows), None)
        if missing is not None:
            raise NetworkError(f"Record {missing!r} not found", status=404)
        for row_id in wanted:
            del self._rows[row_id]
