"""Entity table definitions shared by stores and views."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from config import settings

__all__ = ["EntitySpec", "UnsupportedEntityError", "DEFAULT_SEARCH_FIELDS", "entity_spec"]


class UnsupportedEntityError(KeyError):
    """Raised for an entity type that has no table (not in ENTITY_TYPES)."""


@dataclass(frozen=True)
class EntitySpec:
    name: str
    # Empty tuple: free-text search looks at every field except the id
    searchable_fields: Tuple[str, ...] = ()
    id_field: str = settings.ROW_ID_FIELD


# Tables whose search box only looks at specific fields
DEFAULT_SEARCH_FIELDS: Dict[str, Tuple[str, ...]] = {
    "clients": ("name",),
    "vendors": ("name", "email"),
    "warehouses": ("name", "city"),
    "employees": ("first_name", "last_name", "email"),
    "jobs": ("title",),
}


def entity_spec(name: str) -> EntitySpec:
    if name not in settings.ENTITY_TYPES:
        raise UnsupportedEntityError(
            f"Unsupported entity type: {name!r}; add it to ENTITY_TYPES in config/settings.py"
        )
    return EntitySpec(name=name, searchable_fields=DEFAULT_SEARCH_FIELDS.get(name, ()))
