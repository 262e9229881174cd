"""Portal table engine public API.

Curated surface for views and tests: column building blocks, entity stores,
filter/sort primitives and scope wiring. The Qt item model is not imported
here so headless callers never load PyQt6.
"""

from __future__ import annotations

from .app.scope import PortalScope, create_portal_scope  # noqa: F401
from .datasheet import ColumnDescriptor, key_column  # noqa: F401
from .models import EntitySpec, UnsupportedEntityError  # noqa: F401
from .services.event_bus import EventBus, PortalEvent  # noqa: F401
from .services.filter_evaluator import FilterCondition  # noqa: F401
from .services.multi_column_sort import SortRule  # noqa: F401
from .stores import EntityStore, MutationPipeline, StoreRegistry  # noqa: F401

__all__ = [
    "PortalScope",
    "create_portal_scope",
    "ColumnDescriptor",
    "key_column",
    "EntitySpec",
    "UnsupportedEntityError",
    "EventBus",
    "PortalEvent",
    "FilterCondition",
    "SortRule",
    "EntityStore",
    "MutationPipeline",
    "StoreRegistry",
]
