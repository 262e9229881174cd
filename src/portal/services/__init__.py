"""Service layer exports.

Responsibilities:
 - EventBus publish/subscribe core
 - Filter predicates and multi-column sorting used by every entity store
"""

from .event_bus import EventBus, PortalEvent  # noqa: F401
from .filter_evaluator import FilterCondition, apply_filters  # noqa: F401
from .multi_column_sort import SortRule, sort_rows  # noqa: F401

__all__ = [
    "EventBus",
    "PortalEvent",
    "FilterCondition",
    "apply_filters",
    "SortRule",
    "sort_rows",
]
