"""Value-or-function column properties.

A column property such as ``disabled`` is either fixed for every cell
(``Static``) or computed per cell from a :class:`CellContext` (``Computed``).
``resolve`` is the single place that tells them apart.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Generic, TypeVar, Union

__all__ = ["CellContext", "Static", "Computed", "Prop", "as_prop", "resolve", "project"]

T = TypeVar("T")


@dataclass(frozen=True)
class CellContext:
    """What a computed property sees: the cell's data, row index and column id.

    For a row-scoped column ``row_data`` is the whole row; for a value-scoped
    column (inside a key column) it is the projected field value.
    """

    row_data: Any
    row_index: int
    column_id: str | None = None


@dataclass(frozen=True)
class Static(Generic[T]):
    value: T


@dataclass(frozen=True)
class Computed(Generic[T]):
    fn: Callable[[CellContext], T]


Prop = Union[Static[T], Computed[T]]


def as_prop(value: Any) -> Prop:
    """Normalize a plain value or callable into a ``Static``/``Computed``."""
    if isinstance(value, (Static, Computed)):
        return value
    if callable(value):
        return Computed(value)
    return Static(value)


def resolve(prop: Prop[T], context: CellContext) -> T:
    if isinstance(prop, Computed):
        return prop.fn(context)
    return prop.value


def project(prop: Prop[T], key: str) -> Prop[T]:
    """Rebind a property written against a field value to operate on a row.

    Computed properties receive ``row[key]`` as their ``row_data``; static
    ones are returned unchanged.
    """
    if isinstance(prop, Static):
        return prop
    inner = prop.fn

    def projected(context: CellContext) -> T:
        row = context.row_data or {}
        return inner(replace(context, row_data=row.get(key)))

    return Computed(projected)
