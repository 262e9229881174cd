"""Multi-column sorting for table rows.

Rows are ordered by a priority list of :class:`SortRule` (first rule is the
primary key). Within one rule:

 - nullish values (``None`` or ``""``) go last, or first with
   ``nulls_first``; this placement ignores the rule's direction
 - values of different types compare by their string form; numbers of
   different numeric types still compare numerically
 - strings compare case-insensitively unless ``case_sensitive``

Rows equal under every rule keep their original relative order, so sorting
the same input twice gives the same output. The comparison is a total order
only while a column holds values of one kind: mixing numbers and strings
(``[9, 10, "5"]``) is not transitive and the resulting order depends on the
input order.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from functools import cmp_to_key
from typing import Any, Generic, Iterable, List, Mapping, Sequence, Tuple, TypeVar

from .filter_evaluator import get_field

__all__ = ["SortRule", "compare_values", "sort_rows", "MultiColumnSorter"]

T = TypeVar("T")


@dataclass(frozen=True)
class SortRule:
    field: str
    direction: str = "asc"

    @property
    def ascending(self) -> bool:
        return self.direction != "desc"

    @classmethod
    def from_dict(cls, obj: Mapping[str, Any]) -> "SortRule":
        return cls(field=obj["field"], direction=obj.get("direction", "asc"))


def _is_nullish(value: Any) -> bool:
    return value is None or value == ""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _cmp(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def compare_values(a: Any, b: Any, *, case_sensitive: bool = False) -> int:
    """Three-way comparison of two non-null cell values (ascending)."""
    if _is_number(a) and _is_number(b):
        return _cmp(a, b)
    if type(a) is not type(b):
        sa, sb = str(a), str(b)
        if not case_sensitive:
            sa, sb = sa.lower(), sb.lower()
        return _cmp(sa, sb)
    if isinstance(a, str):
        if not case_sensitive:
            return _cmp(a.lower(), b.lower())
        return _cmp(a, b)
    try:
        return _cmp(a, b)
    except TypeError:
        return _cmp(str(a), str(b))


def sort_rows(
    rows: Iterable[T],
    rules: Sequence[SortRule],
    *,
    case_sensitive: bool = False,
    nulls_first: bool = False,
) -> List[T]:
    indexed: List[Tuple[int, T]] = list(enumerate(rows))
    if not rules:
        return [row for _, row in indexed]

    def compare(left: Tuple[int, T], right: Tuple[int, T]) -> int:
        for rule in rules:
            a = get_field(left[1], rule.field)
            b = get_field(right[1], rule.field)
            a_null, b_null = _is_nullish(a), _is_nullish(b)
            if a_null and b_null:
                continue
            if a_null:
                return -1 if nulls_first else 1
            if b_null:
                return 1 if nulls_first else -1
            result = compare_values(a, b, case_sensitive=case_sensitive)
            if result:
                return result if rule.ascending else -result
        return left[0] - right[0]

    return [row for _, row in sorted(indexed, key=cmp_to_key(compare))]


class MultiColumnSorter(Generic[T]):
    """Holds rows and sort options so a view can re-sort on demand.

    Usage:
        sorter = MultiColumnSorter(rows, nulls_first=True)
        rows_sorted = sorter.sort([SortRule("total", "desc"), SortRule("name")])
    """

    def __init__(self, rows: Iterable[T], *, case_sensitive: bool = False, nulls_first: bool = False):
        self._rows: List[T] = list(rows)
        self.case_sensitive = case_sensitive
        self.nulls_first = nulls_first

    def sort(self, rules: Sequence[SortRule]) -> List[T]:
        return sort_rows(
            self._rows, rules, case_sensitive=self.case_sensitive, nulls_first=self.nulls_first
        )

    @staticmethod
    def single(rows: Iterable[T], field: str, ascending: bool = True) -> List[T]:
        return sort_rows(rows, [SortRule(field, "asc" if ascending else "desc")])
