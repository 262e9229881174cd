"""Filter predicates for table rows.

A :class:`FilterCondition` names a column, an operator, a filter value and a
value type (``text``, ``number`` or ``date``). Each (type, operator) pair maps
to one small predicate; :func:`apply_filters` keeps the rows that satisfy
every condition.

Anything the evaluator cannot interpret (unknown type or operator, a value
that does not parse) is a non-match. A broken filter narrows the result set,
it never widens it and never raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

__all__ = [
    "FilterCondition",
    "DateParseError",
    "parse_day",
    "get_field",
    "date_matches",
    "matches",
    "apply_filters",
]


@dataclass(frozen=True)
class FilterCondition:
    column: str
    operator: str
    value: Any = None
    type: str = "text"

    @classmethod
    def from_dict(cls, obj: Mapping[str, Any]) -> "FilterCondition":
        return cls(
            column=obj["column"],
            operator=obj["operator"],
            value=obj.get("value"),
            type=obj.get("type", "text"),
        )


class DateParseError(ValueError):
    """Value cannot be read as a calendar date."""


def get_field(row: Any, path: str) -> Any:
    """Read a (possibly dotted) field from a mapping; missing -> None."""
    current = row
    for part in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(part)
        else:
            current = getattr(current, part, None)
        if current is None:
            return None
    return current


def parse_day(value: Any) -> date:
    """Calendar date written in ``value``; time of day and offset are dropped."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise DateParseError(f"not a date: {value!r}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError as exc:
        raise DateParseError(f"not a date: {value!r}") from exc


def _is_empty(value: Any) -> bool:
    # Falsy counts as empty: None, "", 0, False, empty collections
    return value is None or not value


def _bounds(value: Any) -> Optional[Tuple[Any, Any]]:
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return value[0], value[1]
    return None


# ----------------------------------------------------------------------
# Date family
# ----------------------------------------------------------------------
def _date_between(row_day: date, value: Any) -> bool:
    bounds = _bounds(value)
    if bounds is None:
        return False
    lo, hi = parse_day(bounds[0]), parse_day(bounds[1])
    return lo <= row_day <= hi


_DATE_OPS: Dict[str, Callable[[date, Any], bool]] = {
    "equals": lambda d, v: d == parse_day(v),
    "before": lambda d, v: d < parse_day(v),
    "after": lambda d, v: d > parse_day(v),
    "between": _date_between,
}


def date_matches(row_value: Any, filter_value: Any, operator: str, type_: str = "date") -> bool:
    if operator == "is_empty":
        return _is_empty(row_value)
    if operator == "is_not_empty":
        return not _is_empty(row_value)
    if type_ != "date":
        return False
    op = _DATE_OPS.get(operator)
    if op is None:
        return False
    try:
        return op(parse_day(row_value), filter_value)
    except DateParseError:
        return False


# ----------------------------------------------------------------------
# Text family
# ----------------------------------------------------------------------
_TEXT_OPS: Dict[str, Callable[[str, str], bool]] = {
    "equals": lambda a, b: a == b,
    "contains": lambda a, b: b in a,
    "starts_with": lambda a, b: a.startswith(b),
    "ends_with": lambda a, b: a.endswith(b),
}


def _text_matches(row_value: Any, filter_value: Any, operator: str, case_sensitive: bool) -> bool:
    op = _TEXT_OPS.get(operator)
    if op is None or row_value is None or filter_value is None:
        return False
    a, b = str(row_value), str(filter_value)
    if not case_sensitive:
        a, b = a.casefold(), b.casefold()
    return op(a, b)


# ----------------------------------------------------------------------
# Number family
# ----------------------------------------------------------------------
def _to_number(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise InvalidOperation(value)
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value))
    return Decimal(str(value).strip().replace(",", ""))


def _number_between(n: Decimal, value: Any) -> bool:
    bounds = _bounds(value)
    if bounds is None:
        return False
    return _to_number(bounds[0]) <= n <= _to_number(bounds[1])


_NUMBER_OPS: Dict[str, Callable[[Decimal, Any], bool]] = {
    "equals": lambda n, v: n == _to_number(v),
    "greater_than": lambda n, v: n > _to_number(v),
    "less_than": lambda n, v: n < _to_number(v),
    "between": _number_between,
}


def _number_matches(row_value: Any, filter_value: Any, operator: str) -> bool:
    op = _NUMBER_OPS.get(operator)
    if op is None or row_value is None:
        return False
    try:
        n = _to_number(row_value)
        if not n.is_finite():
            return False
        return op(n, filter_value)
    except (InvalidOperation, ValueError, TypeError):
        return False


# ----------------------------------------------------------------------
# Combinators
# ----------------------------------------------------------------------
def matches(row: Any, condition: FilterCondition, case_sensitive: bool = False) -> bool:
    value = get_field(row, condition.column)
    if condition.operator in ("is_empty", "is_not_empty") or condition.type == "date":
        return date_matches(value, condition.value, condition.operator, condition.type)
    if condition.type == "text":
        return _text_matches(value, condition.value, condition.operator, case_sensitive)
    if condition.type == "number":
        return _number_matches(value, condition.value, condition.operator)
    return False


def apply_filters(
    rows: Iterable[Any], conditions: Sequence[FilterCondition], case_sensitive: bool = False
) -> List[Any]:
    conditions = list(conditions)
    return [r for r in rows if all(matches(r, c, case_sensitive) for c in conditions)]
