"""Validation gate applied to a cell value before a delete is committed.

Edits and pastes are validated by the editing surface before they reach a
column; a delete bypasses that path, so the key column calls :func:`validate`
on the post-delete value instead. A schema is anything exposing
``safe_parse(value) -> ParseResult``; :class:`PydanticSchema` adapts a pydantic
type (or ``TypeAdapter``) to that contract.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Protocol, Tuple, Union, runtime_checkable

from pydantic import TypeAdapter, ValidationError

__all__ = [
    "ParseResult",
    "ValidationSchema",
    "PydanticSchema",
    "ValidationSuccess",
    "ValidationFailure",
    "validate",
]


@dataclass(frozen=True)
class ParseResult:
    success: bool
    data: Any = None
    errors: Tuple[str, ...] = ()


@runtime_checkable
class ValidationSchema(Protocol):
    def safe_parse(self, value: Any) -> ParseResult: ...  # pragma: no cover - structural


class PydanticSchema:
    """``safe_parse`` over a pydantic ``TypeAdapter``.

    Example:
        PydanticSchema(Annotated[str, StringConstraints(min_length=1)])
    """

    def __init__(self, type_or_adapter: Any):
        if isinstance(type_or_adapter, TypeAdapter):
            self._adapter = type_or_adapter
        else:
            self._adapter = TypeAdapter(type_or_adapter)

    def safe_parse(self, value: Any) -> ParseResult:
        try:
            data = self._adapter.validate_python(value)
        except ValidationError as exc:
            return ParseResult(False, errors=tuple(e["msg"] for e in exc.errors()))
        return ParseResult(True, data=data)


@dataclass(frozen=True)
class ValidationSuccess:
    value: Any


@dataclass(frozen=True)
class ValidationFailure:
    messages: List[str] = field(default_factory=list)

    def summary(self) -> str:
        return ", ".join(self.messages) or "invalid value"


def validate(schema: ValidationSchema | None, candidate: Any) -> Union[ValidationSuccess, ValidationFailure]:
    if schema is None:
        return ValidationSuccess(candidate)
    result = schema.safe_parse(candidate)
    if result.success:
        return ValidationSuccess(result.data)
    return ValidationFailure(list(result.errors))
