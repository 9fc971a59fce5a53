"""
Validated construction of records from untyped input.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .types import Field, InvalidValue, Opaque, join_path

if TYPE_CHECKING:
    from .registry import ModuleRegistry


class ValidationError(ValueError):
    """Raised when params do not satisfy a module's field table."""

    def __init__(self, module: str, errors: dict[str, list[str]]):
        self.module = module
        self.errors = errors
        details = "; ".join(f"{name} {', '.join(messages)}" for name, messages in sorted(errors.items()))
        super().__init__(f"{module}: {details}")


@dataclass(frozen=True)
class Record(Mapping):
    """Immutable result of a successful ``build``."""

    module: str
    values: dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, key: str) -> Any:
        return self.values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def to_dict(self) -> dict[str, Any]:
        """Plain dictionary, with nested records converted too."""
        return {key: _plain(value) for key, value in self.values.items()}


def _plain(value: Any) -> Any:
    if isinstance(value, Record):
        return value.to_dict()
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def build(
    module: str,
    fields: Iterable[Field],
    params: Mapping[str, Any] | None = None,
    required: Iterable[str] | None = None,
    registry: ModuleRegistry | None = None,
) -> Record:
    """
    Cast params against a field table and enforce required fields.

    Unknown keys are ignored; absent fields with a default receive it.
    An explicit ``None`` is accepted only by nullable or untyped fields.

    Args:
        module: Module name, used in error messages
        fields: Field table of the module
        params: Untyped input
        required: Required field names (defaults to fields marked required)
        registry: Registry used to build nested references

    Returns:
        A validated Record

    Raises:
        ValidationError: With every problem found, keyed by field path
    """
    fields = tuple(fields)
    if params is None:
        params = {}
    if not isinstance(params, Mapping):
        raise ValidationError(module, {"params": [f"expected a mapping, got {type(params).__name__}"]})
    if required is None:
        required = [f.name for f in fields if f.required]
    required = tuple(required)

    values: dict[str, Any] = {}
    errors: dict[str, list[str]] = {}

    for f in fields:
        if f.name in params:
            raw = params[f.name]
            if raw is None:
                values[f.name] = None
                # Required fields report "is required" below
                if not (f.nullable or isinstance(f.type, Opaque) or f.name in required):
                    errors.setdefault(f.name, []).append("can't be null")
                continue
            try:
                values[f.name] = f.type.cast(raw, registry)
            except InvalidValue as e:
                for sub, messages in e.errors.items():
                    errors.setdefault(join_path(f.name, sub), []).extend(messages)
        elif f.default is not None:
            values[f.name] = copy.deepcopy(f.default)

    for name in required:
        if name in errors or any(key.startswith((f"{name}.", f"{name}[")) for key in errors):
            continue
        if _is_blank(values.get(name)):
            errors.setdefault(name, []).append("is required")

    if errors:
        raise ValidationError(module, errors)
    return Record(module=module, values=values)
