"""
Type descriptors shared by the compiler and the generated modules.

The compiler builds these from resolved schemas; generated modules
instantiate them in their ``FIELDS`` tables and call ``cast`` on untyped
input.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

PRIMITIVE_KINDS = ("string", "integer", "number", "boolean", "object")


class InvalidValue(ValueError):
    """A value cannot be cast to a descriptor.

    ``errors`` maps a sub-path ("" for the value itself, "[0]", "name", ...)
    to messages, so nested failures can be reported with full paths.
    """

    def __init__(self, message: str, errors: dict[str, list[str]] | None = None):
        super().__init__(message)
        self.errors = errors if errors is not None else {"": [message]}


class UnknownVariant(InvalidValue):
    """A discriminator tag matches none of the known variants."""

    def __init__(self, tag: Any, known: list[Any]):
        super().__init__(f"unknown variant {tag!r}, expected one of {known!r}")
        self.tag = tag
        self.known = known


def join_path(prefix: str, sub: str) -> str:
    if not sub:
        return prefix
    if not prefix:
        return sub
    return f"{prefix}{sub}" if sub.startswith("[") else f"{prefix}.{sub}"


def _same_value(a: Any, b: Any) -> bool:
    # JSON true is not the integer 1
    return a == b and isinstance(a, bool) == isinstance(b, bool)


class TypeDescriptor:
    """Base class for all type descriptors."""

    def cast(self, value: Any, registry: Any = None) -> Any:
        raise NotImplementedError


@dataclass(frozen=True)
class Primitive(TypeDescriptor):
    kind: str

    def cast(self, value: Any, registry: Any = None) -> Any:
        if self.kind == "string":
            if isinstance(value, str):
                return value
        elif self.kind == "integer":
            if isinstance(value, int) and not isinstance(value, bool):
                return value
            if isinstance(value, float) and value.is_integer():
                return int(value)
        elif self.kind == "number":
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return float(value)
        elif self.kind == "boolean":
            if isinstance(value, bool):
                return value
        elif self.kind == "object":
            if isinstance(value, Mapping):
                return dict(value)
        else:
            return value
        raise InvalidValue(f"expected {self.kind}, got {type(value).__name__}")


@dataclass(frozen=True)
class FormattedString(TypeDescriptor):
    format: str

    def cast(self, value: Any, registry: Any = None) -> Any:
        if self.format == "date-time":
            if isinstance(value, datetime):
                return value
            if isinstance(value, str):
                try:
                    return datetime.fromisoformat(value)
                except ValueError:
                    pass
            raise InvalidValue("expected an ISO 8601 date-time")
        if not isinstance(value, str):
            raise InvalidValue(f"expected string, got {type(value).__name__}")
        return value


@dataclass(frozen=True)
class Enum(TypeDescriptor):
    values: tuple[Any, ...]

    def cast(self, value: Any, registry: Any = None) -> Any:
        for member in self.values:
            if _same_value(member, value):
                return member
        raise InvalidValue(f"is invalid, expected one of {list(self.values)!r}")


@dataclass(frozen=True)
class Const(TypeDescriptor):
    # Single-element tuple so generated code can share hoisted value sets
    values: tuple[Any, ...]

    @property
    def value(self) -> Any:
        return self.values[0]

    def cast(self, value: Any, registry: Any = None) -> Any:
        if _same_value(self.value, value):
            return self.value
        raise InvalidValue(f"must be {self.value!r}")


@dataclass(frozen=True)
class ArrayOf(TypeDescriptor):
    item: TypeDescriptor

    def cast(self, value: Any, registry: Any = None) -> Any:
        if not isinstance(value, (list, tuple)):
            raise InvalidValue(f"expected array, got {type(value).__name__}")

        result = []
        errors: dict[str, list[str]] = {}
        for index, item in enumerate(value):
            try:
                result.append(self.item.cast(item, registry))
            except InvalidValue as e:
                for sub, messages in e.errors.items():
                    errors.setdefault(join_path(f"[{index}]", sub), []).extend(messages)
        if errors:
            raise InvalidValue("has invalid items", errors)
        return result


@dataclass(frozen=True)
class Reference(TypeDescriptor):
    module: str

    def cast(self, value: Any, registry: Any = None) -> Any:
        if not isinstance(value, Mapping):
            raise InvalidValue(f"expected object, got {type(value).__name__}")
        if registry is None or self.module not in registry:
            return dict(value)

        # Imported here to keep records -> types a one-way dependency
        from .records import ValidationError

        try:
            return registry.build(self.module, value)
        except ValidationError as e:
            raise InvalidValue(f"is not a valid {self.module}", e.errors) from e


@dataclass(frozen=True)
class VariantOf(TypeDescriptor):
    """Alternative (one_of/any_of) or conjunctive (all_of) composition.

    ``tags`` holds the ``type`` discriminator of each inline branch (or None)
    and ``required`` the required keys of each inline branch; both are empty
    when nothing is known statically.
    """

    tag: str
    variants: tuple[TypeDescriptor, ...]
    tags: tuple[Any, ...] = ()
    required: tuple[tuple[str, ...], ...] = ()

    def cast(self, value: Any, registry: Any = None) -> Any:
        if self.tag == "all_of":
            result = value
            for variant in self.variants:
                result = variant.cast(value, registry)
            return result

        discriminators = [self._discriminator(i, registry) for i in range(len(self.variants))]
        if isinstance(value, Mapping) and "type" in value and any(d is not None for d in discriminators):
            for variant, discriminator in zip(self.variants, discriminators):
                if discriminator is not None and _same_value(discriminator, value["type"]):
                    return variant.cast(value, registry)
            raise UnknownVariant(value["type"], [d for d in discriminators if d is not None])

        best = None
        best_score = -1
        for index, variant in enumerate(self.variants):
            required = self._required(index, registry)
            if required and not (isinstance(value, Mapping) and all(key in value for key in required)):
                continue
            try:
                cast_value = variant.cast(value, registry)
            except InvalidValue:
                continue
            if len(required) > best_score:
                best, best_score = cast_value, len(required)

        if best_score < 0:
            raise InvalidValue(f"does not match any variant of {self.tag}")
        return best

    def _discriminator(self, index: int, registry: Any) -> Any:
        if self.tags and self.tags[index] is not None:
            return self.tags[index]
        variant = self.variants[index]
        if isinstance(variant, Reference) and registry is not None and variant.module in registry:
            for field in registry.get(variant.module).fields:
                if field.name == "type" and isinstance(field.type, Const):
                    return field.type.value
        return None

    def _required(self, index: int, registry: Any) -> tuple[str, ...]:
        if self.required and self.required[index]:
            return self.required[index]
        variant = self.variants[index]
        if isinstance(variant, Reference) and registry is not None and variant.module in registry:
            return tuple(registry.get(variant.module).required)
        return ()


@dataclass(frozen=True)
class Opaque(TypeDescriptor):
    """Untyped structured value."""

    def cast(self, value: Any, registry: Any = None) -> Any:
        return value


@dataclass(frozen=True)
class Field:
    """One entry of a generated module's field table."""

    name: str
    type: TypeDescriptor
    description: str | None = None
    required: bool = False
    default: Any = None
    nullable: bool = False
