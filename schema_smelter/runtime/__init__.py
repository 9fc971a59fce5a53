"""
Runtime support for generated schema modules.

Generated modules import their field descriptors and the ``build`` entry
point from here.
"""

from __future__ import annotations

from .records import Record, ValidationError, build
from .registry import ModuleRegistry, RegisteredModule
from .types import (
    ArrayOf,
    Const,
    Enum,
    Field,
    FormattedString,
    InvalidValue,
    Opaque,
    Primitive,
    Reference,
    TypeDescriptor,
    UnknownVariant,
    VariantOf,
)

__all__ = [
    "ArrayOf",
    "Const",
    "Enum",
    "Field",
    "FormattedString",
    "InvalidValue",
    "ModuleRegistry",
    "Opaque",
    "Primitive",
    "Record",
    "Reference",
    "RegisteredModule",
    "TypeDescriptor",
    "UnknownVariant",
    "ValidationError",
    "VariantOf",
    "build",
]
