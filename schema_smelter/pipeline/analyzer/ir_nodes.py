"""
IR (Intermediate Representation) node definitions.

These nodes describe one generated module independently of the target
syntax. All references are resolved and every property has a type
descriptor. Type descriptors themselves live in ``schema_smelter.runtime``
because generated code instantiates the same classes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ...runtime.types import TypeDescriptor


@dataclass(frozen=True)
class FieldDescriptor:
    """A field of a generated module."""

    name: str = ""
    type: TypeDescriptor | None = None
    description: str | None = None
    required: bool = False
    default: Any = None

    # Declared as ["<type>", "null"]
    nullable: bool = False


@dataclass(frozen=True)
class EnumDeclaration:
    """A value set hoisted above the field table."""

    name: str = ""  # Constant name, e.g. "STATUS_VALUES"
    values: tuple[Any, ...] = ()


@dataclass(frozen=True)
class ModuleSpec:
    """Everything needed to emit one module; fully determines the output."""

    module_name: str = ""
    doc_title: str = "Schema"
    doc_description: str | None = None
    source_file_basename: str | None = None

    enum_declarations: tuple[EnumDeclaration, ...] = ()

    # Sorted by name
    fields: tuple[FieldDescriptor, ...] = ()

    required_fields: tuple[str, ...] = ()

    # True when produced by the direct (fallback) mapper
    is_fallback: bool = False

    # Names dropped from "required" because no property declares them
    dropped_required: tuple[str, ...] = field(default_factory=tuple)
