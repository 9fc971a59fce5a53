"""
Schema analyzer that turns a resolved schema into a ModuleSpec.

Fields are sorted by name, required names are de-duplicated and restricted
to declared properties, and every enum/const value set is hoisted into a
named declaration.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from ...runtime.types import ArrayOf, Const, Enum, TypeDescriptor, VariantOf
from ...utils import to_constant_name
from ..errors import GenerationError
from .ir_nodes import EnumDeclaration, FieldDescriptor, ModuleSpec
from .reference_resolver import SOURCE_PATH
from .type_mapper import is_nullable, map_type

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Schema"


class SchemaAnalyzer:
    """Builds the ModuleSpec for one schema."""

    def __init__(self, mapper: Callable[[Any], TypeDescriptor] = map_type, is_fallback: bool = False):
        """
        Initialize the analyzer.

        Args:
            mapper: Function mapping one property definition to a descriptor
            is_fallback: Whether the schema is raw (direct mapping pass)
        """
        self.mapper = mapper
        self.is_fallback = is_fallback

    def analyze(self, schema: dict[str, Any], module_name: str, source_path: str | Path | None = None) -> ModuleSpec:
        """
        Analyze a schema and build its ModuleSpec.

        Args:
            schema: Resolved schema (or raw schema for the fallback pass)
            module_name: Fully qualified module name
            source_path: Schema file; defaults to the ``_source_path`` annotation

        Returns:
            ModuleSpec ready for code generation
        """
        properties = schema.get("properties")
        if properties is None:
            properties = {}
        if not isinstance(properties, dict):
            raise GenerationError(f"{module_name}: properties must be an object")

        required = self._required_names(schema, module_name)

        fields = []
        for name in sorted(properties):
            definition = properties[name]
            descriptor = self.mapper(definition)
            description = definition.get("description") if isinstance(definition, dict) else None
            default = definition.get("default") if isinstance(definition, dict) else None
            fields.append(
                FieldDescriptor(
                    name=name,
                    type=descriptor,
                    description=description if isinstance(description, str) else None,
                    required=name in required,
                    default=default,
                    nullable=is_nullable(definition),
                )
            )

        dropped = tuple(name for name in required if name not in properties)
        if dropped:
            logger.warning("%s: required names without a property are ignored: %s", module_name, ", ".join(dropped))

        if source_path is None:
            source_path = schema.get(SOURCE_PATH)

        title = schema.get("title")
        description = schema.get("description")

        return ModuleSpec(
            module_name=module_name,
            doc_title=title if isinstance(title, str) and title else DEFAULT_TITLE,
            doc_description=description if isinstance(description, str) and description else None,
            source_file_basename=Path(source_path).name if source_path else None,
            enum_declarations=hoist_enums(fields),
            fields=tuple(fields),
            required_fields=tuple(name for name in required if name in properties),
            is_fallback=self.is_fallback,
            dropped_required=dropped,
        )

    def _required_names(self, schema: dict[str, Any], module_name: str) -> list[str]:
        required = schema.get("required") or []
        if not isinstance(required, list) or not all(isinstance(name, str) for name in required):
            raise GenerationError(f"{module_name}: required must be a list of strings")
        return list(dict.fromkeys(required))


def value_set_key(values: tuple[Any, ...]) -> str:
    # repr keeps True and 1 apart
    return repr(values)


def _value_sets(descriptor: TypeDescriptor):
    """Yield the value tuples of every Enum/Const reachable from a descriptor."""
    if isinstance(descriptor, (Enum, Const)):
        yield descriptor.values
    elif isinstance(descriptor, ArrayOf):
        yield from _value_sets(descriptor.item)
    elif isinstance(descriptor, VariantOf):
        for variant in descriptor.variants:
            yield from _value_sets(variant)


def hoist_enums(fields: list[FieldDescriptor]) -> tuple[EnumDeclaration, ...]:
    """
    Name every distinct value set used by the fields.

    The first field using a value set names it ``<FIELD>_VALUES``; later
    fields with an identical set share the declaration.
    """
    declarations: list[EnumDeclaration] = []
    seen_keys: set[str] = set()
    used_names: set[str] = set()

    for field in fields:
        for values in _value_sets(field.type):
            key = value_set_key(values)
            if key in seen_keys:
                continue
            seen_keys.add(key)

            base = f"{to_constant_name(field.name)}_VALUES"
            name = base
            suffix = 2
            while name in used_names:
                name = f"{base}_{suffix}"
                suffix += 1
            used_names.add(name)
            declarations.append(EnumDeclaration(name=name, values=values))

    return tuple(declarations)
